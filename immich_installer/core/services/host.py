"""
Host inspector — read-only system queries used by the capability probe.

Every probe goes through one ``HostInspector`` instance so tests can
swap in a fake host.  Nothing here raises on absence: a missing binary,
a timeout, or an unreadable file just reads as "not there".
"""

from __future__ import annotations

import glob
import logging
import os
import shutil
import stat
import subprocess
from functools import cached_property

logger = logging.getLogger(__name__)


class HostInspector:
    """Read-only view of the machine the installer runs on."""

    def which(self, name: str) -> bool:
        return shutil.which(name) is not None

    def run(self, argv: list[str], timeout: int = 5) -> subprocess.CompletedProcess[str] | None:
        """Run a probe command.  Returns None if it could not run at all."""
        try:
            return subprocess.run(
                argv,
                capture_output=True, text=True, timeout=timeout,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            logger.debug("Probe command %s failed: %s", argv[0], e)
            return None

    def output(self, argv: list[str], timeout: int = 5) -> str:
        """stdout of a successful command, or an empty string."""
        r = self.run(argv, timeout=timeout)
        if r is None or r.returncode != 0:
            return ""
        return r.stdout

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_char_device(self, path: str) -> bool:
        try:
            return stat.S_ISCHR(os.stat(path).st_mode)
        except OSError:
            return False

    def glob(self, pattern: str) -> list[str]:
        return sorted(glob.glob(pattern))

    def read_text(self, path: str) -> str | None:
        try:
            with open(path, encoding="utf-8", errors="ignore") as f:
                return f.read()
        except OSError:
            return None

    # ── Cached system listings ──────────────────────────────────

    @cached_property
    def lspci(self) -> str:
        return self.output(["lspci"])

    @cached_property
    def lscpu(self) -> str:
        return self.output(["lscpu"])

    @cached_property
    def proc_version(self) -> str:
        return self.read_text("/proc/version") or ""

    def is_guest_virtualization(self) -> bool:
        """True when running inside WSL (the kernel reports Microsoft/WSL)."""
        version = self.proc_version
        return "Microsoft" in version or "microsoft" in version or "WSL" in version

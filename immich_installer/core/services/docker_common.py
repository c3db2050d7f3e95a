"""Docker shared helpers — command runners and the runtime check.

``check_runtime`` gates the whole install: the docker CLI, Compose v2,
and a reachable daemon are all required before anything is written.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

DOCKER_INSTALL_URL = "https://docs.docker.com/engine/install/"


# ── Synchronous runners ────────────────────────────────────────────


def run_docker(
    *args: str,
    cwd: Path,
    timeout: int = 60,
) -> subprocess.CompletedProcess[str]:
    """Run a docker command and return the result."""
    return subprocess.run(
        ["docker", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def run_compose(
    *args: str,
    cwd: Path,
    timeout: int = 600,
) -> subprocess.CompletedProcess[str]:
    """Run a docker compose command.  Image pulls make the default timeout long."""
    return run_docker("compose", *args, cwd=cwd, timeout=timeout)


# ── Runtime check ─────────────────────────────────────────────────


def check_runtime(cwd: Path | None = None) -> dict:
    """Verify the docker CLI, Compose v2, and the daemon.

    Returns:
        {"ok": True, "version": str, "compose_version": str}
        or {"error": str, "hint": str}
    """
    cwd = cwd or Path.cwd()
    if not shutil.which("docker"):
        return {
            "error": "Docker is not installed.",
            "hint": f"Install Docker first: {DOCKER_INSTALL_URL}",
        }

    try:
        r_ver = run_docker("--version", cwd=cwd, timeout=5)
        r_compose = run_docker("compose", "version", "--short", cwd=cwd, timeout=5)
        if r_compose.returncode != 0:
            return {
                "error": "Docker Compose v2 is not available.",
                "hint": "Install the docker compose plugin (the 'docker compose' subcommand).",
            }

        r_info = run_docker("info", "--format", "{{.ServerVersion}}", cwd=cwd, timeout=10)
        if r_info.returncode != 0:
            return {
                "error": "Docker daemon is not running.",
                "hint": "Start Docker and try again.",
            }
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug("Docker runtime check failed: %s", e)
        return {"error": f"Docker runtime check failed: {e}", "hint": "Start Docker and try again."}

    result = {
        "ok": True,
        "version": r_ver.stdout.strip() if r_ver.returncode == 0 else "",
        "compose_version": r_compose.stdout.strip(),
    }
    logger.info("Docker runtime OK (%s, compose %s)", result["version"], result["compose_version"])
    return result


def compose_up(cwd: Path) -> dict:
    """``docker compose up -d`` in *cwd*.

    Returns:
        {"ok": True} or {"error": str}
    """
    try:
        r = run_compose("up", "-d", cwd=cwd)
    except (subprocess.TimeoutExpired, OSError) as e:
        return {"error": f"docker compose up failed: {e}"}
    if r.returncode != 0:
        return {"error": r.stderr.strip() or "docker compose up failed"}
    return {"ok": True}

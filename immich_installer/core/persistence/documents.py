"""
Document persistence — read-modify-write for the compose and .env files.

Each mutation loads the on-disk text fresh, edits the model, and writes
back.  Writes are atomic (write to temp file, then rename) so a crash
mid-write never leaves a truncated compose file behind.  The two files
are not written as one transaction.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from immich_installer.core.models.env_file import EnvironmentStore
from immich_installer.core.models.manifest import ManifestDocument, ManifestError

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    _fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(_fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s (%d bytes)", path, len(content))
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def load_manifest(path: Path) -> ManifestDocument:
    """Parse the compose file at *path*.

    Raises:
        ManifestError: If the file is missing or malformed.
    """
    if not path.is_file():
        raise ManifestError(f"Compose file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read {path}: {e}") from e
    return ManifestDocument.parse(text)


def save_manifest(doc: ManifestDocument, path: Path) -> None:
    """Validate and atomically write *doc* to *path*.

    A document that no longer loads as YAML is never written.
    """
    doc.validate()
    atomic_write_text(path, doc.render())


def load_env(path: Path) -> EnvironmentStore:
    """Parse the .env file at *path*; a missing file is an empty store."""
    if not path.is_file():
        logger.info("No env file at %s — starting empty", path)
        return EnvironmentStore()
    return EnvironmentStore.parse(path.read_text(encoding="utf-8"))


def save_env(store: EnvironmentStore, path: Path) -> None:
    atomic_write_text(path, store.render())

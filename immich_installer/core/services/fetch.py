"""
Release asset download — fetch a named file or fail.

The body is streamed to a temp file next to the destination and renamed
into place, so a failed download never clobbers an existing file.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path

from immich_installer import __version__

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a release asset cannot be downloaded."""


def fetch_resource(url: str, dest: Path, *, timeout: int = 30) -> Path:
    """Download *url* to *dest*.

    Raises:
        FetchError: On any HTTP, network, or filesystem failure.
    """
    logger.info("Downloading %s → %s", url, dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    _fd, tmp_path = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}_", suffix=".part")
    os.close(_fd)
    tmp = Path(tmp_path)
    try:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": f"immich-installer/{__version__}"},
        )
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(tmp, "wb") as out:
            shutil.copyfileobj(resp, out)
        tmp.replace(dest)
    except urllib.error.HTTPError as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"HTTP {e.code} fetching {url}") from e
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        tmp.unlink(missing_ok=True)
        raise FetchError(f"Cannot fetch {url}: {e}") from e

    logger.debug("Downloaded %s (%d bytes)", dest, dest.stat().st_size)
    return dest

"""
Logging configuration — central setup for the installer CLI.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Logging is the diagnostic channel only: what the operator reads
(progress, warnings, prompts) goes through the Reporter.

Levels are resolved in precedence order:
    CLI flag  >  IMMICH_INSTALLER_LOG_LEVEL env var  >  WARNING (default)

Optional file output via IMMICH_INSTALLER_LOG_FILE / IMMICH_INSTALLER_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "IMMICH_INSTALLER_LOG_LEVEL"
ENV_LOG_FILE = "IMMICH_INSTALLER_LOG_FILE"
ENV_LOG_FILE_LEVEL = "IMMICH_INSTALLER_LOG_FILE_LEVEL"

# ── Formats, most verbose first: (max level, format, datefmt) ──

_DIAGNOSTIC = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DIAGNOSTIC, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the whole process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path to a log file.  Defaults to
            ``$IMMICH_INSTALLER_LOG_FILE`` when unset.
        log_file_level: Optional separate level for the log file.
            Defaults to ``$IMMICH_INSTALLER_LOG_FILE_LEVEL``, then ``level``.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    log_file = log_file or os.environ.get(ENV_LOG_FILE)
    if log_file:
        file_level_name = log_file_level or os.environ.get(ENV_LOG_FILE_LEVEL)
        file_level = _parse_level(file_level_name) if file_level_name else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # The root must let through whatever the chattiest handler wants
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT
    for max_level, level_fmt, level_datefmt in _CONSOLE_FORMATS:
        if level <= max_level:
            fmt, datefmt = level_fmt, level_datefmt
            break

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    """File output always uses the full diagnostic format."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DIAGNOSTIC, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant; unknown names mean WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING

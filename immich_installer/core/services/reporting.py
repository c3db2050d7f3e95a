"""
Reporter — the injected sink for operator-facing messages.

Core services never print.  They call ``reporter.info(...)``,
``reporter.warning(...)`` and friends, and whichever entry point is
running decides what that means:

    - CLI:   ``ClickReporter`` (ui/cli/console.py) → colored terminal output
    - Tests: ``MemoryReporter`` → asserted on
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "success", "warning", "error"]


class Reporter(ABC):
    """Base reporter.  Subclasses implement ``emit``."""

    @abstractmethod
    def emit(self, level: Level, message: str) -> None:
        """Deliver one message at *level*."""

    def info(self, message: str) -> None:
        self.emit("info", message)

    def success(self, message: str) -> None:
        self.emit("success", message)

    def warning(self, message: str) -> None:
        self.emit("warning", message)

    def error(self, message: str) -> None:
        self.emit("error", message)


class MemoryReporter(Reporter):
    """Collect messages in order."""

    def __init__(self) -> None:
        self.messages: list[tuple[Level, str]] = []

    def emit(self, level: Level, message: str) -> None:
        logger.debug("[%s] %s", level, message)
        self.messages.append((level, message))

    def of_level(self, level: Level) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]

"""
Prompter — the injected capability for asking the operator questions.

The click implementation lives in ui/cli/console.py.  ``AssumeYesPrompter``
answers on the operator's behalf for ``--yes`` runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class PromptError(Exception):
    """Raised when a question needs an answer nobody can give."""


class Prompter(ABC):
    """Base prompter.  Subclasses implement ``ask`` and ``confirm``."""

    @abstractmethod
    def ask(self, text: str, default: str | None = "") -> str:
        """Ask a free-form question; blank input returns *default*."""

    @abstractmethod
    def confirm(self, text: str, default: bool = False) -> bool:
        """Ask a yes/no question."""


class AssumeYesPrompter(Prompter):
    """Non-interactive prompter: confirms everything, takes every default."""

    def ask(self, text: str, default: str | None = "") -> str:
        if default is None:
            raise PromptError(f"An answer is required: {text}")
        return default

    def confirm(self, text: str, default: bool = False) -> bool:
        return True

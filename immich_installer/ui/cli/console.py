"""
Click-backed Reporter and Prompter for terminal runs.
"""

from __future__ import annotations

import sys

import click

from immich_installer.core.config.loader import ConfigError, InstallerSettings, load_settings
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Level, Reporter

_STYLE: dict[str, tuple[str, str]] = {
    "info": ("ℹ️ ", "blue"),
    "success": ("✅", "green"),
    "warning": ("⚠️ ", "yellow"),
    "error": ("❌", "red"),
}


class ClickReporter(Reporter):
    """Colored terminal output.  ``quiet`` drops info messages."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet

    def emit(self, level: Level, message: str) -> None:
        if self.quiet and level == "info":
            return
        icon, color = _STYLE[level]
        click.secho(f"{icon} {message}", fg=color)


class ClickPrompter(Prompter):
    def ask(self, text: str, default: str | None = "") -> str:
        return click.prompt(text, default=default, show_default=bool(default))

    def confirm(self, text: str, default: bool = False) -> bool:
        return click.confirm(text, default=default)


def load_cli_settings(ctx: click.Context) -> InstallerSettings:
    """Settings from ``--config``; exits on an invalid file."""
    try:
        return load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

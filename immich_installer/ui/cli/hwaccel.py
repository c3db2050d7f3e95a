"""
CLI commands for hardware acceleration in an existing install folder.

Thin wrappers over ``immich_installer.core.use_cases`` and the
manifest mutator.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.ui.cli.console import ClickPrompter, ClickReporter, load_cli_settings

CATEGORY_CHOICE = click.Choice(["transcoding", "inference", "ml"], case_sensitive=False)

_dir_option = click.option(
    "--dir",
    "install_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Immich install folder (holds docker-compose.yml).",
)


def _mutator(ctx: click.Context, install_dir: Path, assume_yes: bool):
    from immich_installer.core.services.manifest_mutator import ManifestMutator
    from immich_installer.core.services.prompts import AssumeYesPrompter

    return ManifestMutator(
        install_dir.resolve(),
        settings=load_cli_settings(ctx),
        reporter=ClickReporter(quiet=ctx.obj.get("quiet", False)),
        prompter=AssumeYesPrompter() if assume_yes else ClickPrompter(),
    )


@click.group()
def hwaccel() -> None:
    """Hardware acceleration — status, configure, apply, disable."""


# ── Status ──────────────────────────────────────────────────────


@hwaccel.command()
@_dir_option
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, install_dir: Path, as_json: bool) -> None:
    """Show which acceleration profiles are active."""
    from immich_installer.core.use_cases.status import accel_status

    result = accel_status(install_dir.resolve(), load_cli_settings(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.error:
        click.secho(f"❌ {result.error}", fg="red")
    if result.error:
        sys.exit(1)
    if as_json:
        return

    click.secho(f"🎛️  {result.install_dir}", fg="cyan", bold=True)
    for cat in result.categories:
        label = cat.category.info.label
        if cat.enabled:
            click.secho(f"   ✅ {label}: {cat.profile}", fg="green")
        else:
            click.secho(f"   ➖ {label}: disabled", fg="white")
        if cat.image_suffix and cat.image_suffix != cat.profile:
            click.secho(f"      ⚠️  image tag suffix is '{cat.image_suffix}'", fg="yellow")
        if cat.fragment_present and not cat.enabled:
            click.secho(f"      ⚠️  {cat.category.info.fragment_file} present but unused", fg="yellow")
    click.echo()


# ── Configure (interactive) ─────────────────────────────────────


@hwaccel.command()
@click.argument("category", type=CATEGORY_CHOICE)
@_dir_option
@click.option("--disable", "directive", flag_value="disable", help="Go straight to disabling.")
@click.option("--skip", "directive", flag_value="skip", help="Do nothing (for scripted runs).")
@click.pass_context
def configure(ctx: click.Context, category: str, install_dir: Path, directive: str | None) -> None:
    """Detect hardware and interactively configure CATEGORY."""
    from immich_installer.core.services.selection import Directive
    from immich_installer.core.use_cases.configure_accel import configure_category

    result = configure_category(
        AccelerationCategory.parse(category),
        install_dir.resolve(),
        settings=load_cli_settings(ctx),
        prompter=ClickPrompter(),
        reporter=ClickReporter(quiet=ctx.obj.get("quiet", False)),
        directive=Directive(directive) if directive else Directive.CONFIGURE,
    )
    if not result.ok:
        sys.exit(1)


# ── Apply / Disable ─────────────────────────────────────────────


@hwaccel.command()
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("profile")
@_dir_option
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Confirm replacing an active profile.")
@click.pass_context
def apply(ctx: click.Context, category: str, profile: str, install_dir: Path, assume_yes: bool) -> None:
    """Point CATEGORY at PROFILE without probing the hardware."""
    result = _mutator(ctx, install_dir, assume_yes).apply(
        AccelerationCategory.parse(category), profile,
    )
    if not result.ok:
        sys.exit(1)


@hwaccel.command()
@click.argument("category", type=CATEGORY_CHOICE)
@_dir_option
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip the confirmation.")
@click.pass_context
def disable(ctx: click.Context, category: str, install_dir: Path, assume_yes: bool) -> None:
    """Remove CATEGORY acceleration from the install folder."""
    result = _mutator(ctx, install_dir, assume_yes).disable(AccelerationCategory.parse(category))
    if not result.ok:
        sys.exit(1)

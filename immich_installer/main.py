"""
Immich Installer — CLI entrypoint.

Usage:
    immich-installer --help
    immich-installer install
    immich-installer hwaccel status --dir ./immich-app
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from immich_installer import __version__
from immich_installer.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="immich-installer")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to an installer settings YAML file.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Immich Installer — set up Immich with Docker Compose."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.command()
@click.option(
    "--folder",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Installation folder (prompted for when omitted).",
)
@click.option("--no-start", is_flag=True, help="Do not offer to start the containers.")
@click.pass_context
def install(ctx: click.Context, folder: Path | None, no_start: bool) -> None:
    """Download, configure, and optionally start Immich."""
    from immich_installer.core.use_cases.install import run_install
    from immich_installer.ui.cli.console import ClickPrompter, ClickReporter, load_cli_settings

    result = run_install(
        settings=load_cli_settings(ctx),
        prompter=ClickPrompter(),
        reporter=ClickReporter(quiet=ctx.obj.get("quiet", False)),
        folder=folder,
        start=not no_start,
    )
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check(as_json: bool) -> None:
    """Check that Docker and Docker Compose v2 are ready."""
    from immich_installer.core.services.docker_common import check_runtime

    result = check_runtime()

    if as_json:
        click.echo(json.dumps(result, indent=2))
    elif "error" in result:
        click.secho(f"❌ {result['error']}", fg="red")
        click.echo(f"   {result['hint']}")
    else:
        click.secho("🐳 Docker", fg="cyan", bold=True)
        click.echo(f"   Version:  {result['version'] or '?'}")
        click.echo(f"   Compose:  {result['compose_version']}")
        click.secho("   ✅ Ready", fg="green")

    if "error" in result:
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Probe this machine for GPU/NPU acceleration."""
    from immich_installer.core.use_cases.detect import detect_acceleration
    from immich_installer.ui.cli.console import load_cli_settings

    result = detect_acceleration(load_cli_settings(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.guest_virtualization:
        click.secho("🪟 WSL detected", fg="cyan")
    for category, resolution in result.resolutions.items():
        click.secho(f"\n🔍 {category.info.label.capitalize()}", fg="cyan", bold=True)
        if resolution.profiles:
            click.secho(f"   ✅ {', '.join(resolution.profiles)}", fg="green")
        else:
            click.secho("   ➖ No compatible backends detected", fg="yellow")
        for advisory in resolution.advisories:
            click.secho(f"   ⚠️  {advisory}", fg="yellow")
    click.echo()


# ── Register sub-groups ─────────────────────────────────────────

from immich_installer.ui.cli.hwaccel import hwaccel  # noqa: E402

cli.add_command(hwaccel)


if __name__ == "__main__":
    cli()

"""
Install use case — the full interactive Immich setup.

    1. Docker runtime check
    2. Install folder (prompt, create, confirm overwrite)
    3. Download docker-compose.yml and example.env (as .env)
    4. Environment configuration
    5. Transcoding, then inference acceleration
    6. Summary, optional ``docker compose up -d``, next steps
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.core.models.env_file import EnvFileError
from immich_installer.core.models.manifest import ManifestError
from immich_installer.core.persistence.documents import (
    load_env,
    load_manifest,
    save_env,
    save_manifest,
)
from immich_installer.core.services.docker_common import check_runtime, compose_up
from immich_installer.core.services.env_config import configure_environment
from immich_installer.core.services.fetch import FetchError, fetch_resource
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.manifest_mutator import Fetcher
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Reporter
from immich_installer.core.use_cases.configure_accel import AccelResult, configure_category

logger = logging.getLogger(__name__)

WEB_URL = "http://localhost:2283"
POST_INSTALL_URL = "https://immich.app/docs/install/post-install"


@dataclass
class InstallResult:
    """Outcome of an install run."""

    install_dir: Path | None = None
    cancelled: bool = False
    files: list[str] = field(default_factory=list)
    accel: list[AccelResult] = field(default_factory=list)
    started: bool = False
    error: str | None = None

    @property
    def failed_categories(self) -> list[AccelerationCategory]:
        return [a.category for a in self.accel if not a.ok]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed_categories

    def to_dict(self) -> dict:
        return {
            "install_dir": str(self.install_dir) if self.install_dir else None,
            "cancelled": self.cancelled,
            "files": self.files,
            "accel": [a.to_dict() for a in self.accel],
            "started": self.started,
            "error": self.error,
            "ok": self.ok,
        }


def run_install(
    *,
    settings: InstallerSettings,
    prompter: Prompter,
    reporter: Reporter,
    folder: Path | None = None,
    start: bool = True,
    host: HostInspector | None = None,
    fetch: Fetcher = fetch_resource,
    runtime_check: Callable[[], dict] = check_runtime,
    starter: Callable[[Path], dict] = compose_up,
) -> InstallResult:
    """Install Immich into *folder* (prompted for when None)."""
    host = host or HostInspector()
    result = InstallResult()
    reporter.info("Starting Immich installation...")

    # ── 1. Docker ────────────────────────────────────────────────
    runtime = runtime_check()
    if "error" in runtime:
        result.error = runtime["error"]
        reporter.error(runtime["error"])
        if runtime.get("hint"):
            reporter.info(runtime["hint"])
        return result
    reporter.success("Docker and Docker Compose are available.")

    # ── 2. Install folder ────────────────────────────────────────
    if folder is None:
        answer = prompter.ask("Enter the installation folder path", default=settings.default_folder).strip()
        folder = Path(answer or settings.default_folder)
    install_dir = folder.expanduser().resolve()
    result.install_dir = install_dir
    reporter.info(f"Installation folder: {install_dir}")

    compose_path = install_dir / settings.compose_file
    env_path = install_dir / settings.env_file
    if not install_dir.is_dir():
        reporter.info(f"Creating directory: {install_dir}")
        try:
            install_dir.mkdir(parents=True)
        except OSError as e:
            result.error = f"Cannot create {install_dir}: {e}"
            reporter.error(result.error)
            return result
        reporter.success("Directory created successfully.")
    else:
        reporter.warning(f"Directory already exists: {install_dir}")
        if compose_path.exists() or env_path.exists():
            if not prompter.confirm("Existing Immich files found. Continue anyway?", default=False):
                reporter.info("Installation cancelled.")
                result.cancelled = True
                return result

    # ── 3. Base files ────────────────────────────────────────────
    for asset, dest in (
        (settings.compose_file, compose_path),
        (settings.env_template, env_path),
    ):
        reporter.info(f"Downloading {asset}...")
        try:
            fetch(settings.resource_url(asset), dest, timeout=settings.fetch_timeout)
        except FetchError as e:
            result.error = f"Failed to download {asset}: {e}"
            reporter.error(result.error)
            return result
        reporter.success(f"{dest.name} downloaded successfully.")

    # ── 4. Environment ───────────────────────────────────────────
    reporter.info("Starting environment configuration...")
    guest = settings.guest_virtualization
    if guest is None:
        guest = host.is_guest_virtualization()
    try:
        store = load_env(env_path)
        doc = load_manifest(compose_path)
        env_changes = configure_environment(store, doc, prompter, reporter, guest=guest)
        save_env(store, env_path)
        if env_changes["volumes"]:
            save_manifest(doc, compose_path)
    except (EnvFileError, ManifestError) as e:
        result.error = str(e)
        reporter.error(result.error)
        return result

    # ── 5. Acceleration ──────────────────────────────────────────
    for category in (AccelerationCategory.TRANSCODING, AccelerationCategory.INFERENCE):
        result.accel.append(configure_category(
            category,
            install_dir,
            settings=settings,
            prompter=prompter,
            reporter=reporter,
            host=host,
            fetch=fetch,
        ))

    # ── 6. Summary & start ───────────────────────────────────────
    result.files = [settings.compose_file, settings.env_file]
    for category in AccelerationCategory:
        if (install_dir / category.info.fragment_file).is_file():
            result.files.append(category.info.fragment_file)

    reporter.success("Configuration completed!")
    reporter.info(f"Installation folder: {install_dir}")
    reporter.info("Files created:")
    for name in result.files:
        reporter.info(f"  - {name}")

    if start and prompter.confirm("Do you want to start Immich now?", default=True):
        reporter.info("Starting Immich containers...")
        started = starter(install_dir)
        if "error" in started:
            result.error = f"Failed to start Immich containers: {started['error']}"
            reporter.error(result.error)
            reporter.info("Check the logs with: docker compose logs")
            return result
        result.started = True
        reporter.success("Immich started successfully!")
        reporter.info(f"You can access Immich at: {WEB_URL}")
        reporter.info("To check status: docker compose ps")
        reporter.info("To view logs: docker compose logs -f")
        reporter.info("To stop: docker compose down")
    else:
        reporter.info("Immich is ready to start. To start it manually, run:")
        reporter.info(f"cd '{install_dir}' && docker compose up -d")

    _next_steps(result, reporter)
    return result


def _next_steps(result: InstallResult, reporter: Reporter) -> None:
    failed = [c.info.label for c in result.failed_categories]
    if failed:
        reporter.warning(f"Installation completed, but {' and '.join(failed)} setup failed.")
        reporter.info(f"Retry with: immich-installer hwaccel configure <category> --dir '{result.install_dir}'")
    else:
        reporter.success("Installation completed successfully!")
    steps = [f"Access Immich at {WEB_URL}", "Create your admin account"]
    if AccelerationCategory.TRANSCODING.info.fragment_file in result.files:
        steps.append(
            "Enable hardware acceleration: Admin > Settings > Video transcoding settings, "
            "set 'Hardware acceleration' to the configured API"
        )
    if AccelerationCategory.INFERENCE.info.fragment_file in result.files:
        steps.append("ML hardware acceleration is automatically enabled")
    steps.append(f"Read the post-installation guide: {POST_INSTALL_URL}")

    reporter.info("Next steps:")
    for i, step in enumerate(steps, start=1):
        reporter.info(f"{i}. {step}")

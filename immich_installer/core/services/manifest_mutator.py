"""
Manifest mutator — apply or remove an acceleration profile.

Both operations are read-modify-write over the compose file: load it
fresh, edit the ``ManifestDocument``, validate, write atomically.  Every
question that can abort the operation is asked before the first write,
so declining always leaves the install folder exactly as it was.

Running ``apply(P)`` twice, or ``disable()`` twice, converges to the
same files as running it once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import yaml

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.core.models.manifest import ExtensionRef, ManifestError
from immich_installer.core.persistence.documents import load_manifest, save_manifest
from immich_installer.core.services.advice import emit_backend_advice
from immich_installer.core.services.fetch import FetchError, fetch_resource
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Reporter

logger = logging.getLogger(__name__)

LIBMALI_SO1 = "/usr/lib/aarch64-linux-gnu/libmali.so.1"
LIBMALI_RELEASES_URL = "https://github.com/tsukumijima/libmali-rockchip/releases"

# Mount lines in the rkmpp service that enable OpenCL HDR→SDR tonemapping
TONEMAPPING_LINES = (
    "- /dev/mali0:/dev/mali0",
    "- /etc/OpenCL:/etc/OpenCL:ro",
    f"- {LIBMALI_SO1}:{LIBMALI_SO1}:ro",
)

Status = Literal["applied", "disabled", "declined", "nothing", "failed"]

Fetcher = Callable[..., Path]


@dataclass
class MutationResult:
    """Outcome of one apply/disable call."""

    category: AccelerationCategory
    action: Literal["apply", "disable"]
    status: Status
    profile: str | None = None
    changed: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "action": self.action,
            "status": self.status,
            "profile": self.profile,
            "changed": self.changed,
            "error": self.error,
        }


class ManifestMutator:
    """Edits the compose file and hwaccel fragments inside one install folder."""

    def __init__(
        self,
        install_dir: Path,
        *,
        settings: InstallerSettings,
        reporter: Reporter,
        prompter: Prompter,
        host: HostInspector | None = None,
        fetch: Fetcher = fetch_resource,
    ) -> None:
        self.install_dir = install_dir
        self.settings = settings
        self.reporter = reporter
        self.prompter = prompter
        self.host = host or HostInspector()
        self.fetch = fetch

    @property
    def compose_path(self) -> Path:
        return self.install_dir / self.settings.compose_file

    def fragment_path(self, category: AccelerationCategory) -> Path:
        return self.install_dir / category.info.fragment_file

    # ═══════════════════════════════════════════════════════════════
    #  Apply
    # ═══════════════════════════════════════════════════════════════

    def apply(self, category: AccelerationCategory, profile: str) -> MutationResult:
        """Point the category's service at *profile* in the fragment file."""
        info = category.info
        result = MutationResult(category=category, action="apply", status="failed", profile=profile)

        if not info.is_profile(profile):
            result.error = f"Invalid backend: {profile} (valid: {', '.join(info.profiles)})"
            self.reporter.error(result.error)
            return result

        self.reporter.info(f"Setting up {info.label} with {profile}...")

        # ── Download the fragment beside its final name ─────────
        fragment = self.fragment_path(category)
        staged = fragment.with_name(f".{fragment.name}.download")
        self.reporter.info(f"Downloading {info.fragment_file}...")
        try:
            self.fetch(
                self.settings.resource_url(info.fragment_file),
                staged,
                timeout=self.settings.fetch_timeout,
            )
            self._check_fragment(staged, profile)
        except FetchError as e:
            staged.unlink(missing_ok=True)
            result.error = f"Failed to download {info.fragment_file}: {e}"
            self.reporter.error(result.error)
            self.reporter.warning(
                f"{info.label.capitalize()} setup incomplete. "
                "You can manually download the file later."
            )
            return result
        self.reporter.success(f"{info.fragment_file} downloaded successfully.")

        # ── Edit the compose model ───────────────────────────────
        try:
            doc = load_manifest(self.compose_path)
            block = doc.service(info.service)
        except ManifestError as e:
            staged.unlink(missing_ok=True)
            result.error = str(e)
            self.reporter.error(result.error)
            return result

        current = block.extension
        if current is not None:
            self.reporter.warning(
                f"Found active {info.label} in {info.service} "
                f"(service: {current.service or 'unknown'})"
            )
            if not self.prompter.confirm(f"Replace existing {info.label} config?", default=False):
                staged.unlink(missing_ok=True)
                self.reporter.info(f"Keeping existing {info.label} configuration.")
                result.status = "declined"
                return result
        else:
            self.reporter.info(f"Adding {info.label} configuration to {self.settings.compose_file}...")

        before = doc.render()
        block.set_extension(ExtensionRef(file=info.fragment_file, service=profile))

        if info.tags_image:
            if block.image is None:
                self.reporter.warning(f"No image line found in {info.service}; tag left unchanged.")
            elif block.set_image_suffix(profile, info.profiles):
                self.reporter.success(f"Updated {info.service} image to include {profile} backend.")
            else:
                self.reporter.info(f"Image tag already includes {profile} backend.")

        result.changed = doc.render() != before
        try:
            if result.changed:
                save_manifest(doc, self.compose_path)
        except ManifestError as e:
            staged.unlink(missing_ok=True)
            result.error = str(e)
            self.reporter.error(result.error)
            return result

        staged.replace(fragment)
        self.reporter.success(f"{info.label.capitalize()} configuration written to {self.settings.compose_file}")

        if profile == "rkmpp":
            self._enable_rkmpp_tonemapping(fragment)

        emit_backend_advice(category, profile, self.reporter, self.host)
        self.reporter.success(f"{info.label.capitalize()} configured with {profile}")
        logger.info("Applied %s profile %s (changed=%s)", category.value, profile, result.changed)
        result.status = "applied"
        return result

    def _check_fragment(self, path: Path, profile: str) -> None:
        """The fragment must be YAML; warn if it lacks the profile's service."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            raise FetchError(f"{path.name} is not a valid compose fragment: {e}") from e
        services = data.get("services") if isinstance(data, dict) else None
        if not isinstance(services, dict) or profile not in services:
            self.reporter.warning(
                f"Downloaded fragment has no '{profile}' service; "
                "the container will fail to start until it does."
            )

    def _enable_rkmpp_tonemapping(self, fragment: Path) -> None:
        """Un-comment the OpenCL mounts when Rockchip's libmali is installed."""
        if not self.host.exists(LIBMALI_SO1):
            self.reporter.warning("libmali.so.1 not found. Hardware tonemapping will not be available.")
            self.reporter.info(f"Install libmali from: {LIBMALI_RELEASES_URL}")
            return

        self.reporter.info("libmali detected. Enabling OpenCL tonemapping for RKMPP...")
        try:
            doc = load_manifest(fragment)
            changed = doc.service("rkmpp").uncomment(TONEMAPPING_LINES)
            if changed:
                save_manifest(doc, fragment)
        except ManifestError as e:
            self.reporter.warning(f"Could not enable tonemapping: {e}")
            return
        self.reporter.success("OpenCL tonemapping enabled for RKMPP.")

    # ═══════════════════════════════════════════════════════════════
    #  Disable
    # ═══════════════════════════════════════════════════════════════

    def disable(self, category: AccelerationCategory) -> MutationResult:
        """Remove the category's extension reference, fragment, and image suffix."""
        info = category.info
        result = MutationResult(category=category, action="disable", status="failed")
        self.reporter.info(f"Disabling {info.label}...")

        try:
            doc = load_manifest(self.compose_path)
            block = doc.service(info.service)
        except ManifestError as e:
            result.error = str(e)
            self.reporter.error(result.error)
            return result

        fragment = self.fragment_path(category)
        has_extension = block.extension is not None
        has_fragment = fragment.exists()
        suffix = block.image_suffix(info.profiles) if info.tags_image else None

        if not (has_extension or has_fragment or suffix):
            self.reporter.info(f"No {info.label} configuration found to disable.")
            result.status = "nothing"
            return result

        self.reporter.warning(f"Found existing {info.label} configuration.")
        if not self.prompter.confirm(f"Are you sure you want to disable {info.label}?", default=False):
            self.reporter.info(f"Disabling {info.label} cancelled.")
            result.status = "declined"
            return result

        if block.remove_extensions():
            self.reporter.success(f"{info.label.capitalize()} configuration removed from {self.settings.compose_file}")
        if suffix and block.strip_image_suffix(info.profiles):
            self.reporter.success(f"{info.service} image tag restored to CPU-only version")

        if has_extension or suffix:
            try:
                save_manifest(doc, self.compose_path)
            except ManifestError as e:
                result.error = str(e)
                self.reporter.error(result.error)
                return result
            result.changed = True

        if has_fragment:
            fragment.unlink()
            result.changed = True
            self.reporter.success(f"{info.fragment_file} file removed")

        self.reporter.success(f"{info.label.capitalize()} has been disabled.")
        self.reporter.info("You will need to restart containers for changes to take effect.")
        logger.info("Disabled %s acceleration", category.value)
        result.status = "disabled"
        return result

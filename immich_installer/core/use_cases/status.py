"""
Status use case — what acceleration an install folder currently has.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.core.models.manifest import ManifestError
from immich_installer.core.persistence.documents import load_manifest


@dataclass
class CategoryStatus:
    category: AccelerationCategory
    profile: str | None = None
    fragment_present: bool = False
    image_suffix: str | None = None
    commented_extension: bool = False

    @property
    def enabled(self) -> bool:
        return self.profile is not None

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "enabled": self.enabled,
            "profile": self.profile,
            "fragment_present": self.fragment_present,
            "image_suffix": self.image_suffix,
            "commented_extension": self.commented_extension,
        }


@dataclass
class StatusResult:
    """Acceleration state of one install folder."""

    install_dir: Path | None = None
    categories: list[CategoryStatus] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "install_dir": str(self.install_dir),
            "categories": [c.to_dict() for c in self.categories],
        }


def accel_status(install_dir: Path, settings: InstallerSettings) -> StatusResult:
    """Read the compose file and fragments under *install_dir*."""
    result = StatusResult(install_dir=install_dir)
    try:
        doc = load_manifest(install_dir / settings.compose_file)
    except ManifestError as e:
        result.error = str(e)
        return result

    services = doc.services
    for category in AccelerationCategory:
        info = category.info
        status = CategoryStatus(
            category=category,
            fragment_present=(install_dir / info.fragment_file).is_file(),
        )
        block = services.get(info.service)
        if block is not None:
            ref = block.extension
            status.profile = ref.service if ref else None
            status.commented_extension = block.has_commented_extension
            if info.tags_image:
                status.image_suffix = block.image_suffix(info.profiles)
        result.categories.append(status)
    return result

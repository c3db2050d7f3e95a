"""
Detection use case — probe the host and resolve profiles, no prompting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.models.accel import AccelerationCategory, ProbeReport, Resolution
from immich_installer.core.services.capability_probe import probe_category
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.profile_resolver import resolve_profiles

logger = logging.getLogger(__name__)


@dataclass
class DetectResult:
    """Probe evidence and eligible profiles for each category."""

    guest_virtualization: bool = False
    reports: dict[AccelerationCategory, ProbeReport] = field(default_factory=dict)
    resolutions: dict[AccelerationCategory, Resolution] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "guest_virtualization": self.guest_virtualization,
            "categories": {
                category.value: {
                    "profiles": self.resolutions[category].profiles,
                    "advisories": self.resolutions[category].advisories,
                    "evidence": [
                        ev.model_dump(mode="json") for ev in self.reports[category].evidence
                    ],
                }
                for category in self.reports
            },
        }


def detect_acceleration(
    settings: InstallerSettings,
    host: HostInspector | None = None,
) -> DetectResult:
    """Probe every category once."""
    host = host or HostInspector()
    guest = settings.guest_virtualization
    if guest is None:
        guest = host.is_guest_virtualization()

    result = DetectResult(guest_virtualization=guest)
    for category in AccelerationCategory:
        report = probe_category(category, host, guest=guest)
        result.reports[category] = report
        result.resolutions[category] = resolve_profiles(report)
    return result

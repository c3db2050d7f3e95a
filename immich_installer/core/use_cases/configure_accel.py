"""
Acceleration use case — configure one category end to end.

Directive → probe → resolve → choose → mutate.  The directive is asked
before probing, so "skip" and "disable" never wait on ``nvidia-smi``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.core.services.capability_probe import probe_category
from immich_installer.core.services.fetch import fetch_resource
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.manifest_mutator import Fetcher, ManifestMutator, MutationResult
from immich_installer.core.services.profile_resolver import resolve_profiles
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Reporter
from immich_installer.core.services.selection import (
    Decision,
    DecisionKind,
    Directive,
    SelectionController,
)

logger = logging.getLogger(__name__)


@dataclass
class AccelResult:
    """What happened to one category."""

    category: AccelerationCategory
    decision: Decision | None = None
    profiles: list[str] = field(default_factory=list)
    advisories: list[str] = field(default_factory=list)
    mutation: MutationResult | None = None

    @property
    def ok(self) -> bool:
        return self.mutation is None or self.mutation.ok

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "decision": self.decision.to_dict() if self.decision else None,
            "profiles": self.profiles,
            "advisories": self.advisories,
            "mutation": self.mutation.to_dict() if self.mutation else None,
        }


def configure_category(
    category: AccelerationCategory,
    install_dir: Path,
    *,
    settings: InstallerSettings,
    prompter: Prompter,
    reporter: Reporter,
    host: HostInspector | None = None,
    fetch: Fetcher = fetch_resource,
    directive: Directive | None = None,
) -> AccelResult:
    """Run the interactive flow for *category* in *install_dir*."""
    host = host or HostInspector()
    info = category.info
    result = AccelResult(category=category)
    controller = SelectionController(prompter, reporter)
    mutator = ManifestMutator(
        install_dir,
        settings=settings,
        reporter=reporter,
        prompter=prompter,
        host=host,
        fetch=fetch,
    )

    def _resolve() -> list[str]:
        reporter.info(f"Detecting {info.label} capabilities...")
        report = probe_category(category, host, guest=settings.guest_virtualization)
        if report.guest_virtualization:
            reporter.info("WSL detected. Adjusting hardware acceleration options.")

        resolution = resolve_profiles(report)
        result.profiles = list(resolution.profiles)
        result.advisories = list(resolution.advisories)
        for advisory in resolution.advisories:
            reporter.warning(advisory)
        return result.profiles

    result.decision = controller.decide(category, _resolve, directive)
    if result.decision.kind == DecisionKind.APPLY:
        assert result.decision.profile is not None
        result.mutation = mutator.apply(category, result.decision.profile)
    elif result.decision.kind == DecisionKind.DISABLE:
        result.mutation = mutator.disable(category)

    logger.info("Category %s finished: %s", category.value, result.to_dict())
    return result

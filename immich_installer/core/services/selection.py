"""
Selection controller — decide what to do for one acceleration category.

Every path ends in exactly one ``Decision``: apply a profile, disable
acceleration, or skip.  The controller only asks questions and reads
answers; it never touches the manifest.

    directive?  ── disable ──────────────────────────────▶ Disable
        │       ── no ───────────────────────────────────▶ Skip
        ▼ yes
    eligible profiles
        0 ─ manual? ── yes ─▶ manual entry ─▶ Apply / Disable / Skip
        1 ─ confirm ── yes ─▶ Apply(p)       no ─▶ Skip
        n ─ menu ───────────▶ Apply(p) / manual / Disable / Skip
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from immich_installer.core.models.accel import AccelerationCategory, CategoryInfo
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Reporter

logger = logging.getLogger(__name__)


class DecisionKind(str, Enum):
    APPLY = "apply"
    DISABLE = "disable"
    SKIP = "skip"


class Directive(str, Enum):
    """The operator's answer to "configure this category?"."""

    CONFIGURE = "configure"
    DISABLE = "disable"
    SKIP = "skip"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    profile: str | None = None

    @classmethod
    def apply(cls, profile: str) -> "Decision":
        return cls(DecisionKind.APPLY, profile)

    @classmethod
    def disable(cls) -> "Decision":
        return cls(DecisionKind.DISABLE)

    @classmethod
    def skip(cls) -> "Decision":
        return cls(DecisionKind.SKIP)

    def to_dict(self) -> dict:
        return {"decision": self.kind.value, "profile": self.profile}


class SelectionController:
    """Drive the operator through choosing a profile for one category."""

    def __init__(self, prompter: Prompter, reporter: Reporter) -> None:
        self.prompter = prompter
        self.reporter = reporter

    def ask_directive(self, category: AccelerationCategory) -> Directive:
        """Ask whether to configure, skip, or disable the category."""
        label = category.info.label
        answer = self.prompter.ask(
            f"Do you want to configure {label}? (Y/n/disable)", default="y",
        ).strip().lower()
        if answer == "disable":
            return Directive.DISABLE
        if answer in ("n", "no"):
            self.reporter.info(f"Skipping {label} configuration.")
            return Directive.SKIP
        return Directive.CONFIGURE

    def choose(self, category: AccelerationCategory, profiles: list[str]) -> Decision:
        """Pick an outcome from the resolved, eligible *profiles*."""
        info = category.info
        if not profiles:
            decision = self._choose_none(info)
        elif len(profiles) == 1:
            decision = self._choose_one(info, profiles[0])
        else:
            decision = self._choose_menu(info, profiles)
        logger.info("Selection for %s: %s %s", category.value, decision.kind.value, decision.profile or "")
        return decision

    def decide(
        self,
        category: AccelerationCategory,
        resolve: Callable[[], list[str]],
        directive: Directive | None = None,
    ) -> Decision:
        """Full decision: directive first (asked if not given), then choice.

        *resolve* is called for the eligible profiles only when the
        directive is to configure, so skip and disable never probe.
        """
        if directive is None:
            directive = self.ask_directive(category)
        if directive == Directive.DISABLE:
            return Decision.disable()
        if directive == Directive.SKIP:
            return Decision.skip()
        return self.choose(category, resolve())

    # ── Branches ────────────────────────────────────────────────

    def _choose_none(self, info: CategoryInfo) -> Decision:
        self.reporter.warning(f"No compatible {info.label} backends detected.")
        if self.prompter.confirm(f"Do you want to configure {info.label} manually?", default=False):
            return self.manual_entry(info)
        return Decision.skip()

    def _choose_one(self, info: CategoryInfo, profile: str) -> Decision:
        self.reporter.success(f"Detected: {profile}")
        if self.prompter.confirm(f"Configure {profile} {info.label}?", default=True):
            return Decision.apply(profile)
        self.reporter.info(f"Skipping {info.label} configuration.")
        return Decision.skip()

    def _choose_menu(self, info: CategoryInfo, profiles: list[str]) -> Decision:
        self.reporter.success(f"Detected: {' '.join(profiles)}")
        self.reporter.info("Multiple backends available. Please choose one:")
        options = [*profiles, "Manual configuration", f"Disable {info.label}", f"Skip {info.label}"]
        for i, option in enumerate(options, start=1):
            self.reporter.info(f"{i}. {option}")

        n = len(profiles)
        while True:
            answer = self.prompter.ask(f"Enter your choice (1-{len(options)})", default=None).strip()
            if not answer.isdigit() or not 1 <= int(answer) <= len(options):
                self.reporter.error("Invalid choice. Please try again.")
                continue
            choice = int(answer)
            if choice <= n:
                return Decision.apply(profiles[choice - 1])
            if choice == n + 1:
                return self.manual_entry(info)
            if choice == n + 2:
                return Decision.disable()
            self.reporter.info(f"Skipping {info.label} configuration.")
            return Decision.skip()

    def manual_entry(self, info: CategoryInfo) -> Decision:
        """Let the operator name a profile from the category's closed set."""
        valid = ", ".join(info.profiles)
        self.reporter.info(f"Available backends: {valid}")
        answer = self.prompter.ask(
            "Enter the backend you want to use (or 'disable' to remove, or press Enter to skip)",
            default="",
        ).strip()
        if not answer:
            self.reporter.info(f"Skipping {info.label} configuration.")
            return Decision.skip()
        if answer == "disable":
            return Decision.disable()
        if info.is_profile(answer):
            return Decision.apply(answer)
        self.reporter.error(f"Invalid backend: {answer}")
        self.reporter.info(f"Valid options: {valid}, disable")
        return Decision.skip()

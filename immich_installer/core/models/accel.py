"""
Acceleration models — categories, profiles, and probe evidence.

A *category* is one of the two independent acceleration axes
(video transcoding, machine-learning inference).  Each category owns
a closed set of *profiles*: the service names inside the vendor's
hwaccel fragment file.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class AccelerationCategory(str, Enum):
    """The two acceleration axes an install can configure."""

    TRANSCODING = "transcoding"
    INFERENCE = "inference"

    @classmethod
    def parse(cls, value: str) -> "AccelerationCategory":
        """Parse a category name, accepting ``ml`` as an alias for inference."""
        normalized = value.strip().lower()
        if normalized == "ml":
            normalized = cls.INFERENCE.value
        return cls(normalized)

    @property
    def info(self) -> "CategoryInfo":
        return CATEGORIES[self]


class HardwareFamily(str, Enum):
    """Hardware families probed for evidence."""

    NVIDIA = "nvidia"
    INTEL = "intel"
    VAAPI = "vaapi"
    ROCKCHIP = "rockchip"
    AMD = "amd"
    MALI = "mali"
    RKNPU = "rknpu"


class CategoryInfo(BaseModel):
    """Static facts about one category: where it lives in the manifest and
    which hardware families are probed for it, in resolver order."""

    category: AccelerationCategory
    label: str
    service: str
    fragment_file: str
    profiles: tuple[str, ...]
    families: tuple[HardwareFamily, ...]
    tags_image: bool = False

    def is_profile(self, name: str) -> bool:
        return name in self.profiles


CATEGORIES: dict[AccelerationCategory, CategoryInfo] = {
    AccelerationCategory.TRANSCODING: CategoryInfo(
        category=AccelerationCategory.TRANSCODING,
        label="hardware transcoding",
        service="immich-server",
        fragment_file="hwaccel.transcoding.yml",
        profiles=("nvenc", "qsv", "vaapi", "vaapi-wsl", "rkmpp"),
        families=(
            HardwareFamily.NVIDIA,
            HardwareFamily.INTEL,
            HardwareFamily.VAAPI,
            HardwareFamily.ROCKCHIP,
        ),
    ),
    AccelerationCategory.INFERENCE: CategoryInfo(
        category=AccelerationCategory.INFERENCE,
        label="ML hardware acceleration",
        service="immich-machine-learning",
        fragment_file="hwaccel.ml.yml",
        profiles=("cuda", "rocm", "openvino", "armnn", "rknn"),
        families=(
            HardwareFamily.NVIDIA,
            HardwareFamily.AMD,
            HardwareFamily.INTEL,
            HardwareFamily.MALI,
            HardwareFamily.RKNPU,
        ),
        tags_image=True,
    ),
}


class CapabilityEvidence(BaseModel):
    """What the probe found for one hardware family.

    Only the fields that matter for a family are filled in; the rest
    stay at their falsy defaults.  Recomputed on every run, never saved.
    """

    family: HardwareFamily
    gpu_present: bool = False
    toolkit_present: bool = False
    device_node_present: bool = False
    library_present: bool = False
    soc_match: bool = False
    driver_version: str = ""
    gpu_name: str = ""
    gpu_class: str = ""   # "5.2+" (nvidia compute tier), "discrete"/"integrated" (intel)


class ProbeReport(BaseModel):
    """All evidence gathered for one category, in resolver order."""

    category: AccelerationCategory
    guest_virtualization: bool = False
    evidence: list[CapabilityEvidence] = Field(default_factory=list)

    def get(self, family: HardwareFamily) -> CapabilityEvidence:
        """Evidence for *family*, or an all-negative record if not probed."""
        for ev in self.evidence:
            if ev.family == family:
                return ev
        return CapabilityEvidence(family=family)


class Resolution(BaseModel):
    """Eligible profiles for a category plus any advisories raised."""

    category: AccelerationCategory
    profiles: list[str] = Field(default_factory=list)
    advisories: list[str] = Field(default_factory=list)

"""
Profile resolver — turn probe evidence into eligible profiles.

Pure function over a ``ProbeReport``; it never touches the host.
Profiles come out in a fixed order (vendor-specific first, generic and
SoC last) so the menu is stable from run to run.  A family that is
partially present is excluded and explained through an advisory.
"""

from __future__ import annotations

import logging

from immich_installer.core.models.accel import (
    AccelerationCategory,
    HardwareFamily,
    ProbeReport,
    Resolution,
)
from immich_installer.core.services.capability_probe import LIBMALI_PATHS, MALI_DEVICE, RKNPU_VERSION_FILE

logger = logging.getLogger(__name__)

NVIDIA_TOOLKIT_URL = (
    "https://docs.nvidia.com/datacenter/cloud-native/container-toolkit/"
    "latest/install-guide.html"
)


def resolve_profiles(report: ProbeReport) -> Resolution:
    """Map a probe report to eligible profiles plus advisories."""
    if report.category == AccelerationCategory.TRANSCODING:
        resolution = _resolve_transcoding(report)
    else:
        resolution = _resolve_inference(report)
    logger.info(
        "Resolved %s profiles: %s (%d advisories)",
        report.category.value, resolution.profiles or "none", len(resolution.advisories),
    )
    return resolution


def _resolve_transcoding(report: ProbeReport) -> Resolution:
    res = Resolution(category=report.category)
    guest = report.guest_virtualization

    nvidia = report.get(HardwareFamily.NVIDIA)
    if nvidia.gpu_present and nvidia.toolkit_present:
        res.profiles.append("nvenc")
    elif nvidia.gpu_present:
        res.advisories.append("NVIDIA GPU detected but Container Toolkit not installed.")
        res.advisories.append(f"Install NVIDIA Container Toolkit: {NVIDIA_TOOLKIT_URL}")

    # Quick Sync needs direct device access, which WSL2 does not provide
    intel = report.get(HardwareFamily.INTEL)
    if intel.device_node_present and intel.gpu_present and not guest:
        res.profiles.append("qsv")

    if report.get(HardwareFamily.VAAPI).device_node_present:
        res.profiles.append("vaapi-wsl" if guest else "vaapi")

    if report.get(HardwareFamily.ROCKCHIP).soc_match:
        res.profiles.append("rkmpp")

    return res


def _resolve_inference(report: ProbeReport) -> Resolution:
    res = Resolution(category=report.category)

    nvidia = report.get(HardwareFamily.NVIDIA)
    if nvidia.gpu_present:
        if not nvidia.gpu_class:
            res.advisories.append(
                f"NVIDIA GPU detected ({nvidia.gpu_name or 'unknown model'}) but its "
                "CUDA compute capability could not be confirmed (5.2+ required)."
            )
        elif nvidia.toolkit_present:
            res.profiles.append("cuda")
        else:
            res.advisories.append(
                "NVIDIA GPU detected but Container Toolkit not installed (required for ML)."
            )
            res.advisories.append(f"Install NVIDIA Container Toolkit: {NVIDIA_TOOLKIT_URL}")

    if report.get(HardwareFamily.AMD).gpu_present:
        res.profiles.append("rocm")

    if report.get(HardwareFamily.INTEL).gpu_present:
        res.profiles.append("openvino")

    mali = report.get(HardwareFamily.MALI)
    if mali.gpu_present:
        if mali.device_node_present and mali.library_present:
            res.profiles.append("armnn")
        else:
            res.advisories.append("Mali GPU detected but missing requirements for ARM NN.")
            if not mali.device_node_present:
                res.advisories.append(f"Missing: {MALI_DEVICE} device")
            if not mali.library_present:
                res.advisories.append(
                    f"Missing: libmali.so library (looked in {', '.join(LIBMALI_PATHS)})"
                )

    rknpu = report.get(HardwareFamily.RKNPU)
    if rknpu.soc_match:
        if rknpu.driver_version:
            res.profiles.append("rknn")
        else:
            res.advisories.append("Supported Rockchip SoC detected but RKNPU driver not found.")
            res.advisories.append(f"Check: cat {RKNPU_VERSION_FILE}")

    return res

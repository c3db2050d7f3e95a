"""
Capability probe — gather evidence of GPU/NPU acceleration on the host.

One ``probe_*`` function per hardware family; each returns a
``CapabilityEvidence`` and never raises.  ``probe_category`` runs the
families for a category in resolver order.

The vendor-name and marketing-name checks are substring heuristics over
``lspci``/``lscpu``/``nvidia-smi`` output.  They are approximate on
purpose: a false negative still leaves manual selection available.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from immich_installer.core.models.accel import (
    AccelerationCategory,
    CapabilityEvidence,
    HardwareFamily,
    ProbeReport,
)
from immich_installer.core.services.host import HostInspector

logger = logging.getLogger(__name__)

NVIDIA_RUNTIME_PATH = "/usr/bin/nvidia-container-runtime"
DOCKER_DAEMON_JSON = "/etc/docker/daemon.json"
RENDER_NODE_GLOB = "/dev/dri/render*"
MALI_DEVICE = "/dev/mali0"
LIBMALI_PATHS = ("/usr/lib/libmali.so", "/usr/lib/aarch64-linux-gnu/libmali.so")
RKNPU_VERSION_FILE = "/sys/kernel/debug/rknpu/version"

_CUDA_TIER_RE = re.compile(r"RTX|GTX 10|GTX 16|Tesla|Quadro")
_INTEL_VGA_RE = re.compile(r"vga.*intel", re.IGNORECASE)
_INTEL_DISPLAY_RE = re.compile(r"vga.*intel|display.*intel", re.IGNORECASE)
_INTEL_DISCRETE_RE = re.compile(r"intel.*(iris|arc|xe)", re.IGNORECASE)
_AMD_RE = re.compile(r"amd.*(radeon|rx|vega)", re.IGNORECASE)
_ROCKCHIP_RE = re.compile(r"rockchip|rk35|rk33", re.IGNORECASE)
_RKNPU_LINE_RE = re.compile(r"rk35|rk36", re.IGNORECASE)
_RKNPU_SOC_RE = re.compile(r"RK3566|RK3568|RK3576|RK3588", re.IGNORECASE)
_ARM_CPU_RE = re.compile(r"arm|aarch64", re.IGNORECASE)
_MALI_RE = re.compile(r"mali", re.IGNORECASE)


# ── Shared checks ──────────────────────────────────────────────


def _has_render_node(host: HostInspector) -> bool:
    return bool(host.glob(RENDER_NODE_GLOB))


def _nvidia_gpu_present(host: HostInspector) -> bool:
    if not host.which("nvidia-smi"):
        return False
    r = host.run(["nvidia-smi"])
    return r is not None and r.returncode == 0


def _nvidia_toolkit_present(host: HostInspector) -> bool:
    """Is the NVIDIA Container Toolkit wired into docker?"""
    if host.which("nvidia-container-runtime") or host.exists(NVIDIA_RUNTIME_PATH):
        return True
    if "nvidia" in host.output(["docker", "info"], timeout=10):
        return True
    daemon_json = host.read_text(DOCKER_DAEMON_JSON) or ""
    return "nvidia" in daemon_json


# ═══════════════════════════════════════════════════════════════════
#  Transcoding families
# ═══════════════════════════════════════════════════════════════════


def probe_nvidia(host: HostInspector, *, guest: bool, inference: bool = False) -> CapabilityEvidence:
    """NVIDIA GPU + container toolkit (+ compute tier for inference).

    Under WSL2 the toolkit is not needed, so a present GPU counts as
    toolkit-ready.
    """
    ev = CapabilityEvidence(family=HardwareFamily.NVIDIA)
    ev.gpu_present = _nvidia_gpu_present(host)
    if not ev.gpu_present:
        return ev

    ev.toolkit_present = True if guest else _nvidia_toolkit_present(host)

    if inference:
        out = host.output([
            "nvidia-smi", "--query-gpu=name", "--format=csv,noheader,nounits",
        ])
        lines = out.strip().splitlines()
        ev.gpu_name = lines[0].strip() if lines else ""
        if _CUDA_TIER_RE.search(ev.gpu_name):
            ev.gpu_class = "5.2+"
    return ev


def probe_intel_qsv(host: HostInspector) -> CapabilityEvidence:
    ev = CapabilityEvidence(family=HardwareFamily.INTEL)
    ev.device_node_present = _has_render_node(host)
    ev.gpu_present = bool(_INTEL_VGA_RE.search(host.lspci))
    return ev


def probe_vaapi(host: HostInspector) -> CapabilityEvidence:
    """Any render node counts, whatever the vendor."""
    present = _has_render_node(host)
    return CapabilityEvidence(
        family=HardwareFamily.VAAPI,
        gpu_present=present,
        device_node_present=present,
    )


def probe_rockchip(host: HostInspector) -> CapabilityEvidence:
    return CapabilityEvidence(
        family=HardwareFamily.ROCKCHIP,
        soc_match=bool(_ROCKCHIP_RE.search(host.lscpu)),
    )


# ═══════════════════════════════════════════════════════════════════
#  Inference families
# ═══════════════════════════════════════════════════════════════════


def probe_amd(host: HostInspector) -> CapabilityEvidence:
    return CapabilityEvidence(
        family=HardwareFamily.AMD,
        gpu_present=bool(_AMD_RE.search(host.lspci)),
    )


def probe_intel_openvino(host: HostInspector) -> CapabilityEvidence:
    """Intel GPU, classified discrete (Iris/Arc/Xe) or integrated."""
    ev = CapabilityEvidence(family=HardwareFamily.INTEL)
    lspci = host.lspci
    if not _INTEL_DISPLAY_RE.search(lspci):
        return ev
    ev.gpu_present = True
    ev.gpu_class = "discrete" if _INTEL_DISCRETE_RE.search(lspci) else "integrated"
    return ev


def probe_mali(host: HostInspector) -> CapabilityEvidence:
    ev = CapabilityEvidence(family=HardwareFamily.MALI)
    ev.gpu_present = bool(
        _ARM_CPU_RE.search(host.lscpu) and _MALI_RE.search(host.lspci)
    )
    ev.device_node_present = host.is_char_device(MALI_DEVICE)
    if ev.device_node_present:
        # The device node is proof enough of a Mali GPU
        ev.gpu_present = True
    ev.library_present = any(host.exists(p) for p in LIBMALI_PATHS)
    return ev


def probe_rknpu(host: HostInspector) -> CapabilityEvidence:
    ev = CapabilityEvidence(family=HardwareFamily.RKNPU)
    for line in host.lscpu.splitlines():
        if _RKNPU_LINE_RE.search(line):
            ev.soc_match = bool(_RKNPU_SOC_RE.search(line))
            break
    ev.driver_version = read_rknpu_version(host)
    return ev


def read_rknpu_version(host: HostInspector) -> str:
    """RKNPU driver version, ``"unknown"`` if unreadable, ``""`` if absent."""
    if not host.exists(RKNPU_VERSION_FILE):
        return ""
    text = host.read_text(RKNPU_VERSION_FILE)
    if text is None:
        return "unknown"
    return text.strip() or "unknown"


# ═══════════════════════════════════════════════════════════════════
#  Category probe
# ═══════════════════════════════════════════════════════════════════


_Probe = Callable[[HostInspector, bool], CapabilityEvidence]

_TRANSCODING_PROBES: dict[HardwareFamily, _Probe] = {
    HardwareFamily.NVIDIA: lambda host, guest: probe_nvidia(host, guest=guest),
    HardwareFamily.INTEL: lambda host, guest: probe_intel_qsv(host),
    HardwareFamily.VAAPI: lambda host, guest: probe_vaapi(host),
    HardwareFamily.ROCKCHIP: lambda host, guest: probe_rockchip(host),
}

_INFERENCE_PROBES: dict[HardwareFamily, _Probe] = {
    HardwareFamily.NVIDIA: lambda host, guest: probe_nvidia(host, guest=guest, inference=True),
    HardwareFamily.AMD: lambda host, guest: probe_amd(host),
    HardwareFamily.INTEL: lambda host, guest: probe_intel_openvino(host),
    HardwareFamily.MALI: lambda host, guest: probe_mali(host),
    HardwareFamily.RKNPU: lambda host, guest: probe_rknpu(host),
}


def probe_category(
    category: AccelerationCategory,
    host: HostInspector,
    *,
    guest: bool | None = None,
) -> ProbeReport:
    """Collect evidence for every family of *category*.

    Args:
        guest: Force guest-virtualization mode on or off; ``None``
            detects it from the host.
    """
    if guest is None:
        guest = host.is_guest_virtualization()

    inference = category == AccelerationCategory.INFERENCE
    probes = _INFERENCE_PROBES if inference else _TRANSCODING_PROBES
    evidence = [probes[family](host, guest) for family in category.info.families]

    report = ProbeReport(category=category, guest_virtualization=guest, evidence=evidence)
    logger.info(
        "Probed %s (guest=%s): %s",
        category.value, guest,
        ", ".join(
            f"{ev.family.value}={'yes' if ev.gpu_present or ev.soc_match else 'no'}"
            for ev in evidence
        ),
    )
    return report

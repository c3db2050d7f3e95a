"""Post-apply guidance for each acceleration profile.

Purely informational: nothing here changes a file.
"""

from __future__ import annotations

from immich_installer.core.models.accel import AccelerationCategory
from immich_installer.core.services.capability_probe import read_rknpu_version
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.reporting import Reporter

MALI_FIRMWARE = "/lib/firmware/mali_csffw.bin"


def emit_backend_advice(
    category: AccelerationCategory,
    profile: str,
    reporter: Reporter,
    host: HostInspector,
) -> None:
    if category == AccelerationCategory.TRANSCODING:
        _transcoding_advice(profile, reporter)
    else:
        _inference_advice(profile, reporter, host)


def _transcoding_advice(profile: str, reporter: Reporter) -> None:
    reporter.info("Remember to:")
    reporter.info("1. Enable hardware acceleration in Admin > Video transcoding settings")
    reporter.info(f"2. Choose the appropriate hardware acceleration option: {profile}")
    if profile == "nvenc":
        reporter.info("3. Consider enabling hardware decoding in the video transcoding settings")


def _inference_advice(profile: str, reporter: Reporter, host: HostInspector) -> None:
    if profile == "cuda":
        reporter.info("CUDA backend selected. Ensure your GPU has compute capability 5.2 or higher.")
        reporter.info("Driver version must be >= 545 (CUDA 12.3 support).")
        reporter.info("Optional: Set MACHINE_LEARNING_DEVICE_IDS=0,1 for multi-GPU setups.")
        reporter.info("Optional: Increase MACHINE_LEARNING_WORKERS for better utilization.")
    elif profile == "rocm":
        reporter.warning("ROCm image is quite large (35GB+ disk space required).")
        reporter.info("If your GPU isn't officially supported, you may need to set:")
        reporter.info("HSA_OVERRIDE_GFX_VERSION=<supported_version> (e.g., 10.3.0)")
        reporter.info("If that doesn't work, also try: HSA_USE_SVM=0")
    elif profile == "openvino":
        reporter.info("OpenVINO backend selected for Intel GPUs.")
        reporter.warning("Expect higher RAM usage compared to CPU processing.")
        reporter.info("Discrete GPUs generally work better than integrated ones.")
        reporter.info("For multi-GPU: Set MACHINE_LEARNING_DEVICE_IDS=0,1")
    elif profile == "armnn":
        reporter.info("ARM NN backend selected for Mali GPUs.")
        if not host.exists(MALI_FIRMWARE):
            reporter.warning(f"Optional firmware file {MALI_FIRMWARE} not found.")
            reporter.info("Update hwaccel.ml.yml if your device doesn't require this file.")
        reporter.info("Recommended: Add MACHINE_LEARNING_ANN_FP16_TURBO=true to .env for better performance.")
    elif profile == "rknn":
        reporter.info("RKNN backend selected for Rockchip NPU.")
        version = read_rknpu_version(host)
        if version and version != "unknown":
            reporter.success(f"RKNPU driver version: {version}")
        reporter.info("Recommended for RK3576/RK3588: Add MACHINE_LEARNING_RKNN_THREADS=2 to .env")
        reporter.info("For RK3588: MACHINE_LEARNING_RKNN_THREADS=3 for maximum performance")
        reporter.warning("Higher thread count increases RAM usage proportionally.")

    reporter.info("The ML service will use hardware acceleration for Smart Search and Face Detection.")
    reporter.info("No additional configuration needed in the web interface.")

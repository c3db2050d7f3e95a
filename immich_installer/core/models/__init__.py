"""
Domain models for the installer.

All models are re-exported here for convenient access:

    from immich_installer.core.models import ManifestDocument, AccelerationCategory
"""

from immich_installer.core.models.accel import (
    CATEGORIES,
    AccelerationCategory,
    CapabilityEvidence,
    CategoryInfo,
    HardwareFamily,
    ProbeReport,
    Resolution,
)
from immich_installer.core.models.env_file import EnvFileError, EnvironmentStore
from immich_installer.core.models.manifest import (
    ExtensionRef,
    ManifestDocument,
    ManifestError,
    Section,
    ServiceBlock,
    ServicesSection,
)

__all__ = [
    # accel.py
    "AccelerationCategory",
    "CATEGORIES",
    "CapabilityEvidence",
    "CategoryInfo",
    "HardwareFamily",
    "ProbeReport",
    "Resolution",
    # env_file.py
    "EnvFileError",
    "EnvironmentStore",
    # manifest.py
    "ExtensionRef",
    "ManifestDocument",
    "ManifestError",
    "Section",
    "ServiceBlock",
    "ServicesSection",
]

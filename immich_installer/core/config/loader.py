"""
Settings loader — reads the optional installer settings file.

Settings come from three layers, later ones winning:

    1. Built-in defaults (``InstallerSettings``)
    2. A YAML file: ``--config PATH`` or ``$IMMICH_INSTALLER_CONFIG``
    3. Environment overrides (``IMMICH_INSTALLER_RELEASE_URL``,
       ``IMMICH_INSTALLER_WSL``)

The YAML is validated against the Pydantic schema so a typo fails
loudly instead of silently falling back to a default.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ENV_CONFIG = "IMMICH_INSTALLER_CONFIG"
ENV_RELEASE_URL = "IMMICH_INSTALLER_RELEASE_URL"
ENV_WSL = "IMMICH_INSTALLER_WSL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class ConfigError(Exception):
    """Raised when the settings file is invalid or missing."""


class InstallerSettings(BaseModel):
    """Where to download from and what the install folder looks like."""

    release_url: str = "https://github.com/immich-app/immich/releases/latest/download"
    compose_file: str = "docker-compose.yml"
    env_file: str = ".env"
    env_template: str = "example.env"
    default_folder: str = "./immich-app"
    fetch_timeout: int = 30
    # None = auto-detect from /proc/version
    guest_virtualization: bool | None = None

    def resource_url(self, name: str) -> str:
        """URL of a named release asset."""
        return f"{self.release_url.rstrip('/')}/{name}"


def load_settings(path: Path | None = None) -> InstallerSettings:
    """Load settings from *path* (or ``$IMMICH_INSTALLER_CONFIG``) plus env overrides.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    if path is None and os.environ.get(ENV_CONFIG):
        path = Path(os.environ[ENV_CONFIG])

    data: dict = {}
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")

        logger.debug("Loading installer settings from %s", path)
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}")
        data = raw

    if os.environ.get(ENV_RELEASE_URL):
        data["release_url"] = os.environ[ENV_RELEASE_URL]

    wsl = os.environ.get(ENV_WSL, "").strip().lower()
    if wsl in _TRUTHY:
        data["guest_virtualization"] = True
    elif wsl in _FALSY:
        data["guest_virtualization"] = False
    elif wsl:
        raise ConfigError(f"{ENV_WSL} must be a boolean, got {wsl!r}")

    try:
        return InstallerSettings.model_validate(data)
    except ValidationError as e:
        errors = []
        for err in e.errors():
            loc = " → ".join(str(x) for x in err["loc"])
            errors.append(f"  {loc}: {err['msg']}")
        raise ConfigError("Invalid installer settings:\n" + "\n".join(errors)) from e

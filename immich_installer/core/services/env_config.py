"""
Environment configuration — the interactive pass over a fresh ``.env``.

Walks the handful of keys an operator usually changes, in this order:
upload location, database location, timezone, Immich version, database
password.  A blank answer keeps the current value, except for the
password, where blank means "generate one".
"""

from __future__ import annotations

import logging
import secrets
import string

from immich_installer.core.models.env_file import EnvironmentStore
from immich_installer.core.models.manifest import ManifestDocument
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import Reporter

logger = logging.getLogger(__name__)

PGDATA_VOLUME = "pgdata"

# Key → value shipped in example.env
DEFAULTS = {
    "UPLOAD_LOCATION": "./library",
    "DB_DATA_LOCATION": "./postgres",
    "TZ": "Etc/UTC",
    "IMMICH_VERSION": "release",
    "DB_PASSWORD": "postgres",
}

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int = 32) -> str:
    """Random alphanumeric password (no symbols, so it is safe in .env)."""
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def _current(store: EnvironmentStore, key: str) -> str:
    value = store.get(key)
    return value if value is not None else DEFAULTS[key]


def configure_environment(
    store: EnvironmentStore,
    doc: ManifestDocument,
    prompter: Prompter,
    reporter: Reporter,
    *,
    guest: bool,
) -> dict:
    """Prompt for each key and update *store* (and *doc* for the WSL volume).

    Returns:
        {"changed": [keys...], "volumes": [names added to the manifest]}
    """
    changed: list[str] = []
    volumes: list[str] = []

    def _set(key: str, value: str) -> None:
        if store.set(key, value):
            changed.append(key)

    # ── Upload location ─────────────────────────────────────────
    current = _current(store, "UPLOAD_LOCATION")
    reporter.info(f"Current UPLOAD_LOCATION: {current}")
    answer = prompter.ask(f"Enter upload location (press Enter to keep '{current}')", default="").strip()
    if answer:
        _set("UPLOAD_LOCATION", answer)
        reporter.success(f"Upload location set to: {answer}")
    else:
        reporter.info(f"Keeping default upload location: {current}")

    # ── Database location ───────────────────────────────────────
    # Postgres cannot own its data directory on a Windows bind mount
    use_volume = False
    if guest:
        reporter.warning("WSL detected!")
        reporter.info("Database files on a Windows bind mount will not work with Postgres.")
        use_volume = prompter.confirm(
            "Do you want to use a Docker volume instead of a bind mount? (recommended for WSL)",
            default=True,
        )

    if use_volume:
        _set("DB_DATA_LOCATION", PGDATA_VOLUME)
        if doc.add_volume(PGDATA_VOLUME):
            volumes.append(PGDATA_VOLUME)
            reporter.success(f"Added volume '{PGDATA_VOLUME}' to docker-compose.yml")
        else:
            reporter.info(f"Volume '{PGDATA_VOLUME}' already exists in docker-compose.yml")
        reporter.success("Database will use Docker volume 'pgdata'.")
    else:
        current = _current(store, "DB_DATA_LOCATION")
        reporter.info(f"Current DB_DATA_LOCATION: {current}")
        answer = prompter.ask(
            f"Enter database data location (press Enter to keep '{current}')", default="",
        ).strip()
        if answer:
            _set("DB_DATA_LOCATION", answer)
            reporter.success(f"Database location set to: {answer}")
        else:
            reporter.info(f"Keeping default database location: {current}")

    # ── Timezone ────────────────────────────────────────────────
    answer = prompter.ask(
        "Enter timezone (e.g., America/New_York, Europe/London, or press Enter to skip)", default="",
    ).strip()
    if answer:
        _set("TZ", answer)
        reporter.success(f"Timezone set to: {answer}")
    else:
        reporter.info("Timezone not configured (will use container default).")

    # ── Immich version ──────────────────────────────────────────
    current = _current(store, "IMMICH_VERSION")
    reporter.info(f"Current IMMICH_VERSION: {current}")
    answer = prompter.ask(
        f"Enter Immich version (press Enter to keep '{current}')", default="",
    ).strip()
    if answer:
        _set("IMMICH_VERSION", answer)
        reporter.success(f"Immich version set to: {answer}")
    else:
        reporter.info(f"Keeping Immich version: {current}")

    # ── Database password ───────────────────────────────────────
    answer = prompter.ask(
        "Enter database password (press Enter to generate a random password)", default="",
    ).strip()
    if not answer:
        answer = generate_password()
        reporter.info("Generated random password for database.")
    _set("DB_PASSWORD", answer)
    reporter.success("Database password configured.")

    logger.info("Environment configured: %s", ", ".join(changed) or "no changes")
    return {"changed": changed, "volumes": volumes}

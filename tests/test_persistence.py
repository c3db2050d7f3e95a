"""
Tests for persistence — atomic writes, compose and .env load/save, and
release downloads.
"""

from pathlib import Path

import pytest

from conftest import COMPOSE_YML, EXAMPLE_ENV
from immich_installer.core.models.manifest import ManifestDocument, ManifestError
from immich_installer.core.persistence.documents import (
    atomic_write_text,
    load_env,
    load_manifest,
    save_env,
    save_manifest,
)
from immich_installer.core.services.fetch import FetchError, fetch_resource


class TestAtomicWrite:
    def test_creates_parents(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "file.txt"
        atomic_write_text(path, "hello\n")
        assert path.read_text() == "hello\n"

    def test_no_temp_files_left(self, tmp_path: Path):
        path = tmp_path / "file.txt"
        atomic_write_text(path, "one\n")
        atomic_write_text(path, "two\n")
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]
        assert path.read_text() == "two\n"

    def test_preserves_crlf(self, tmp_path: Path):
        path = tmp_path / "file.txt"
        atomic_write_text(path, "a\r\nb\r\n")
        assert path.read_bytes() == b"a\r\nb\r\n"


class TestManifestFile:
    def test_load_and_save_roundtrip(self, tmp_path: Path):
        path = tmp_path / "docker-compose.yml"
        path.write_text(COMPOSE_YML)
        doc = load_manifest(path)
        save_manifest(doc, path)
        assert path.read_text() == COMPOSE_YML

    def test_load_missing(self, tmp_path: Path):
        with pytest.raises(ManifestError, match="not found"):
            load_manifest(tmp_path / "docker-compose.yml")

    def test_invalid_document_not_written(self, tmp_path: Path):
        path = tmp_path / "docker-compose.yml"
        doc = ManifestDocument.parse("services:\n  app:\n    image: [oops\n")
        with pytest.raises(ManifestError):
            save_manifest(doc, path)
        assert not path.exists()


class TestEnvFile:
    def test_missing_is_empty(self, tmp_path: Path):
        store = load_env(tmp_path / ".env")
        assert store.lines == []

    def test_roundtrip(self, tmp_path: Path):
        path = tmp_path / ".env"
        path.write_text(EXAMPLE_ENV)
        store = load_env(path)
        store.set("IMMICH_VERSION", "v1.120.0")
        save_env(store, path)
        assert "IMMICH_VERSION=v1.120.0\n" in path.read_text()


class TestFetchResource:
    def test_fetch_file_url(self, tmp_path: Path):
        src = tmp_path / "release" / "hwaccel.ml.yml"
        src.parent.mkdir()
        src.write_text("services: {}\n")
        dest = tmp_path / "install" / "hwaccel.ml.yml"

        assert fetch_resource(src.as_uri(), dest) == dest
        assert dest.read_text() == "services: {}\n"
        assert [p.name for p in dest.parent.iterdir()] == ["hwaccel.ml.yml"]

    def test_missing_source(self, tmp_path: Path):
        dest = tmp_path / "install" / "hwaccel.ml.yml"
        with pytest.raises(FetchError):
            fetch_resource((tmp_path / "nope.yml").as_uri(), dest)
        assert not dest.exists()
        assert list(dest.parent.iterdir()) == []

    def test_failed_fetch_keeps_existing_file(self, tmp_path: Path):
        dest = tmp_path / "hwaccel.ml.yml"
        dest.write_text("old\n")
        with pytest.raises(FetchError):
            fetch_resource((tmp_path / "nope.yml").as_uri(), dest)
        assert dest.read_text() == "old\n"

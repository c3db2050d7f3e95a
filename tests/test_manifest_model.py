"""
Tests for the manifest model — parse, render, and in-place edits of
docker-compose.yml.

Pure unit tests: compose text in, compose text out.
"""

import textwrap

import pytest
import yaml

from conftest import COMPOSE_YML
from immich_installer.core.models.manifest import (
    ExtensionRef,
    ManifestDocument,
    ManifestError,
)

ML_PROFILES = ("cuda", "rocm", "openvino", "armnn", "rknn")


@pytest.fixture
def doc() -> ManifestDocument:
    return ManifestDocument.parse(COMPOSE_YML)


# ═══════════════════════════════════════════════════════════════════
#  Parse / render
# ═══════════════════════════════════════════════════════════════════


class TestParse:
    def test_render_is_lossless(self, doc):
        assert doc.render() == COMPOSE_YML

    def test_render_keeps_missing_trailing_newline(self):
        text = "services:\n  a:\n    image: x"
        assert ManifestDocument.parse(text).render() == text

    def test_services_in_file_order(self, doc):
        assert list(doc.services) == [
            "immich-server", "immich-machine-learning", "redis", "database",
        ]

    def test_top_level_volumes(self, doc):
        assert doc.volumes == ["model-cache"]

    def test_service_lookup_missing(self, doc):
        with pytest.raises(ManifestError, match="not found"):
            doc.service("immich-proxy")

    def test_duplicate_service_rejected(self):
        text = "services:\n  a:\n    image: x\n  a:\n    image: y\n"
        with pytest.raises(ManifestError, match="Duplicate service"):
            ManifestDocument.parse(text)

    def test_duplicate_top_level_key_rejected(self):
        text = "services:\n  a:\n    image: x\nservices:\n  b:\n    image: y\n"
        with pytest.raises(ManifestError, match="Duplicate top-level"):
            ManifestDocument.parse(text)

    def test_duplicate_volume_rejected(self):
        text = "volumes:\n  data:\n  data:\n"
        with pytest.raises(ManifestError, match="Duplicate volume"):
            ManifestDocument.parse(text)

    def test_validate_returns_mapping(self, doc):
        data = doc.validate()
        assert data["name"] == "immich"

    def test_validate_rejects_broken_yaml(self):
        broken = ManifestDocument.parse("services:\n  a:\n    image: [oops\n")
        with pytest.raises(ManifestError, match="not valid YAML"):
            broken.validate()


# ═══════════════════════════════════════════════════════════════════
#  Extension references
# ═══════════════════════════════════════════════════════════════════


class TestExtension:
    def test_stock_file_has_only_commented_reference(self, doc):
        block = doc.service("immich-server")
        assert block.extension is None
        assert block.has_commented_extension is True

    def test_set_extension_after_container_name(self, doc):
        block = doc.service("immich-server")
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "nvenc"))

        assert block.body[:4] == [
            "    container_name: immich_server",
            "    extends:",
            "      file: hwaccel.transcoding.yml",
            "      service: nvenc",
        ]
        assert block.has_commented_extension is False
        data = doc.validate()
        assert data["services"]["immich-server"]["extends"] == {
            "file": "hwaccel.transcoding.yml",
            "service": "nvenc",
        }

    def test_set_extension_twice_is_stable(self, doc):
        block = doc.service("immich-server")
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "vaapi"))
        first = doc.render()
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "vaapi"))
        assert doc.render() == first

    def test_replacing_leaves_one_reference(self, doc):
        block = doc.service("immich-server")
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "nvenc"))
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "qsv"))

        assert block.extension == ExtensionRef("hwaccel.transcoding.yml", "qsv")
        assert sum(1 for line in block.body if line.strip() == "extends:") == 1

    def test_set_extension_without_container_name(self):
        doc = ManifestDocument.parse("services:\n  app:\n    image: x\n")
        doc.service("app").set_extension(ExtensionRef("f.yml", "p"))
        assert doc.render() == (
            "services:\n  app:\n    extends:\n      file: f.yml\n      service: p\n    image: x\n"
        )

    def test_reads_existing_reference_with_comment(self):
        text = textwrap.dedent("""\
            services:
              app:
                extends:
                  file: hwaccel.ml.yml
                  service: cuda # picked by hand
                image: x
        """)
        block = ManifestDocument.parse(text).service("app")
        assert block.extension == ExtensionRef("hwaccel.ml.yml", "cuda")

    def test_remove_keeps_commented_by_default(self, doc):
        block = doc.service("immich-machine-learning")
        assert block.remove_extensions() is False
        assert doc.render() == COMPOSE_YML

    def test_remove_active_reference(self, doc):
        block = doc.service("immich-server")
        block.set_extension(ExtensionRef("hwaccel.transcoding.yml", "nvenc"))
        assert block.remove_extensions() is True
        assert block.extension is None
        assert "extends" not in doc.validate()["services"]["immich-server"]


# ═══════════════════════════════════════════════════════════════════
#  Image tag
# ═══════════════════════════════════════════════════════════════════


class TestImageSuffix:
    def test_stock_image_has_no_suffix(self, doc):
        block = doc.service("immich-machine-learning")
        assert block.image == "ghcr.io/immich-app/immich-machine-learning:${IMMICH_VERSION:-release}"
        assert block.image_suffix(ML_PROFILES) is None

    def test_set_suffix(self, doc):
        block = doc.service("immich-machine-learning")
        assert block.set_image_suffix("cuda", ML_PROFILES) is True
        assert block.image.endswith("${IMMICH_VERSION:-release}-cuda")

    def test_set_same_suffix_is_noop(self, doc):
        block = doc.service("immich-machine-learning")
        block.set_image_suffix("cuda", ML_PROFILES)
        assert block.set_image_suffix("cuda", ML_PROFILES) is False

    def test_switching_suffix_never_stacks(self, doc):
        block = doc.service("immich-machine-learning")
        block.set_image_suffix("cuda", ML_PROFILES)
        block.set_image_suffix("openvino", ML_PROFILES)
        assert block.image.endswith("${IMMICH_VERSION:-release}-openvino")
        assert "-cuda" not in block.image

    def test_strip_suffix(self, doc):
        block = doc.service("immich-machine-learning")
        block.set_image_suffix("rknn", ML_PROFILES)
        assert block.strip_image_suffix(ML_PROFILES) is True
        assert doc.render() == COMPOSE_YML

    def test_strip_without_suffix(self, doc):
        assert doc.service("immich-machine-learning").strip_image_suffix(ML_PROFILES) is False

    @pytest.mark.parametrize("quote", ['"', "'"])
    def test_quoted_image_keeps_quotes(self, quote):
        image = "ghcr.io/immich-app/immich-machine-learning:${IMMICH_VERSION:-release}"
        doc = ManifestDocument.parse(f"services:\n  ml:\n    image: {quote}{image}{quote}  # pinned\n")
        block = doc.service("ml")
        assert block.image == image

        assert block.set_image_suffix("cuda", ML_PROFILES) is True
        assert block.body[0] == f"    image: {quote}{image}-cuda{quote}  # pinned"
        assert doc.validate()["services"]["ml"]["image"] == f"{image}-cuda"

        assert block.image_suffix(ML_PROFILES) == "cuda"
        assert block.strip_image_suffix(ML_PROFILES) is True
        assert block.image == image

    def test_setter_requires_image_line(self):
        doc = ManifestDocument.parse("services:\n  app:\n    build: .\n")
        block = doc.service("app")
        assert block.image is None
        with pytest.raises(ManifestError, match="no image line"):
            block.image = "x"


# ═══════════════════════════════════════════════════════════════════
#  Uncomment
# ═══════════════════════════════════════════════════════════════════


class TestUncomment:
    def test_uncomment_keeps_hash_indent(self):
        text = textwrap.dedent("""\
            services:
              rkmpp:
                devices:
                  - /dev/rga:/dev/rga
                  #- /dev/mali0:/dev/mali0 # tonemapping
        """)
        doc = ManifestDocument.parse(text)
        assert doc.service("rkmpp").uncomment(["- /dev/mali0:/dev/mali0"]) == 1
        assert "      - /dev/mali0:/dev/mali0 # tonemapping" in doc.render().splitlines()
        assert doc.validate()["services"]["rkmpp"]["devices"] == [
            "/dev/rga:/dev/rga", "/dev/mali0:/dev/mali0",
        ]

    def test_uncomment_ignores_other_comments(self, doc):
        assert doc.service("immich-server").uncomment(["- /dev/mali0"]) == 0
        assert doc.render() == COMPOSE_YML


# ═══════════════════════════════════════════════════════════════════
#  Volumes
# ═══════════════════════════════════════════════════════════════════


class TestAddVolume:
    def test_adds_to_existing_section(self, doc):
        assert doc.add_volume("pgdata") is True
        assert doc.volumes == ["pgdata", "model-cache"]
        assert doc.render().endswith("volumes:\n  pgdata:\n  model-cache:\n")

    def test_existing_volume_is_noop(self, doc):
        assert doc.add_volume("model-cache") is False
        assert doc.render() == COMPOSE_YML

    def test_creates_section_when_missing(self):
        doc = ManifestDocument.parse("services:\n  app:\n    image: x\n")
        assert doc.add_volume("pgdata") is True
        assert doc.render() == "services:\n  app:\n    image: x\n\nvolumes:\n  pgdata:\n"
        assert "pgdata" in doc.validate()["volumes"]

    def test_service_level_volumes_are_not_top_level(self):
        doc = ManifestDocument.parse("services:\n  app:\n    volumes:\n      - pgdata:/data\n")
        assert doc.volumes == []
        assert doc.add_volume("pgdata") is True

    def test_added_volume_survives_yaml_load(self, doc):
        doc.add_volume("pgdata")
        data = yaml.safe_load(doc.render())
        assert set(data["volumes"]) == {"pgdata", "model-cache"}

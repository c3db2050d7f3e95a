"""
Shared test fixtures and configuration.

Nothing here touches the network or the real host: probes run against
``FakeHost``, downloads come from ``FakeFetcher``, and questions are
answered by ``ScriptedPrompter``.
"""

import fnmatch
import subprocess
import textwrap
from pathlib import Path

import pytest

from immich_installer.core.config.loader import InstallerSettings
from immich_installer.core.services.fetch import FetchError
from immich_installer.core.services.host import HostInspector
from immich_installer.core.services.prompts import Prompter
from immich_installer.core.services.reporting import MemoryReporter


# ═══════════════════════════════════════════════════════════════════
#  Sample release assets
# ═══════════════════════════════════════════════════════════════════


COMPOSE_YML = textwrap.dedent("""\
    #
    # WARNING: To install Immich, follow our guide: https://immich.app/docs/install/docker-compose
    #
    # Make sure to use the docker-compose.yml of the current release:
    #
    # https://github.com/immich-app/immich/releases/latest/download/docker-compose.yml
    #
    # The compose file on main may not be compatible with the latest release.

    name: immich

    services:
      immich-server:
        container_name: immich_server
        image: ghcr.io/immich-app/immich-server:${IMMICH_VERSION:-release}
        # extends:
        #   file: hwaccel.transcoding.yml
        #   service: cpu # set to one of [nvenc, quicksync, rkmpp, vaapi, vaapi-wsl] for accelerated transcoding
        volumes:
          # Do not edit the next line. If you want to change the media storage location on your system, edit the value of UPLOAD_LOCATION in the .env file
          - ${UPLOAD_LOCATION}:/data
          - /etc/localtime:/etc/localtime:ro
        env_file:
          - .env
        ports:
          - '2283:2283'
        depends_on:
          - redis
          - database
        restart: always
        healthcheck:
          disable: false

      immich-machine-learning:
        container_name: immich_machine_learning
        # For hardware acceleration, add one of -[armnn, cuda, rocm, openvino, rknn] to the image tag.
        # Example tag: ${IMMICH_VERSION:-release}-cuda
        image: ghcr.io/immich-app/immich-machine-learning:${IMMICH_VERSION:-release}
        # extends: # uncomment this section for hardware acceleration - see https://immich.app/docs/features/ml-hardware-acceleration
        #   file: hwaccel.ml.yml
        #   service: cpu # set to one of [armnn, cuda, rocm, openvino, openvino-wsl, rknn] for accelerated inference
        volumes:
          - model-cache:/cache
        env_file:
          - .env
        restart: always
        healthcheck:
          disable: false

      redis:
        container_name: immich_redis
        image: docker.io/valkey/valkey:8-bookworm
        healthcheck:
          test: redis-cli ping || exit 1
        restart: always

      database:
        container_name: immich_postgres
        image: ghcr.io/immich-app/postgres:14-vectorchord0.4.3-pgvectors0.2.0
        environment:
          POSTGRES_PASSWORD: ${DB_PASSWORD}
          POSTGRES_USER: ${DB_USERNAME}
          POSTGRES_DB: ${DB_DATABASE_NAME}
          POSTGRES_INITDB_ARGS: '--data-checksums'
        volumes:
          # Do not edit the next line. If you want to change the database storage location on your system, edit the value of DB_DATA_LOCATION in the .env file
          - ${DB_DATA_LOCATION}:/var/lib/postgresql/data
        shm_size: 128mb
        restart: always

    volumes:
      model-cache:
""")

EXAMPLE_ENV = textwrap.dedent("""\
    # You can find documentation for all the supported env variables at https://immich.app/docs/install/environment-variables

    # The location where your uploaded files are stored
    UPLOAD_LOCATION=./library

    # The location where your database files are stored. Network shares are not supported for the database
    DB_DATA_LOCATION=./postgres

    # To set a timezone, uncomment the next line and change Etc/UTC to a TZ identifier from this list: https://en.wikipedia.org/wiki/List_of_tz_database_time_zones#List
    # TZ=Etc/UTC

    # The Immich version to use. You can pin this to a specific version like "v1.71.0"
    IMMICH_VERSION=release

    # Connection secret for postgres. You should change it to a random password
    # Please use only the characters `A-Za-z0-9`, without special characters or spaces
    DB_PASSWORD=postgres

    # The values below this line do not need to be changed
    ###################################################################################
    DB_USERNAME=postgres
    DB_DATABASE_NAME=immich
""")

HWACCEL_TRANSCODING_YML = textwrap.dedent("""\
    # Configurations for hardware-accelerated transcoding

    services:
      cpu: {}

      nvenc:
        deploy:
          resources:
            reservations:
              devices:
                - driver: nvidia
                  count: 1
                  capabilities:
                    - gpu
                    - compute
                    - video

      quicksync:
        devices:
          - /dev/dri:/dev/dri

      rkmpp:
        security_opt: # enables full access to /sys and /proc
          - systempaths=unconfined
          - apparmor=unconfined
        group_add:
          - video
        devices:
          - /dev/rga:/dev/rga
          - /dev/dri:/dev/dri
          - /dev/dma_heap:/dev/dma_heap
          - /dev/mpp_service:/dev/mpp_service
          #- /dev/mali0:/dev/mali0 # only required to enable OpenCL-accelerated HDR -> SDR tonemapping
        volumes:
          #- /etc/OpenCL:/etc/OpenCL:ro # only required to enable OpenCL-accelerated HDR -> SDR tonemapping
          #- /usr/lib/aarch64-linux-gnu/libmali.so.1:/usr/lib/aarch64-linux-gnu/libmali.so.1:ro # only required to enable OpenCL-accelerated HDR -> SDR tonemapping

      vaapi:
        devices:
          - /dev/dri:/dev/dri

      vaapi-wsl: # use this for VAAPI if you're running Immich in WSL2
        devices:
          - /dev/dri:/dev/dri
        volumes:
          - /usr/lib/wsl:/usr/lib/wsl
        environment:
          - LIBVA_DRIVER_NAME=d3d12
""")

HWACCEL_ML_YML = textwrap.dedent("""\
    # Configurations for hardware-accelerated machine learning

    services:
      armnn:
        devices:
          - /dev/mali0:/dev/mali0
        volumes:
          - /lib/firmware/mali_csffw.bin:/lib/firmware/mali_csffw.bin:ro
          - /usr/lib/libmali.so:/usr/lib/libmali.so:ro

      rknn:
        security_opt:
          - systempaths=unconfined
          - apparmor=unconfined
        devices:
          - /dev/dri:/dev/dri

      cpu: {}

      cuda:
        deploy:
          resources:
            reservations:
              devices:
                - driver: nvidia
                  count: 1
                  capabilities:
                    - gpu

      rocm:
        group_add:
          - video
        devices:
          - /dev/dri:/dev/dri
          - /dev/kfd:/dev/kfd

      openvino:
        device_cgroup_rules:
          - 'c 189:* rmw'
        devices:
          - /dev/dri:/dev/dri
        volumes:
          - /dev/bus/usb:/dev/bus/usb
""")

RELEASE_ASSETS = {
    "docker-compose.yml": COMPOSE_YML,
    "example.env": EXAMPLE_ENV,
    "hwaccel.transcoding.yml": HWACCEL_TRANSCODING_YML,
    "hwaccel.ml.yml": HWACCEL_ML_YML,
}


# ═══════════════════════════════════════════════════════════════════
#  Test doubles
# ═══════════════════════════════════════════════════════════════════


class FakeHost(HostInspector):
    """A scripted machine.

    Args:
        binaries: Names ``which`` finds.
        commands: ``tuple(argv)`` → ``(returncode, stdout)``.
        files: Path → text; ``None`` means present but unreadable.
        char_devices: Paths that are character devices.
        devices: Paths matched by ``glob``.
    """

    def __init__(
        self,
        *,
        binaries=(),
        commands=None,
        files=None,
        char_devices=(),
        devices=(),
        lspci="",
        lscpu="",
        proc_version="Linux version 6.1.0 (gcc)",
    ):
        self.binaries = set(binaries)
        self.commands = dict(commands or {})
        self.files = dict(files or {})
        self.char_devices = set(char_devices)
        self.devices = list(devices)
        self.lspci = lspci
        self.lscpu = lscpu
        self.proc_version = proc_version

    def which(self, name):
        return name in self.binaries

    def run(self, argv, timeout=5):
        key = tuple(argv)
        if key not in self.commands:
            return None
        returncode, stdout = self.commands[key]
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr="")

    def exists(self, path):
        return path in self.files or path in self.char_devices

    def is_char_device(self, path):
        return path in self.char_devices

    def glob(self, pattern):
        return sorted(p for p in self.devices if fnmatch.fnmatch(p, pattern))

    def read_text(self, path):
        return self.files.get(path)


NVIDIA_SMI_NAME = ("nvidia-smi", "--query-gpu=name", "--format=csv,noheader,nounits")


def nvidia_host(name="NVIDIA GeForce RTX 3080", *, toolkit=True, **kwargs) -> FakeHost:
    """A host with a working ``nvidia-smi`` and optionally the container toolkit."""
    binaries = {"nvidia-smi"}
    if toolkit:
        binaries.add("nvidia-container-runtime")
    return FakeHost(
        binaries=binaries,
        commands={
            ("nvidia-smi",): (0, "NVIDIA-SMI 550.54\n"),
            NVIDIA_SMI_NAME: (0, f"{name}\n"),
        },
        **kwargs,
    )


class ScriptedPrompter(Prompter):
    """Answers questions from two queues; an unexpected question fails the test.

    A blank ``ask`` answer returns the question's default, like a terminal.
    """

    def __init__(self, answers=(), confirms=()):
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.questions: list[str] = []

    def ask(self, text, default=""):
        self.questions.append(text)
        if not self.answers:
            raise AssertionError(f"Unexpected question: {text}")
        answer = self.answers.pop(0)
        if answer == "" and default is not None:
            return default
        return answer

    def confirm(self, text, default=False):
        self.questions.append(text)
        if not self.confirms:
            raise AssertionError(f"Unexpected confirmation: {text}")
        return self.confirms.pop(0)


class FakeFetcher:
    """Serves release assets from memory; unknown names fail like a 404."""

    def __init__(self, assets=None):
        self.assets = dict(RELEASE_ASSETS if assets is None else assets)
        self.calls: list[str] = []

    def __call__(self, url, dest, *, timeout=30):
        name = url.rsplit("/", 1)[-1]
        self.calls.append(name)
        if name not in self.assets:
            raise FetchError(f"HTTP 404 fetching {url}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(self.assets[name], encoding="utf-8")
        return dest


# ═══════════════════════════════════════════════════════════════════
#  Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def settings() -> InstallerSettings:
    return InstallerSettings(release_url="https://example.invalid/download", guest_virtualization=False)


@pytest.fixture
def reporter() -> MemoryReporter:
    return MemoryReporter()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    """An install folder holding the stock compose file and .env."""
    folder = tmp_path / "immich-app"
    folder.mkdir()
    (folder / "docker-compose.yml").write_text(COMPOSE_YML, encoding="utf-8")
    (folder / ".env").write_text(EXAMPLE_ENV, encoding="utf-8")
    return folder


@pytest.fixture(autouse=True)
def _clean_installer_env(monkeypatch):
    """Keep the developer's own IMMICH_INSTALLER_* settings out of tests."""
    for var in (
        "IMMICH_INSTALLER_CONFIG",
        "IMMICH_INSTALLER_RELEASE_URL",
        "IMMICH_INSTALLER_WSL",
        "IMMICH_INSTALLER_LOG_LEVEL",
        "IMMICH_INSTALLER_LOG_FILE",
        "IMMICH_INSTALLER_LOG_FILE_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

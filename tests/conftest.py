"""Shared test fixtures for nodeship tests."""
import io
import json

import pytest
from rich.console import Console

from nodeship.core.config import NodeshipConfig
from nodeship.core.runner import RecordingRunner
from nodeship.discovery.host import HostProfile
from nodeship.platforms import resolve_platform

UBUNTU_OS_RELEASE = """\
PRETTY_NAME="Ubuntu 24.04 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
ID=ubuntu
ID_LIKE=debian
"""

ROCKY_OS_RELEASE = """\
NAME="Rocky Linux"
VERSION_ID="9.4"
ID="rocky"
ID_LIKE="rhel centos fedora"
PRETTY_NAME="Rocky Linux 9.4 (Blue Onyx)"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's sudo/config environment out of tests."""
    monkeypatch.delenv("SUDO_USER", raising=False)
    monkeypatch.delenv("NODESHIP_CONFIG", raising=False)
    monkeypatch.delenv("NODESHIP_MOCK", raising=False)


@pytest.fixture
def runner():
    """Recording runner where every binary exists and every command succeeds."""
    return RecordingRunner()


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO())


@pytest.fixture
def config(tmp_path):
    """Config pointing nginx and os-release at the temp directory."""
    os_release = tmp_path / "os-release"
    os_release.write_text(UBUNTU_OS_RELEASE)
    return NodeshipConfig(
        nginx_root=str(tmp_path / "nginx"),
        os_release_path=str(os_release),
    )


def write_manifest(project_dir, data):
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / "package.json").write_text(json.dumps(data))


@pytest.fixture
def project_dir(tmp_path):
    """A git checkout of an app with build and start scripts."""
    project = tmp_path / "shop"
    write_manifest(project, {
        "name": "shop",
        "version": "1.0.0",
        "scripts": {"build": "vite build", "start": "node server.js"},
    })
    (project / ".git").mkdir()
    return project


@pytest.fixture
def debian_platform():
    return resolve_platform(HostProfile(id="ubuntu"), RecordingRunner())


@pytest.fixture
def rhel_platform():
    return resolve_platform(HostProfile(id="rocky"), RecordingRunner())


@pytest.fixture
def make_manifest():
    """Write a package.json with the given content."""
    return write_manifest

"""Tests for the setup pipeline."""
from unittest.mock import Mock, patch

import pytest

from nodeship.core.errors import PreconditionError
from nodeship.core.provisioner import Provisioner
from nodeship.core.runner import RecordingRunner
from nodeship.discovery.host import UnsupportedPlatformError
from nodeship.discovery.manifest import ManifestError
from nodeship.services.proxy import ProxyValidationError

from conftest import ROCKY_OS_RELEASE


@pytest.fixture(autouse=True)
def as_root():
    with patch("nodeship.core.provisioner.is_privileged", return_value=True) as mocked:
        yield mocked


@pytest.fixture(autouse=True)
def nodesource():
    response = Mock(text="#!/bin/bash\n")
    response.raise_for_status = Mock()
    with patch("nodeship.services.runtime.requests.get", return_value=response) as mocked:
        yield mocked


@pytest.fixture
def locked_project(project_dir):
    (project_dir / "package-lock.json").write_text("{}")
    return project_dir


def provision(project, runner, config, console, mock=False):
    return Provisioner(project, runner, config, console=console, mock=mock).run()


class TestPreconditions:
    """Nothing runs until root, manifest and OS checks pass."""

    def test_requires_root(self, as_root, project_dir, config, quiet_console):
        as_root.return_value = False
        runner = RecordingRunner()

        with pytest.raises(PreconditionError) as exc_info:
            provision(project_dir, runner, config, quiet_console)

        assert "must be run as root" in str(exc_info.value)
        assert runner.calls == []

    def test_mock_mode_skips_root_check(self, as_root, project_dir, config, quiet_console):
        as_root.return_value = False

        report = provision(project_dir, RecordingRunner(echo=True), config, quiet_console, mock=True)

        assert report.app_name == "shop"

    def test_missing_name(self, tmp_path, make_manifest, config, quiet_console):
        project = tmp_path / "noname"
        make_manifest(project, {"version": "1.0.0"})
        runner = RecordingRunner()

        with pytest.raises(ManifestError):
            provision(project, runner, config, quiet_console)

        assert runner.calls == []

    def test_missing_os_release(self, project_dir, config, quiet_console, tmp_path):
        config.os_release_path = str(tmp_path / "absent")
        runner = RecordingRunner()

        with pytest.raises(UnsupportedPlatformError):
            provision(project_dir, runner, config, quiet_console)

        assert runner.calls == []


class TestDebianRun:

    def test_steps_run_in_order(self, locked_project, config, quiet_console):
        runner = RecordingRunner()
        runner.respond(["hostname", "-I"], stdout="203.0.113.7\n")

        report = provision(locked_project, runner, config, quiet_console)

        order = [
            runner.index("apt-get", "update"),
            runner.index("apt-get", "install", "-y", "curl"),
            runner.index("apt-get", "remove", "-y", "nodejs", "npm"),
            runner.index("bash", "-"),
            runner.index("apt-get", "install", "-y", "nodejs"),
            runner.index("npm", "install", "-g", "pm2"),
            runner.index("nginx", "-t"),
            runner.index("systemctl", "restart", "nginx"),
            runner.index("ufw", "allow", "22/tcp"),
            runner.index("pm2", "startup"),
            runner.index("npm", "ci", "--omit=dev"),
        ]
        assert -1 not in order
        assert order == sorted(order)

        assert report.app_name == "shop"
        assert report.server_ip == "203.0.113.7"
        assert report.firewall_configured is True
        assert report.startup_registered is True
        assert report.proxy_config_path.name == "shop"
        assert "# Server IP: 203.0.113.7" in report.proxy_config_path.read_text()

    def test_root_login_registers_root_startup(self, locked_project, config, quiet_console):
        runner = RecordingRunner()

        provision(locked_project, runner, config, quiet_console)

        startup = runner.calls[runner.index("pm2", "startup")]
        assert startup.args == ["pm2", "startup", "systemd", "-u", "root", "--hp", "/root"]
        install = runner.calls[runner.index("npm", "ci")]
        assert install.user is None

    def test_sudo_user_owns_dependencies(self, locked_project, config, quiet_console, monkeypatch):
        monkeypatch.setenv("SUDO_USER", "alice")
        runner = RecordingRunner()

        with patch("nodeship.core.provisioner.user_home", return_value="/home/alice"):
            provision(locked_project, runner, config, quiet_console)

        startup = runner.calls[runner.index("pm2", "startup")]
        assert startup.args[-4:] == ["-u", "alice", "--hp", "/home/alice"]
        assert runner.calls[runner.index("npm", "ci")].user == "alice"

    def test_missing_firewall_is_skipped(self, locked_project, config, quiet_console):
        runner = RecordingRunner(available=["apt-get", "node"])

        report = provision(locked_project, runner, config, quiet_console)

        assert report.firewall_configured is False
        assert not runner.ran("ufw")
        assert runner.ran("npm", "ci")

    def test_startup_failure_does_not_stop_run(self, locked_project, config, quiet_console):
        runner = RecordingRunner()
        runner.respond(["pm2", "startup"], returncode=1)

        report = provision(locked_project, runner, config, quiet_console)

        assert report.startup_registered is False
        assert runner.ran("npm", "ci")

    def test_invalid_proxy_config_aborts(self, locked_project, config, quiet_console):
        runner = RecordingRunner()
        runner.respond(["nginx", "-t"], returncode=1, stderr="emerg")

        with pytest.raises(ProxyValidationError):
            provision(locked_project, runner, config, quiet_console)

        assert not runner.ran("systemctl")
        assert not runner.ran("ufw")
        assert not runner.ran("npm", "ci")


class TestRhelRun:

    def test_rocky_with_yum_only(self, locked_project, config, quiet_console, tmp_path):
        (tmp_path / "os-release").write_text(ROCKY_OS_RELEASE)
        runner = RecordingRunner(available=["yum", "firewall-cmd"])

        report = provision(locked_project, runner, config, quiet_console)

        assert report.platform.package_manager.binary == "yum"
        assert runner.ran("yum", "install", "-y", "curl", "wget", "git", "gcc-c++", "make", "nginx")
        assert not runner.ran("yum", "update")
        assert not runner.ran("yum", "remove")
        assert runner.ran("firewall-cmd", "--reload")
        assert report.proxy_config_path.name == "shop.conf"

"""Tests for firewall configuration."""
import pytest

from nodeship.core.errors import CommandError
from nodeship.core.runner import RecordingRunner
from nodeship.services.firewall import FirewallConfigurator


class TestUfw:

    def test_opens_ssh_http_https(self, debian_platform):
        runner = RecordingRunner(available=["ufw"])

        assert FirewallConfigurator(runner, debian_platform).configure() is True
        assert runner.commands == [
            "ufw allow 22/tcp",
            "ufw allow 80/tcp",
            "ufw allow 443/tcp",
        ]

    def test_missing_ufw_is_noop(self, debian_platform):
        runner = RecordingRunner(available=[])

        assert FirewallConfigurator(runner, debian_platform).configure() is False
        assert runner.calls == []


class TestFirewalld:

    def test_adds_services_and_reloads(self, rhel_platform):
        runner = RecordingRunner(available=["firewall-cmd"])

        assert FirewallConfigurator(runner, rhel_platform).configure() is True
        assert runner.commands == [
            "firewall-cmd --permanent --add-service=http",
            "firewall-cmd --permanent --add-service=https",
            "firewall-cmd --permanent --add-service=ssh",
            "firewall-cmd --reload",
        ]

    def test_missing_firewalld_is_noop(self, rhel_platform):
        runner = RecordingRunner(available=["ufw"])

        assert FirewallConfigurator(runner, rhel_platform).configure() is False
        assert runner.calls == []

    def test_reload_failure_is_fatal(self, rhel_platform):
        runner = RecordingRunner(available=["firewall-cmd"])
        runner.respond(["firewall-cmd", "--reload"], returncode=1)

        with pytest.raises(CommandError):
            FirewallConfigurator(runner, rhel_platform).configure()

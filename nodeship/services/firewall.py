"""Firewall rules for ssh, http and https."""
from nodeship.core.logger import get_logger

logger = get_logger(__name__)

UFW_PORTS = ("22/tcp", "80/tcp", "443/tcp")
FIREWALLD_SERVICES = ("http", "https", "ssh")


class FirewallConfigurator:
    """Opens the web and ssh ports with the platform's firewall tool."""

    def __init__(self, runner, platform):
        self.runner = runner
        self.platform = platform

    def configure(self) -> bool:
        """Open the ports and persist the rules.

        Returns:
            True if rules were applied, False if no firewall tool is installed
        """
        if self.platform.profile.firewall == "ufw":
            return self._configure_ufw()
        return self._configure_firewalld()

    def _configure_ufw(self) -> bool:
        if not self.runner.which("ufw"):
            logger.info("ufw not installed, skipping firewall")
            return False

        for port in UFW_PORTS:
            self.runner.run(["ufw", "allow", port])
        logger.info("✓ UFW firewall configured")
        return True

    def _configure_firewalld(self) -> bool:
        if not self.runner.which("firewall-cmd"):
            logger.info("firewall-cmd not installed, skipping firewall")
            return False

        for service in FIREWALLD_SERVICES:
            self.runner.run(["firewall-cmd", "--permanent", f"--add-service={service}"])
        self.runner.run(["firewall-cmd", "--reload"])
        logger.info("✓ firewalld configured")
        return True

"""System package installation through the resolved package manager."""
from nodeship.core.logger import get_logger

logger = get_logger(__name__)


class PackageInstaller:
    """Installs the base toolchain and PM2."""

    def __init__(self, runner, platform):
        self.runner = runner
        self.platform = platform

    @property
    def manager(self):
        return self.platform.package_manager

    def install_base(self) -> None:
        """Install curl, git, the compiler toolchain and nginx.

        Raises:
            CommandError: If the package manager fails
        """
        if self.manager.refresh_first:
            self.runner.run(self.manager.refresh(), capture=False)

        packages = list(self.platform.profile.base_packages)
        logger.info(f"Installing {', '.join(packages)}")
        self.runner.run(self.manager.install(packages), capture=False)
        logger.info("✓ System packages installed")

    def install_process_manager(self) -> None:
        """Install PM2 globally with npm."""
        self.runner.run(["npm", "install", "-g", "pm2"], capture=False)
        logger.info("✓ PM2 installed")

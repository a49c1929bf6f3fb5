"""Node.js installation from the NodeSource repositories."""
import requests

from nodeship.core.errors import NodeshipError
from nodeship.core.logger import get_logger

logger = get_logger(__name__)


class RuntimeInstallError(NodeshipError):
    """Raised when the NodeSource bootstrap script cannot be fetched."""
    pass


class RuntimeInstaller:
    """Replaces any distribution Node.js with a pinned NodeSource major."""

    def __init__(self, runner, platform, config, mock: bool = False):
        self.runner = runner
        self.platform = platform
        self.config = config
        self.mock = mock

    @property
    def bootstrap_url(self) -> str:
        return f"{self.platform.profile.nodesource_url}/setup_{self.config.node_major}.x"

    def fetch_bootstrap(self) -> str:
        """Download the NodeSource repository setup script.

        Raises:
            RuntimeInstallError: If the download fails
        """
        if self.mock:
            logger.info(f"MOCK: Would download {self.bootstrap_url}")
            return ""

        try:
            response = requests.get(self.bootstrap_url, timeout=self.config.bootstrap_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RuntimeInstallError(
                f"Failed to fetch NodeSource setup script {self.bootstrap_url}: {e}"
            ) from e
        return response.text

    def install(self) -> dict:
        """Install Node.js and return the reported node/npm versions.

        The bootstrap script is fetched before the existing runtime is removed,
        so a network failure leaves the host untouched.
        """
        logger.info(f"Installing Node.js {self.config.node_major}...")
        script = self.fetch_bootstrap()
        manager = self.platform.package_manager

        if self.runner.which("node"):
            logger.info("Removing existing Node.js installation...")
            self.runner.run(manager.remove(["nodejs", "npm"]), capture=False)

        self.runner.run(["bash", "-"], input=script, capture=False)
        self.runner.run(manager.install(["nodejs"]), capture=False)

        versions = {
            "node": self._version("node"),
            "npm": self._version("npm"),
        }
        logger.info(f"✓ Node.js {versions['node']} installed")
        logger.info(f"✓ npm {versions['npm']} installed")
        return versions

    def _version(self, binary: str) -> str:
        result = self.runner.run([binary, "--version"], check=False)
        return result.stdout.strip() or "unknown"

"""npm dependency installation, shared by setup and deploy."""
from pathlib import Path
from typing import Optional

from nodeship.core.logger import get_logger
from nodeship.discovery.host import detect_invoking_user, is_privileged

logger = get_logger(__name__)

LOCKFILE = "package-lock.json"


def dependency_user(runner) -> Optional[str]:
    """Account that should own node_modules.

    When running as root, dependencies are installed as the invoking user so
    the tree is not root-owned. Returns None to run as the current user.
    """
    if not is_privileged():
        return None
    return detect_invoking_user(runner)


class DependencyInstaller:
    """Runs ``npm ci`` when a lockfile exists, ``npm install`` otherwise."""

    def __init__(self, runner):
        self.runner = runner

    def install(self, project_dir, include_dev: bool, user: Optional[str] = None) -> str:
        """Install the project's dependencies.

        Args:
            project_dir: Directory containing package.json
            include_dev: Install devDependencies (needed to build)
            user: Run npm as this account

        Returns:
            "ci" or "install", whichever command succeeded

        Raises:
            CommandError: If the ``npm install`` fallback fails
        """
        project_dir = Path(project_dir)
        if user:
            logger.info(f"Installing dependencies as {user}")

        if (project_dir / LOCKFILE).exists():
            ci_cmd = ["npm", "ci", "--include=dev" if include_dev else "--omit=dev"]
            result = self.runner.run(ci_cmd, cwd=project_dir, user=user, check=False, capture=False)
            if result.ok:
                logger.info("✓ Dependencies installed (npm ci)")
                return "ci"
            logger.warning("npm ci failed, falling back to npm install")
        else:
            logger.info(f"No {LOCKFILE}, using npm install")

        self.runner.run(["npm", "install"], cwd=project_dir, user=user, capture=False)
        logger.info("✓ Dependencies installed (npm install)")
        return "install"

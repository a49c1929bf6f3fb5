"""PM2 process supervisor operations."""
import json
import re
from typing import List

from nodeship.core.errors import CommandError
from nodeship.core.logger import get_logger

logger = get_logger(__name__)

STATUS_FIELDS = re.compile(r"status|uptime|restarts|CPU|memory")


class ProcessManager:
    """Start, restart and inspect an app under PM2."""

    def __init__(self, runner, project_dir=None):
        self.runner = runner
        self.project_dir = project_dir

    def is_installed(self) -> bool:
        return self.runner.which("pm2")

    def is_running(self, name: str) -> bool:
        """Return True if PM2 already supervises a process called ``name``."""
        result = self.runner.run(["pm2", "jlist"], check=False)
        if result.ok:
            try:
                processes = json.loads(result.stdout)
            except json.JSONDecodeError:
                processes = None
            if isinstance(processes, list):
                return any(proc.get("name") == name for proc in processes if isinstance(proc, dict))

        # Older pm2 builds print banners around jlist output
        listing = self.runner.run(["pm2", "list"], check=False)
        return any(
            name in [cell.strip() for cell in line.split("│")]
            for line in listing.stdout.splitlines()
        )

    def restart(self, name: str) -> None:
        self.runner.run(["pm2", "restart", name], cwd=self.project_dir)
        logger.info(f"✓ Application restarted: {name}")

    def start(self, name: str) -> None:
        """Start ``npm start`` under PM2 as ``name``."""
        self.runner.run(
            ["pm2", "start", "npm", "--name", name, "--", "start"],
            cwd=self.project_dir,
        )
        logger.info(f"✓ Application started: {name}")

    def delete(self, name: str) -> bool:
        """Remove ``name`` from PM2; missing processes are not an error."""
        result = self.runner.run(["pm2", "delete", name], check=False)
        return result.ok

    def save(self) -> None:
        self.runner.run(["pm2", "save"])

    def status_lines(self, name: str) -> List[str]:
        result = self.runner.run(["pm2", "show", name], check=False)
        return [line for line in result.stdout.splitlines() if STATUS_FIELDS.search(line)]

    def recent_logs(self, name: str, lines: int = 20) -> str:
        result = self.runner.run(
            ["pm2", "logs", name, "--lines", str(lines), "--nostream"],
            check=False,
        )
        return result.stdout

    def stream_logs(self, name: str) -> None:
        self.runner.run(["pm2", "logs", name], check=False, capture=False)

    def register_startup(self, user: str, home: str) -> bool:
        """Install the systemd hook that resurrects PM2 processes at boot.

        Failures are logged, not raised. The hook is not verified afterwards.
        """
        try:
            self.runner.run(
                ["pm2", "startup", "systemd", "-u", user, "--hp", home],
                capture=False,
            )
        except CommandError as e:
            logger.warning(f"PM2 startup registration failed: {e}")
            return False
        logger.info("✓ PM2 startup configured")
        return True

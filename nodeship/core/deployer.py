"""Pull-build-restart deployment for an already provisioned host.

Steps run strictly in order::

    CLEAN_CHECK -> STASH? -> FETCH -> BRANCH_SELECT -> PULL ->
    DEPENDENCY_INSTALL -> BUILD? -> RESTART -> PERSIST -> STATUS -> STASH_RESTORE?

A finishing stage runs on every exit path. If local changes were stashed it
makes exactly one restore attempt; on failure it also dumps recent PM2 logs
before the original error propagates.
"""
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from nodeship.core.errors import CommandError, NodeshipError, PreconditionError
from nodeship.core.logger import get_logger
from nodeship.discovery.manifest import AppManifest, load_manifest
from nodeship.services.dependencies import DependencyInstaller, dependency_user
from nodeship.services.git import GitRepository
from nodeship.services.process_manager import ProcessManager

logger = get_logger(__name__)


class StashRestoreError(NodeshipError):
    """Raised when a successful deploy cannot re-apply the stashed changes."""
    pass


@dataclass
class DeploymentOutcome:
    """Run state threaded through the deploy steps."""
    app_name: str
    stashed: bool = False
    restore_attempted: bool = False
    restore_failed: bool = False
    branch: Optional[str] = None
    built: bool = False
    action: Optional[str] = None  # "restart" or "start"
    failed_step: Optional[str] = None
    error: Optional[Exception] = None
    status: Optional[List[str]] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.restore_failed


class Deployer:
    """Deploys the app in ``project_dir`` under PM2."""

    def __init__(self, project_dir, runner, config, console: Optional[Console] = None):
        self.project_dir = Path(project_dir)
        self.runner = runner
        self.config = config
        self.console = console or Console()
        self.git = GitRepository(runner, self.project_dir, remote=config.remote)
        self.pm2 = ProcessManager(runner, self.project_dir)
        self._manifest: Optional[AppManifest] = None
        self.last_outcome: Optional[DeploymentOutcome] = None

    @property
    def manifest(self) -> AppManifest:
        if self._manifest is None:
            self._manifest = load_manifest(self.project_dir)
        return self._manifest

    def preflight(self) -> AppManifest:
        """Check everything that must hold before the tree is touched.

        Raises:
            PreconditionError: No manifest/name, not a git checkout, or no PM2
        """
        manifest = self.manifest
        if not self.git.is_repository():
            raise PreconditionError(
                "This is not a git repository. Initialize git or clone your repository first"
            )
        if not self.pm2.is_installed():
            raise PreconditionError("PM2 is not installed. Install it with: npm install -g pm2")
        return manifest

    def force_reset(self) -> None:
        """Drop the PM2 process so the next deploy does a fresh start."""
        if self.pm2.delete(self.manifest.name):
            logger.info(f"Deleted PM2 process {self.manifest.name}")

    def run(self, force: bool = False) -> DeploymentOutcome:
        """Deploy and return the outcome.

        Raises:
            NodeshipError: Whatever step failed (after stash restore and log dump)
            StashRestoreError: If the deploy succeeded but the stash could not be re-applied
        """
        manifest = self.preflight()
        if force:
            self.force_reset()

        outcome = DeploymentOutcome(app_name=manifest.name)
        self.last_outcome = outcome
        try:
            self._execute(manifest, outcome)
        except Exception as e:
            outcome.error = e
            raise
        finally:
            self._finish(outcome)

        if outcome.restore_failed:
            raise StashRestoreError(
                "Deployment finished but stashed changes could not be restored. "
                "They are still listed in 'git stash list'."
            )
        return outcome

    def _step(self, outcome: DeploymentOutcome, name: str, label: str, message: str) -> None:
        outcome.failed_step = name
        self.console.print(f"[blue]\\[{label}][/blue] {message}")

    def _execute(self, manifest: AppManifest, outcome: DeploymentOutcome) -> None:
        outcome.failed_step = "stash"
        if self.git.is_dirty():
            self.console.print("[yellow]➜[/yellow] Stashing local changes...")
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.git.stash(f"Auto-stash before deployment {stamp}")
            outcome.stashed = True

        self._step(outcome, "pull", "1/5", f"Pulling latest changes from {self.config.remote}...")
        self.git.fetch()
        outcome.branch = self.git.select_branch(
            self.config.primary_branch,
            self.config.fallback_branch,
        )
        self.git.pull(outcome.branch)

        self._step(outcome, "dependencies", "2/5", "Installing dependencies...")
        DependencyInstaller(self.runner).install(
            self.project_dir,
            include_dev=True,
            user=dependency_user(self.runner),
        )

        self._step(outcome, "build", "3/5", "Building application...")
        if manifest.has_build:
            self.runner.run(["npm", "run", "build"], cwd=self.project_dir, capture=False)
            outcome.built = True
            logger.info("✓ Build completed")
        else:
            logger.info("No build script found, skipping build step")

        self._step(outcome, "restart", "4/5", "Restarting application with PM2...")
        if self.pm2.is_running(manifest.name):
            self.pm2.restart(manifest.name)
            outcome.action = "restart"
        elif manifest.has_start:
            logger.info("Application not found in PM2, starting new instance...")
            self.pm2.start(manifest.name)
            outcome.action = "start"
        else:
            raise PreconditionError(
                "No 'start' script found in package.json. Add a start script to your package.json"
            )

        outcome.failed_step = "save"
        self.pm2.save()

        self._step(outcome, "status", "5/5", "Deployment complete!")
        outcome.status = self.pm2.status_lines(manifest.name)
        outcome.failed_step = None

    def _finish(self, outcome: DeploymentOutcome) -> None:
        """Compensation stage; runs once whether the deploy failed or not."""
        if outcome.stashed and not outcome.restore_attempted:
            outcome.restore_attempted = True
            self.console.print("[yellow]➜[/yellow] Restoring stashed changes...")
            try:
                self.git.stash_pop()
            except CommandError as e:
                logger.error(f"Could not restore stashed changes: {e}")
                if outcome.error is None:
                    outcome.restore_failed = True

        if outcome.error is not None:
            self.console.print("[red]✗[/red] Deployment failed!")
            self.console.print("[yellow]➜[/yellow] Recent PM2 logs:")
            logs = self.pm2.recent_logs(outcome.app_name, self.config.log_lines)
            if logs:
                self.console.print(logs, markup=False, highlight=False)

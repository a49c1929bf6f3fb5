"""Git operations on the deployed working tree."""
from pathlib import Path

from nodeship.core.errors import NodeshipError
from nodeship.core.logger import get_logger

logger = get_logger(__name__)


class BranchNotFoundError(NodeshipError):
    """Raised when none of the candidate branches exist on the remote."""
    pass


class GitRepository:
    """Manages git operations for one local checkout."""

    def __init__(self, runner, path, remote: str = "origin"):
        self.runner = runner
        self.path = Path(path)
        self.remote = remote

    def is_repository(self) -> bool:
        return (self.path / ".git").exists()

    def _git(self, *args, check: bool = True, capture: bool = True):
        return self.runner.run(["git", *args], cwd=self.path, check=check, capture=capture)

    def is_dirty(self) -> bool:
        """Return True if the working tree or the index has uncommitted changes."""
        if not self._git("diff", "--quiet", check=False).ok:
            return True
        return not self._git("diff", "--cached", "--quiet", check=False).ok

    def stash(self, message: str) -> None:
        self._git("stash", "push", "-m", message)
        logger.info("✓ Local changes stashed")

    def stash_pop(self) -> None:
        """Restore the most recent stash.

        Raises:
            CommandError: If git cannot apply the stash (it stays in the stash list)
        """
        self._git("stash", "pop")
        logger.info("✓ Stashed changes restored")

    def fetch(self) -> None:
        self._git("fetch", self.remote, capture=False)

    def remote_branch_exists(self, branch: str) -> bool:
        ref = f"refs/remotes/{self.remote}/{branch}"
        return self._git("show-ref", "--verify", "--quiet", ref, check=False).ok

    def select_branch(self, primary: str, fallback: str) -> str:
        """Return ``primary`` if it exists on the remote, else ``fallback``.

        Raises:
            BranchNotFoundError: If neither branch exists
        """
        if self.remote_branch_exists(primary):
            return primary
        if self.remote_branch_exists(fallback):
            logger.info(f"No '{primary}' branch found, using '{fallback}'")
            return fallback
        raise BranchNotFoundError(
            f"Neither '{primary}' nor '{fallback}' branch found on {self.remote}"
        )

    def pull(self, branch: str) -> None:
        self._git("pull", self.remote, branch, capture=False)
        logger.info(f"✓ Pulled latest changes from {self.remote}/{branch}")

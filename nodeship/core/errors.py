"""Exception hierarchy shared by the setup and deploy pipelines."""


class NodeshipError(Exception):
    """Base class for every failure that should end a run with exit code 1."""
    pass


class PreconditionError(NodeshipError):
    """Raised when a run cannot start (missing manifest, not root, no git, ...).

    Always raised before any mutating step.
    """
    pass


class CommandError(NodeshipError):
    """Raised when an external command exits non-zero."""

    def __init__(self, result):
        self.result = result
        message = f"Command failed ({result.returncode}): {' '.join(result.args)}"
        stderr = (result.stderr or "").strip()
        if stderr:
            message += f"\n{stderr}"
        super().__init__(message)

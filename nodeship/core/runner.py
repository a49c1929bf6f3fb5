"""Command execution for every host mutation.

All external binaries nodeship touches (apt-get, systemctl, pm2, git, npm,
nginx, ufw) go through a CommandRunner so a run can be replayed against
recorded fixtures instead of a live host.
"""
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from nodeship.core.errors import CommandError
from nodeship.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class Invocation:
    """A single command request as issued by a service."""
    args: List[str]
    cwd: Optional[str] = None
    user: Optional[str] = None
    input: Optional[str] = None

    @property
    def command(self) -> str:
        return shlex.join(self.args)


class CommandRunner:
    """Base runner: wraps privilege de-escalation and exit status checking."""

    mock = False

    def run(
        self,
        args: Sequence[str],
        cwd=None,
        user: Optional[str] = None,
        input: Optional[str] = None,
        check: bool = True,
        capture: bool = True,
    ) -> CommandResult:
        """Run a command and return its result.

        Args:
            args: Command and arguments
            cwd: Working directory
            user: Run as this account via sudo -u
            input: Text piped to stdin
            check: Raise CommandError on non-zero exit
            capture: Capture output instead of streaming it to the terminal

        Raises:
            CommandError: If check is set and the command fails
        """
        invocation = Invocation(
            args=[str(arg) for arg in args],
            cwd=str(cwd) if cwd is not None else None,
            user=user,
            input=input,
        )
        argv = invocation.args
        if user:
            argv = ["sudo", "-u", user] + argv

        logger.debug(f"Running: {shlex.join(argv)}")
        result = self._execute(argv, invocation, capture)

        if check and not result.ok:
            raise CommandError(result)
        return result

    def which(self, binary: str) -> bool:
        raise NotImplementedError

    def _execute(self, argv: List[str], invocation: Invocation, capture: bool) -> CommandResult:
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    """Runs commands on the local host."""

    def which(self, binary: str) -> bool:
        return shutil.which(binary) is not None

    def _execute(self, argv: List[str], invocation: Invocation, capture: bool) -> CommandResult:
        try:
            completed = subprocess.run(
                argv,
                cwd=invocation.cwd,
                input=invocation.input,
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            # Same status a shell reports for an unknown command
            return CommandResult(argv, 127, "", str(exc))

        return CommandResult(
            argv,
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
        )


@dataclass
class _Response:
    prefix: tuple
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    handler: Optional[Callable[[Invocation], CommandResult]] = None


class RecordingRunner(CommandRunner):
    """Replays scripted results instead of touching the host.

    Every call is recorded in ``calls``. Responses are matched on the longest
    registered argument prefix; unmatched commands succeed with empty output.
    With ``echo=True`` each call is logged, which is how mock mode runs.
    """

    def __init__(self, available: Optional[Sequence[str]] = None, echo: bool = False):
        self.calls: List[Invocation] = []
        self.available = set(available) if available is not None else None
        self.echo = echo
        self.mock = echo
        self._responses: List[_Response] = []

    def respond(
        self,
        prefix: Sequence[str],
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        handler: Optional[Callable[[Invocation], CommandResult]] = None,
    ) -> None:
        """Script the outcome of commands starting with ``prefix``.

        A later registration for the same prefix replaces the earlier one.
        """
        self._responses.insert(0, _Response(tuple(prefix), returncode, stdout, stderr, handler))

    def which(self, binary: str) -> bool:
        if self.available is None:
            return True
        return binary in self.available

    def _execute(self, argv: List[str], invocation: Invocation, capture: bool) -> CommandResult:
        self.calls.append(invocation)
        if self.echo:
            logger.info(f"MOCK: Would run: {shlex.join(argv)}")

        response = self._match(invocation.args)
        if response is None:
            return CommandResult(argv, 0)
        if response.handler is not None:
            return response.handler(invocation)
        return CommandResult(argv, response.returncode, response.stdout, response.stderr)

    def _match(self, args: List[str]) -> Optional[_Response]:
        best = None
        for response in self._responses:
            size = len(response.prefix)
            if tuple(args[:size]) != response.prefix:
                continue
            if best is None or size > len(best.prefix):
                best = response
        return best

    @property
    def commands(self) -> List[str]:
        return [call.command for call in self.calls]

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if tuple(call.args[:len(prefix)]) == prefix)

    def ran(self, *prefix: str) -> bool:
        return self.count(*prefix) > 0

    def index(self, *prefix: str) -> int:
        """Position of the first call starting with ``prefix``, or -1."""
        for position, call in enumerate(self.calls):
            if tuple(call.args[:len(prefix)]) == prefix:
                return position
        return -1

"""Host facts: OS release, invoking account, public address."""
import os
import pwd
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nodeship.core.errors import PreconditionError
from nodeship.core.logger import get_logger

logger = get_logger(__name__)

OS_RELEASE = Path("/etc/os-release")


class UnsupportedPlatformError(PreconditionError):
    """Raised when the host OS cannot be detected or is not supported."""
    pass


@dataclass(frozen=True)
class HostProfile:
    """Detected operating system. Read-only for the rest of the run."""
    id: str
    id_like: str = ""
    version: str = ""
    pretty_name: str = ""

    @property
    def display_name(self) -> str:
        return self.pretty_name or f"{self.id} {self.version}".strip()


def parse_os_release(content: str) -> dict:
    """Parse KEY=value lines of an os-release file (shell quoting allowed)."""
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("'\"")]
        values[key.strip()] = " ".join(parts)
    return values


def detect_host(os_release_path=OS_RELEASE) -> HostProfile:
    """Read the OS descriptor and return the host profile.

    Raises:
        UnsupportedPlatformError: If the descriptor file is absent or has no ID
    """
    path = Path(os_release_path)
    if not path.exists():
        raise UnsupportedPlatformError(f"Cannot detect OS. {path} not found")

    values = parse_os_release(path.read_text())
    os_id = values.get("ID", "").lower()
    if not os_id:
        raise UnsupportedPlatformError(f"Cannot detect OS. No ID in {path}")

    return HostProfile(
        id=os_id,
        id_like=values.get("ID_LIKE", ""),
        version=values.get("VERSION_ID", ""),
        pretty_name=values.get("PRETTY_NAME", ""),
    )


def is_privileged() -> bool:
    """Return True when running as root."""
    return os.geteuid() == 0


def detect_invoking_user(runner) -> Optional[str]:
    """Return the non-root account that started this run, if any."""
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        return sudo_user

    result = runner.run(["logname"], check=False)
    name = result.stdout.strip()
    if result.ok and name and name != "root":
        return name
    return None


def user_home(user: str) -> str:
    """Home directory of ``user`` (falls back to /home/<user>)."""
    try:
        return pwd.getpwnam(user).pw_dir
    except KeyError:
        return f"/home/{user}"


def detect_server_ip(runner) -> Optional[str]:
    """Return the first address reported by ``hostname -I``."""
    result = runner.run(["hostname", "-I"], check=False)
    if not result.ok:
        return None
    addresses = result.stdout.split()
    return addresses[0] if addresses else None

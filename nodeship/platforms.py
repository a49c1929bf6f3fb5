"""Per-distribution dispatch table.

Maps each supported OS id to the package manager, package names, NodeSource
repository, nginx layout and firewall tool used for the whole run.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from nodeship.core.logger import get_logger
from nodeship.discovery.host import HostProfile, UnsupportedPlatformError

logger = get_logger(__name__)


class Platform(Enum):
    """Supported distributions, keyed by os-release ID."""
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    FEDORA = "fedora"
    RHEL = "rhel"
    CENTOS = "centos"
    ROCKY = "rocky"
    ALMALINUX = "almalinux"


class ProxyLayout(Enum):
    """How nginx site configs are laid out on disk."""
    SITES = "sites"  # sites-available + sites-enabled symlinks
    CONF_D = "conf.d"  # single directory of enabled configs


@dataclass(frozen=True)
class PackageManager:
    """Command family of one package manager."""
    binary: str
    refresh_first: bool = False

    def install(self, packages: List[str]) -> List[str]:
        return [self.binary, "install", "-y", *packages]

    def remove(self, packages: List[str]) -> List[str]:
        return [self.binary, "remove", "-y", *packages]

    def refresh(self) -> List[str]:
        return [self.binary, "update"]


APT = PackageManager("apt-get", refresh_first=True)
DNF = PackageManager("dnf")
YUM = PackageManager("yum")


@dataclass(frozen=True)
class PlatformProfile:
    """Everything that differs between distribution families."""
    family: str
    package_managers: Tuple[PackageManager, ...]
    base_packages: Tuple[str, ...]
    nodesource_url: str
    proxy_layout: ProxyLayout
    firewall: str


DEBIAN_FAMILY = PlatformProfile(
    family="debian",
    package_managers=(APT,),
    base_packages=("curl", "wget", "git", "build-essential", "nginx"),
    nodesource_url="https://deb.nodesource.com",
    proxy_layout=ProxyLayout.SITES,
    firewall="ufw",
)

FEDORA_FAMILY = PlatformProfile(
    family="fedora",
    package_managers=(DNF,),
    base_packages=("curl", "wget", "git", "gcc-c++", "make", "nginx"),
    nodesource_url="https://rpm.nodesource.com",
    proxy_layout=ProxyLayout.CONF_D,
    firewall="firewalld",
)

RHEL_FAMILY = PlatformProfile(
    family="rhel",
    package_managers=(DNF, YUM),
    base_packages=("curl", "wget", "git", "gcc-c++", "make", "nginx"),
    nodesource_url="https://rpm.nodesource.com",
    proxy_layout=ProxyLayout.CONF_D,
    firewall="firewalld",
)

PLATFORMS: Dict[Platform, PlatformProfile] = {
    Platform.UBUNTU: DEBIAN_FAMILY,
    Platform.DEBIAN: DEBIAN_FAMILY,
    Platform.FEDORA: FEDORA_FAMILY,
    Platform.RHEL: RHEL_FAMILY,
    Platform.CENTOS: RHEL_FAMILY,
    Platform.ROCKY: RHEL_FAMILY,
    Platform.ALMALINUX: RHEL_FAMILY,
}

# Fallback for unknown IDs: first available binary decides the family
DETECTION_ORDER: Tuple[Tuple[PackageManager, PlatformProfile], ...] = (
    (APT, DEBIAN_FAMILY),
    (DNF, FEDORA_FAMILY),
    (YUM, PlatformProfile(
        family="rhel",
        package_managers=(YUM,),
        base_packages=RHEL_FAMILY.base_packages,
        nodesource_url=RHEL_FAMILY.nodesource_url,
        proxy_layout=RHEL_FAMILY.proxy_layout,
        firewall=RHEL_FAMILY.firewall,
    )),
)


@dataclass(frozen=True)
class ResolvedPlatform:
    """Platform profile plus the package manager chosen for this host."""
    label: str
    profile: PlatformProfile
    package_manager: PackageManager

    @property
    def family(self) -> str:
        return self.profile.family


def resolve_platform(host: HostProfile, runner) -> ResolvedPlatform:
    """Pick the platform profile for ``host``.

    Exact match on the OS id first; unknown ids fall back to whichever
    package manager binary is installed.

    Raises:
        UnsupportedPlatformError: If neither strategy finds a match
    """
    try:
        platform = Platform(host.id)
    except ValueError:
        platform = None

    if platform is not None:
        profile = PLATFORMS[platform]
        for manager in profile.package_managers:
            if runner.which(manager.binary):
                logger.info(f"Using {manager.binary} package manager")
                return ResolvedPlatform(platform.value, profile, manager)
        raise UnsupportedPlatformError(
            f"No supported package manager found for {host.id} "
            f"(tried: {', '.join(m.binary for m in profile.package_managers)})"
        )

    for manager, profile in DETECTION_ORDER:
        if runner.which(manager.binary):
            logger.info(f"Using {manager.binary} package manager (detected)")
            return ResolvedPlatform(host.id, profile, manager)

    raise UnsupportedPlatformError(f"Unsupported distribution: {host.id}")

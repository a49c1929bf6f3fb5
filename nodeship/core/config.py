"""nodeship runtime configuration and settings."""
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml

from nodeship.core.errors import PreconditionError

# Default config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./nodeship.yml",
    str(Path.home() / ".config" / "nodeship" / "nodeship.yml"),
    "/etc/nodeship/nodeship.yml",
]


@dataclass
class NodeshipConfig:
    """Runtime configuration for setup and deploy runs.

    Attributes:
        upstream_port: Local port the app listens on, proxied by nginx (default: 3000)
        node_major: Node.js major version installed from NodeSource (default: 24)
        client_max_body_size: nginx upload limit (default: 20M)
        nginx_root: nginx configuration root (default: /etc/nginx)
        os_release_path: OS descriptor file used for host detection
        remote: Git remote pulled by deploy (default: origin)
        primary_branch: Preferred branch to deploy (default: main)
        fallback_branch: Branch used when the primary is missing (default: master)
        log_lines: PM2 log lines dumped after a failed deploy (default: 20)
        bootstrap_timeout: Timeout in seconds for fetching the NodeSource script (default: 60)
    """

    upstream_port: int = 3000
    node_major: int = 24
    client_max_body_size: str = "20M"
    nginx_root: str = "/etc/nginx"
    os_release_path: str = "/etc/os-release"

    # Deploy
    remote: str = "origin"
    primary_branch: str = "main"
    fallback_branch: str = "master"
    log_lines: int = 20

    # Network
    bootstrap_timeout: int = 60

    @classmethod
    def from_env(cls, base: Optional["NodeshipConfig"] = None) -> "NodeshipConfig":
        """Create config from NODESHIP_* environment variables.

        Environment variables:
            NODESHIP_UPSTREAM_PORT, NODESHIP_NODE_MAJOR, NODESHIP_NGINX_ROOT,
            NODESHIP_PRIMARY_BRANCH, NODESHIP_LOG_LINES, ... (one per field)

        Args:
            base: Values used where no variable is set (defaults otherwise)

        Returns:
            NodeshipConfig instance with values from environment or base
        """
        base = base or cls()
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(f"NODESHIP_{f.name.upper()}")
            if raw is None:
                continue
            if f.type in (int, "int"):
                try:
                    overrides[f.name] = int(raw)
                except ValueError:
                    raise PreconditionError(
                        f"NODESHIP_{f.name.upper()} must be an integer, got {raw!r}"
                    ) from None
            else:
                overrides[f.name] = raw
        return replace(base, **overrides)

    @classmethod
    def from_file(cls, path) -> "NodeshipConfig":
        """Load config values from a YAML mapping.

        Raises:
            PreconditionError: If the file is not a YAML mapping or has unknown keys
        """
        try:
            data = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as e:
            raise PreconditionError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise PreconditionError(f"Config file must contain a mapping: {path}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise PreconditionError(
                f"Unknown config keys in {path}: {', '.join(unknown)}"
            )
        return cls(**data)


def find_config(config_path: Optional[str] = None) -> Optional[str]:
    """Locate the active nodeship configuration file, if any."""
    if config_path:
        return config_path

    if env_config := os.environ.get("NODESHIP_CONFIG"):
        return env_config

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return path

    return None


def load_config(config_path: Optional[str] = None) -> NodeshipConfig:
    """Build the effective config: file values, then environment overrides."""
    path = find_config(config_path)
    if path is None:
        return NodeshipConfig.from_env()

    if not Path(path).exists():
        raise PreconditionError(f"Config file not found: {path}")
    return NodeshipConfig.from_env(NodeshipConfig.from_file(path))


# Global config instance (can be overridden)
_config: Optional[NodeshipConfig] = None


def get_config() -> NodeshipConfig:
    """Get the global nodeship configuration.

    Returns:
        NodeshipConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = NodeshipConfig.from_env()
    return _config


def set_config(config: NodeshipConfig):
    """Set the global nodeship configuration.

    Args:
        config: NodeshipConfig instance to use globally
    """
    global _config
    _config = config

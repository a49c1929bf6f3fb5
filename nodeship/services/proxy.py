"""nginx reverse-proxy configuration.

Renders a single server block forwarding port 80 to the local app port,
installs it using the distribution's layout, and only restarts nginx after
``nginx -t`` accepts the new configuration.
"""
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from jinja2 import BaseLoader, Environment

from nodeship.core.errors import NodeshipError
from nodeship.core.logger import get_logger
from nodeship.platforms import ProxyLayout

logger = get_logger(__name__)

SITE_TEMPLATE = """\
server {
    listen 80 default_server;
    listen [::]:80 default_server;

    # Server name - add your domain here later
    # For now, accepts any domain/IP
    server_name _;

    # App: {{ app_name }}
    # Server IP: {{ server_ip }}
    # To add domain: server_name example.com www.example.com;

    location / {
        proxy_pass http://localhost:{{ upstream_port }};
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection 'upgrade';
        proxy_set_header Host $host;
        proxy_cache_bypass $http_upgrade;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }

    client_max_body_size {{ client_max_body_size }};
}
"""


class ProxyError(NodeshipError):
    """Raised when the site config cannot be installed."""
    pass


class ProxyValidationError(ProxyError):
    """Raised when nginx rejects the generated configuration."""
    pass


def site_name(app_name: str) -> str:
    """File name for an app's site; scoped names like @acme/shop become acme-shop."""
    return app_name.lstrip("@").replace("/", "-")


@dataclass
class ProxyConfig:
    """Rendered site config and where it lives."""
    path: Path
    content: str


class ProxyConfigurator:
    """Installs the nginx site for one app."""

    def __init__(self, runner, platform, config, mock: bool = False):
        self.runner = runner
        self.platform = platform
        self.config = config
        self.mock = mock
        self.root = Path(config.nginx_root)
        self.jinja_env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            keep_trailing_newline=True,
        )

    @property
    def layout(self) -> ProxyLayout:
        return self.platform.profile.proxy_layout

    @property
    def available_dir(self) -> Path:
        if self.layout is ProxyLayout.SITES:
            return self.root / "sites-available"
        return self.root / "conf.d"

    @property
    def enabled_dir(self) -> Path:
        if self.layout is ProxyLayout.SITES:
            return self.root / "sites-enabled"
        return self.root / "conf.d"

    def config_path(self, app_name: str) -> Path:
        if self.layout is ProxyLayout.SITES:
            return self.available_dir / site_name(app_name)
        return self.available_dir / f"{site_name(app_name)}.conf"

    def default_sites(self) -> List[Path]:
        """Distribution default configs that would shadow ours."""
        if self.layout is ProxyLayout.SITES:
            return [self.enabled_dir / "default"]
        return [self.available_dir / "default.conf", self.available_dir / "nginx.conf.default"]

    def render(self, app_name: str, server_ip: Optional[str] = None) -> ProxyConfig:
        template = self.jinja_env.from_string(SITE_TEMPLATE)
        content = template.render(
            app_name=app_name,
            server_ip=server_ip or "unknown",
            upstream_port=self.config.upstream_port,
            client_max_body_size=self.config.client_max_body_size,
        )
        return ProxyConfig(path=self.config_path(app_name), content=content)

    def configure(self, app_name: str, server_ip: Optional[str] = None) -> ProxyConfig:
        """Write, activate, validate and apply the site config.

        Raises:
            ProxyError: If the config file or symlink cannot be written
            ProxyValidationError: If ``nginx -t`` fails (nginx is not restarted)
            CommandError: If enabling or restarting nginx fails
        """
        proxy_config = self.render(app_name, server_ip)

        if self.mock:
            logger.info(f"MOCK: Would write {proxy_config.path}")
        else:
            try:
                self.available_dir.mkdir(parents=True, exist_ok=True)
                self.enabled_dir.mkdir(parents=True, exist_ok=True)
                self._write_atomic(proxy_config)
                self._remove_defaults()
                self._activate(app_name, proxy_config.path)
            except OSError as e:
                raise ProxyError(f"Could not install nginx site {proxy_config.path}: {e}") from e

        self.validate()

        self.runner.run(["systemctl", "enable", "nginx"])
        self.runner.run(["systemctl", "restart", "nginx"])
        logger.info(f"✓ nginx configured for {app_name}")
        return proxy_config

    def validate(self) -> None:
        result = self.runner.run(["nginx", "-t"], check=False)
        if not result.ok:
            output = (result.stderr or result.stdout).strip()
            raise ProxyValidationError(f"nginx configuration test failed:\n{output}")

    def _write_atomic(self, proxy_config: ProxyConfig) -> None:
        target = proxy_config.path
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "w") as handle:
                handle.write(proxy_config.content)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote {target}")

    def _remove_defaults(self) -> None:
        for path in self.default_sites():
            if path.is_symlink() or path.exists():
                path.unlink()
                logger.info(f"Removed default site {path}")

    def _activate(self, app_name: str, config_file: Path) -> None:
        if self.layout is not ProxyLayout.SITES:
            return

        link = self.enabled_dir / site_name(app_name)
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(config_file)

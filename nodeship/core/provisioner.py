"""Host provisioning pipeline for a Node.js app.

Detects the host once, then runs seven ordered steps: system packages,
Node.js, PM2, nginx, firewall, PM2 boot startup, app dependencies. Any
failing command ends the run; nothing is rolled back.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console

from nodeship.core.errors import PreconditionError
from nodeship.core.logger import get_logger
from nodeship.discovery.host import (
    HostProfile,
    detect_host,
    detect_invoking_user,
    detect_server_ip,
    is_privileged,
    user_home,
)
from nodeship.discovery.manifest import AppManifest, load_manifest
from nodeship.platforms import ResolvedPlatform, resolve_platform
from nodeship.services.dependencies import DependencyInstaller
from nodeship.services.firewall import FirewallConfigurator
from nodeship.services.packages import PackageInstaller
from nodeship.services.process_manager import ProcessManager
from nodeship.services.proxy import ProxyConfigurator
from nodeship.services.runtime import RuntimeInstaller

logger = get_logger(__name__)


@dataclass
class ProvisionContext:
    """Facts gathered before the first mutation; fixed for the whole run."""
    manifest: AppManifest
    host: HostProfile
    platform: ResolvedPlatform
    invoking_user: Optional[str]
    server_ip: Optional[str]


@dataclass
class ProvisionReport:
    """What a finished setup run produced, for the closing summary."""
    app_name: str
    platform: ResolvedPlatform
    server_ip: Optional[str] = None
    proxy_config_path: Optional[Path] = None
    firewall_configured: bool = False
    startup_registered: bool = False
    node_version: Optional[str] = None


class Provisioner:
    """Runs the setup steps against the local host."""

    def __init__(self, project_dir, runner, config, console: Optional[Console] = None, mock: bool = False):
        self.project_dir = Path(project_dir)
        self.runner = runner
        self.config = config
        self.console = console or Console()
        self.mock = mock

    def prepare(self) -> ProvisionContext:
        """Check preconditions and detect the host.

        Raises:
            PreconditionError: If not root, no manifest/name, or unsupported OS
        """
        if not self.mock and not is_privileged():
            raise PreconditionError("This command must be run as root (use sudo)")

        manifest = load_manifest(self.project_dir)
        self.console.print(f"[green]✓[/green] Found app: {manifest.name}")

        host = detect_host(self.config.os_release_path)
        self.console.print(
            f"[yellow]➜[/yellow] Detected OS: {host.id} (family: {host.id_like or 'n/a'})"
        )
        platform = resolve_platform(host, self.runner)

        return ProvisionContext(
            manifest=manifest,
            host=host,
            platform=platform,
            invoking_user=detect_invoking_user(self.runner),
            server_ip=detect_server_ip(self.runner),
        )

    def run(self) -> ProvisionReport:
        return self.run_steps(self.prepare())

    def run_steps(self, ctx: ProvisionContext) -> ProvisionReport:
        """Run every setup step in order; the first failure aborts the run."""
        report = ProvisionReport(
            app_name=ctx.manifest.name,
            platform=ctx.platform,
            server_ip=ctx.server_ip,
        )

        steps = [
            ("Installing system packages", self._install_packages),
            ("Installing Node.js", self._install_runtime),
            ("Installing PM2", self._install_pm2),
            ("Configuring nginx", self._configure_proxy),
            ("Setting up firewall", self._configure_firewall),
            ("Configuring PM2 startup", self._register_startup),
            ("Installing app dependencies", self._install_dependencies),
        ]
        for number, (title, step) in enumerate(steps, start=1):
            self.console.print(f"[yellow]➜[/yellow] Step {number}/{len(steps)}: {title}...")
            step(ctx, report)

        return report

    def _install_packages(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        PackageInstaller(self.runner, ctx.platform).install_base()

    def _install_runtime(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        versions = RuntimeInstaller(self.runner, ctx.platform, self.config, mock=self.mock).install()
        report.node_version = versions["node"]

    def _install_pm2(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        PackageInstaller(self.runner, ctx.platform).install_process_manager()

    def _configure_proxy(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        proxy = ProxyConfigurator(self.runner, ctx.platform, self.config, mock=self.mock)
        report.proxy_config_path = proxy.configure(ctx.manifest.name, ctx.server_ip).path

    def _configure_firewall(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        report.firewall_configured = FirewallConfigurator(self.runner, ctx.platform).configure()

    def _register_startup(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        user = ctx.invoking_user or "root"
        home = user_home(user) if ctx.invoking_user else "/root"
        pm2 = ProcessManager(self.runner, self.project_dir)
        report.startup_registered = pm2.register_startup(user, home)

    def _install_dependencies(self, ctx: ProvisionContext, report: ProvisionReport) -> None:
        DependencyInstaller(self.runner).install(
            self.project_dir,
            include_dev=False,
            user=ctx.invoking_user,
        )

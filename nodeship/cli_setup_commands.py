"""Setup command: provision a fresh VPS for the app in the project directory."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from nodeship.cli_support import (
    build_runner,
    handle_cli_error,
    is_mock,
    prepare_config,
    print_banner,
    print_error,
    print_info,
    print_success,
    resolve_project_dir,
    setup_file_logging,
)
from nodeship.core.errors import NodeshipError
from nodeship.core.provisioner import ProvisionReport, Provisioner

CERTBOT_HINTS = {
    "debian": "apt install certbot python3-certbot-nginx",
    "fedora": "dnf install certbot python3-certbot-nginx",
    "rhel": "dnf install certbot python3-certbot-nginx",
}


def register_setup_commands(root: typer.Typer, console: Console) -> None:
    """Attach the setup command to the main CLI."""

    @root.command("setup")
    def setup_command(
        project: Optional[Path] = typer.Option(None, "--project", "-C", help="Node.js project root (default: current directory)."),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="nodeship config file."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output and tracebacks."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a log file here."),
    ) -> None:
        """Provision this host: Node.js, PM2, nginx, firewall and app dependencies.

        Run as root from the project root (the directory with package.json).
        """
        setup_file_logging(log_file=log_file, verbose=verbose)
        project_dir = resolve_project_dir(project)

        try:
            settings = prepare_config(config)
            provisioner = Provisioner(
                project_dir,
                build_runner(),
                settings,
                console=console,
                mock=is_mock(),
            )
            ctx = provisioner.prepare()
            print_banner(console, f"VPS Setup Script for {ctx.manifest.name}")
            report = provisioner.run_steps(ctx)
        except NodeshipError as e:
            handle_cli_error(e, console, verbose=verbose)

        print_summary(console, report)


def print_summary(console: Console, report: ProvisionReport) -> None:
    """Print the manual follow-up steps after a successful setup."""
    address = report.server_ip or "<server-ip>"

    console.print()
    console.print("======================================")
    print_success(console, "Setup completed successfully!")
    console.print("======================================")
    console.print()

    if report.node_version:
        print_success(console, f"Node.js {report.node_version} installed")
    if not report.firewall_configured:
        print_error(console, "No firewall tool found; ports were not opened")
    if not report.startup_registered:
        print_error(console, "PM2 startup hook was not registered; run 'pm2 startup' manually")

    print_info(console, "Next steps:")
    console.print("  1. Build your app: npm run build")
    console.print(f"  2. Start with PM2: pm2 start npm --name \"{report.app_name}\" -- start", markup=False)
    console.print("  3. Save PM2 config: pm2 save")
    console.print(f"  4. Your app will be available at: http://{address}")
    console.print()

    print_info(console, "To add a domain:")
    console.print(f"  1. Point your domain's A record to: {address}")
    console.print(f"  2. Edit: {report.proxy_config_path}")
    console.print("  3. Change 'server_name _' to 'server_name yourdomain.com'")
    console.print("  4. Restart nginx: systemctl restart nginx")
    console.print()

    print_info(console, "To enable HTTPS with Let's Encrypt:")
    console.print("  1. Install certbot:")
    hint = CERTBOT_HINTS.get(report.platform.family)
    if hint:
        console.print(f"     {hint}")
    console.print("  2. Run: certbot --nginx -d yourdomain.com")
    console.print()

"""Deploy command: pull, build and restart the app under PM2."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from nodeship.cli_support import (
    build_runner,
    handle_cli_error,
    prepare_config,
    print_banner,
    print_info,
    print_success,
    resolve_project_dir,
    setup_file_logging,
)
from nodeship.core.deployer import Deployer, DeploymentOutcome
from nodeship.core.errors import NodeshipError


def register_deploy_commands(root: typer.Typer, console: Console) -> None:
    """Attach the deploy command to the main CLI."""

    @root.command("deploy")
    def deploy_command(
        project: Optional[Path] = typer.Option(None, "--project", "-C", help="Node.js project root (default: current directory)."),
        logs: bool = typer.Option(False, "--logs", "-l", help="Show logs after deployment."),
        force: bool = typer.Option(False, "--force", "-f", help="Delete the PM2 process first and start it fresh."),
        config: Optional[str] = typer.Option(None, "--config", "-c", help="nodeship config file."),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output and tracebacks."),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Write a log file here."),
    ) -> None:
        """Pull latest changes, install dependencies, build, and restart with PM2.

        This will:
          1. Pull latest changes from git
          2. Install/update dependencies
          3. Build the application
          4. Restart with PM2
        """
        setup_file_logging(log_file=log_file, verbose=verbose)
        project_dir = resolve_project_dir(project)

        try:
            settings = prepare_config(config)
            deployer = Deployer(project_dir, build_runner(), settings, console=console)
            print_banner(console, f"Deploying: {deployer.manifest.name}")
            outcome = deployer.run(force=force)
        except NodeshipError as e:
            handle_cli_error(e, console, verbose=verbose)

        print_status(console, outcome)
        console.print()
        print_success(console, "Deployment successful! 🚀")

        if logs:
            console.print()
            print_info(console, "Streaming logs (Ctrl+C to exit)...")
            deployer.pm2.stream_logs(outcome.app_name)


def print_status(console: Console, outcome: DeploymentOutcome) -> None:
    """Print the PM2 status excerpt and handy follow-up commands."""
    name = outcome.app_name
    console.print()
    for line in outcome.status or []:
        console.print(line, markup=False, highlight=False)

    console.print()
    print_info(console, "Useful commands:")
    console.print(f"  • View logs:    pm2 logs {name}", markup=False)
    console.print("  • Monitor:      pm2 monit")
    console.print(f"  • Stop app:     pm2 stop {name}", markup=False)
    console.print(f"  • Start app:    pm2 start {name}", markup=False)
    console.print(f"  • App info:     pm2 show {name}", markup=False)

#!/usr/bin/env python3
"""nodeship CLI - Provision and deploy Node.js apps on a single VPS."""

import typer
from rich.console import Console

from nodeship.cli_deploy_commands import register_deploy_commands
from nodeship.cli_setup_commands import register_setup_commands
from nodeship.core.logger import get_logger

app = typer.Typer(
    name="nodeship",
    help="""nodeship - Provision and deploy Node.js apps on a single VPS

Node.js + PM2 + nginx, driven by your package.json.

Quick start:
  sudo nodeship setup     # Prepare a fresh server (run once)
  nodeship deploy         # Pull, build and restart
  nodeship deploy --logs  # ...then follow the logs

More commands: nodeship --help
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

register_setup_commands(app, console)
register_deploy_commands(app, console)

if __name__ == "__main__":
    app()

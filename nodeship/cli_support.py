"""Shared utilities for nodeship CLI modules."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from nodeship.core.config import NodeshipConfig, load_config, set_config
from nodeship.core.runner import CommandRunner, RecordingRunner, SubprocessRunner


def is_mock() -> bool:
    """Return True when CLI runs in mock mode."""
    return os.environ.get("NODESHIP_MOCK") == "1"


def build_runner(mock: Optional[bool] = None) -> CommandRunner:
    """Return the command runner for this invocation."""
    if mock is None:
        mock = is_mock()
    if mock:
        return RecordingRunner(echo=True)
    return SubprocessRunner()


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands.

    Args:
        log_file: Path to log file (optional)
        verbose: Enable verbose logging
    """
    from nodeship.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def prepare_config(config_path: Optional[str]) -> NodeshipConfig:
    """Load the effective config and install it as the global instance."""
    config = load_config(config_path)
    set_config(config)
    return config


def resolve_project_dir(project: Optional[Path]) -> Path:
    """Project directory from --project, defaulting to the current directory."""
    return (project or Path.cwd()).resolve()


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_banner(console: Console, title: str) -> None:
    console.print("======================================")
    console.print(f"   {title}", highlight=False)
    console.print("======================================")
    console.print()


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    """Print success message with consistent formatting.

    Args:
        console: Rich console for output
        message: Success message
        prefix: Prefix symbol (default: ✓)
    """
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    """Print error message with consistent formatting.

    Args:
        console: Rich console for output
        message: Error message
        prefix: Prefix symbol (default: ✗)
    """
    console.print(f"[red]{prefix}[/red] {message}")


def print_info(console: Console, message: str, prefix: str = "➜") -> None:
    """Print info message with consistent formatting.

    Args:
        console: Rich console for output
        message: Info message
        prefix: Prefix symbol (default: ➜)
    """
    console.print(f"[yellow]{prefix}[/yellow] {message}")

"""Logging for nodeship runs.

Every module logger is a child of the ``nodeship`` logger and leaves its own
level unset, so the single level chosen by :func:`setup_file_logging` decides
what reaches the console and the run log. With ``verbose`` set, each command
the runner executes is recorded as a ``Running: ...`` debug line.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()

ROOT_LOGGER = "nodeship"
LOG_DIR = Path("/var/log/nodeship")
LOG_FILE = LOG_DIR / "nodeship.log"
FALLBACK_LOG_FILE = Path("/tmp/nodeship.log")
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_file_handler: Optional[logging.FileHandler] = None


def _package_logger() -> logging.Logger:
    """The ``nodeship`` logger, with its console handler attached once."""
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(logging.INFO)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return root


def _open_log_file(target: Path) -> logging.FileHandler:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target)
    except PermissionError:
        # setup runs as root, deploy usually does not
        return logging.FileHandler(FALLBACK_LOG_FILE)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Send this run's log records to a file.

    Calling it again replaces the previous file handler, so one process can
    run several commands with different log files.

    Args:
        log_file: Path to log file (defaults to /var/log/nodeship/nodeship.log)
        verbose: Record debug output, including every command executed

    Returns:
        Path of the log file actually opened (may be the /tmp fallback)
    """
    global _file_handler

    root = _package_logger()
    level = logging.DEBUG if verbose else logging.INFO

    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = _open_log_file(Path(log_file) if log_file else LOG_FILE)
    _file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    _file_handler.setLevel(level)
    root.addHandler(_file_handler)
    root.setLevel(level)

    for handler in root.handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(level)

    target = Path(_file_handler.baseFilename)
    root.info(f"nodeship logging initialized: {target}")
    return target


def get_logger(name: str) -> logging.Logger:
    """Module logger that inherits level and handlers from ``nodeship``."""
    _package_logger()
    return logging.getLogger(name)

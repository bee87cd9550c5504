"""
Logging configuration for Overseer.

Library modules call ``logging.getLogger(__name__)`` and the CLI calls
``get_logger``; nothing is printed until a host (or the CLI) calls
``configure_logging``.
"""

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers installed by configure_logging, so a second call replaces them
_installed_handlers: list[logging.Handler] = []


def configure_logging(
    level: str | int = "INFO",
    log_file: str | Path | None = None,
) -> Path | None:
    """
    Configure the ``overseer`` logger.

    Console output goes to stderr through Rich. When ``log_file`` is given,
    everything is also written to a rotating file (10MB x 5).

    Args:
        level: Log level name or number
        log_file: Optional path of the rotating log file

    Returns:
        The log file path, if one was configured
    """
    logger = logging.getLogger("overseer")

    # Remove handlers from a previous call to avoid duplicates
    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    path: Path | None = None
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    return path


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)

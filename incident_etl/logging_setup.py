"""Logging utilities for the incident ETL.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires handlers once per run.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from incident_etl.config import LOG_FILENAME

FILE_FORMAT = "%(asctime)s [%(levelname)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    level: Optional[int] = None,
) -> None:
    """Configure logging for a run.

    Sends records to stderr through rich and, when ``log_dir`` is
    given, to ``preprocess.log`` in that directory. It can be called
    multiple times safely.

    Args:
        verbose: If True, set log level to DEBUG, otherwise INFO
        log_dir: Directory for the log file (created if missing). None disables it.
        level: Optional explicit log level (overrides verbose)
    """
    if level is not None:
        log_level = level
    else:
        log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_path=False,
            log_time_format=f"[{DATE_FORMAT}]",
        )
    ]

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=handlers,
        force=True,  # Override any existing configuration
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)

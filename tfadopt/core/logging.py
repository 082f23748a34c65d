"""
Logging Configuration Module
============================

Console and file logging for tfadopt runs.

Progress tables and summaries are printed by the CLI; this module only
routes log records. Records go to stderr through Rich, and optionally to
a plain-text file for later inspection of a long import.

Example
-------
>>> from tfadopt.core.logging import setup_logging
>>>
>>> setup_logging(level="DEBUG", log_file="import.log")
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDK loggers that drown adapter output at DEBUG
NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def _as_level(level: Union[str, int]) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Route tfadopt log records to the console and an optional file.

    The root handlers are replaced on every call, so one process may
    configure logging repeatedly (the CLI does so per command).

    Parameters
    ----------
    level : str or int, default="INFO"
        Threshold for both handlers.
    log_file : str, optional
        Also append records to this file.
    console : Console, optional
        Rich console to render to; stderr by default so that stdout stays
        free for command output.
    """
    level = _as_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Resource names and policies may contain brackets; never parse markup
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """
    Temporarily change a logger's level.

    The importer wraps adapter discovery in it for verbose runs, so
    ``[aws:<service>]`` debug lines show up without touching handlers.

    Parameters
    ----------
    logger : logging.Logger
        Logger to adjust.
    level : str or int
        Level while inside the block.
    """

    def __init__(self, logger: logging.Logger, level: Union[str, int]) -> None:
        self.logger = logger
        self.new_level = _as_level(level)
        self.original_level: Optional[int] = None

    def __enter__(self) -> logging.Logger:
        self.original_level = self.logger.level
        self.logger.setLevel(self.new_level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_level is not None:
            self.logger.setLevel(self.original_level)

"""Logging configuration for restamp runs."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from restamp.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_FLAG = "_restamp_handler"


def configure_logging(
    settings: LoggingSettings,
    *,
    log_file: Path | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> None:
    """Install console and run-log handlers on the `restamp` logger.

    Calling this again replaces handlers installed by a previous call.

    Args:
        settings: Level and rotation settings.
        log_file: Run log receiving INFO and above regardless of console level.
        verbose: Lower the console level to INFO.
        console: Rich console used for console output.
    """
    logger = logging.getLogger("restamp")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            logger.removeHandler(handler)
            handler.close()

    console_level = logging.INFO if verbose else _level(settings.level)
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(console_level)
    setattr(console_handler, _HANDLER_FLAG, True)
    logger.addHandler(console_handler)

    file_level = console_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max(settings.max_size_mb, 0) * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
        file_level = min(logging.INFO, console_level)
        file_handler.setLevel(file_level)
        setattr(file_handler, _HANDLER_FLAG, True)
        logger.addHandler(file_handler)

    logger.setLevel(min(console_level, file_level))


def _level(name: str) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.WARNING


__all__ = ["configure_logging"]

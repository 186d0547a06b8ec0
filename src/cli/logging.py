"""Structured logging setup for command-line runs."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from ..config.settings import LoggingSettings, settings

DEFAULT_LOG_FILE = "logs/tabml.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
BACKUP_LOG_FILES = 5
_ROOT_LOGGER = "src"


def _resolve_log_path(config: LoggingSettings) -> Path:
    if config.file_path:
        return Path(config.file_path).expanduser()
    project_root = Path(__file__).resolve().parents[2]
    return project_root / DEFAULT_LOG_FILE


def configure_logging(
    config: Optional[LoggingSettings] = None, verbose: bool = False
) -> logging.Logger:
    """Route structlog events through stdlib logging.

    Events go as JSON to a rotating file, and to stderr rendered per
    ``config.format``. Calling again replaces the handlers.
    """
    config = config or settings.logging
    level = logging.DEBUG if verbose else getattr(logging, config.level, logging.INFO)

    shared = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    console_renderer = (
        structlog.processors.JSONRenderer()
        if config.format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    logger = logging.getLogger(_ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_path = _resolve_log_path(config)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=BACKUP_LOG_FILES,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(), foreign_pre_chain=shared
        )
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=console_renderer, foreign_pre_chain=shared
        )
    )
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.setLevel(level)
    logger.propagate = False

    structlog.configure(
        processors=shared
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return logger

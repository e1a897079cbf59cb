"""Loguru sinks for the CLI and the API server.

uvicorn, httpx and alembic log through the standard library; their records
are forwarded into loguru so a running server writes one stream.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from district_lookup.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "alembic")


class StandardLibraryForwarder(logging.Handler):
    """Re-emit standard library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so {name}:{line} point at the caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def forward_standard_logging(level: str) -> None:
    handler = StandardLibraryForwarder()
    for name in FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False
        std_logger.setLevel(level)


def setup_logging(settings: Settings, level: Optional[str] = None) -> None:
    """
    Replace loguru's default sink with a console sink and a rotating file.

    Args:
        settings: Application settings; ``log_level`` and ``log_file`` are used.
        level: Overrides ``settings.log_level`` (``--verbose`` passes DEBUG).
    """
    level = (level or settings.log_level).upper()
    logger.remove()

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    log_path = Path(settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_path,
        level=level,
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )

    forward_standard_logging(level)
    logger.debug("Logging to stderr and {} at {}", log_path, level)

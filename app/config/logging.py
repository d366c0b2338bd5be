"""
Logging configuration.

Configures loguru sinks for the worker and scheduler processes.
"""

import sys
from pathlib import Path

from loguru import logger

from app.config.settings import settings


def setup_logging(log_file: str | None = None, level: str | None = None) -> None:
    """
    Configure loguru sinks.

    Args:
        log_file: Path of the rotating file sink (defaults to settings.log_file)
        level: Minimum level (defaults to settings.log_level)
    """
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[service]}</cyan> | "
            "<level>{message}</level>"
        ),
    )

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
        enqueue=True,
    )
    logger.configure(extra={"service": "-"})

    logger.info(f"Logging configured: level={level}, file={log_file}")

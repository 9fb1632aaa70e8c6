"""Loguru setup for the service."""

import sys
from typing import Optional

from loguru import logger


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> {extra}"
)


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Replace loguru's default handler with the service format.

    Bound context (e.g. ``sensor_id`` inside a dispatch loop) is rendered
    through ``{extra}``. This should be called once at application startup.
    """
    logger.remove()

    logger.add(
        sink=sys.stderr,
        format=LOG_FORMAT,
        level=level.upper(),
        colorize=True,
    )

    if log_file:
        logger.add(
            sink=log_file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra} | {name}:{function}:{line} | {message}",
            level=level.upper(),
            rotation="50 MB",
            retention="14 days",
            compression="zip",
        )

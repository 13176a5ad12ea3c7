"""
Logging setup for the survey pipeline processes (api, worker, scheduler).

Usage:
    from utils import logger, init_logging

    init_logging(app_name="worker")
    logger.info("Claimed message 42")
"""
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

logger.remove()

_configured = False

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}"


def setup_logging(log_dir: Optional[Path] = None, log_level: str = "INFO", app_name: str = "app"):
    """
    Add a stderr sink and, when log_dir is set, daily files per process.

    Args:
        log_dir: Directory for log files. None keeps logging on the console only.
        log_level: Minimum console level
        app_name: Log file prefix, one per process kind
    """
    global _configured

    if _configured:
        return

    logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / f"{app_name}_{{time:YYYY-MM-DD}}.log",
            level="INFO",
            format=FILE_FORMAT,
            rotation="00:00",
            retention="30 days",
            compression="gz",
            encoding="utf-8"
        )
        # Failed submissions and cleanup errors, kept longer for follow-up
        logger.add(
            log_dir / f"{app_name}_errors.log",
            level="ERROR",
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="90 days",
            encoding="utf-8"
        )

        logger.info(f"Logging to {log_dir}")

    _configured = True


def init_logging(app_name: str = "app"):
    """Configure logging from settings. Safe to call more than once."""
    from config import settings, ensure_directories

    ensure_directories()
    setup_logging(log_dir=settings.LOG_DIR, log_level=settings.LOG_LEVEL, app_name=app_name)


__all__ = ["logger", "setup_logging", "init_logging"]

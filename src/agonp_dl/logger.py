from pathlib import Path
from sys import stdout
from typing import Optional

from loguru import logger

# Default logging path
LOG_DIR = Path.cwd() / "logs"

# Remove default handler
logger.remove()


def configure_logger(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    rotation: str = "00:00",
    retention: str = "1 week",
    log_name: str = "agonp_dl",
    log_dir: Optional[str] = None,
):
    """Configure logger with given settings.

    Args:
        console_level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        file_level: File log level
        rotation: Log rotation settings (time like "00:00" or size like "500 MB")
        retention: How long to keep old logs
        log_name: Base name for the log file
        log_dir: Directory for log files, ``logs/`` under the cwd when omitted
    """
    logger.remove()

    directory = Path(log_dir) if log_dir else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"{log_name}_{{time:YYYY-MM-DD}}.log"

    logger.add(
        stdout,
        level=console_level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )

    # Daily file, full detail
    logger.add(
        log_file,
        rotation=rotation,
        retention=retention,
        level=file_level.upper(),
        encoding="utf-8",
        mode="a",
    )


__all__ = ["logger", "configure_logger"]

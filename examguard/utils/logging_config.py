"""
Logging setup for the ExamGuard service
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUPS = 5


def setup_logging(
    service_name: str = "examguard",
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """
    Route all loggers to stdout and, optionally, a rotating log file.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        service_name: Used for the log file name and the returned logger
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        log_to_file: Also write to <log_dir>/<service_name>.log
        log_dir: Directory for the log file (defaults to ./logs)

    Returns:
        The service logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logger = logging.getLogger(service_name)

    if log_to_file:
        directory = Path(log_dir) if log_dir else Path("logs")
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"{service_name}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.info(f"Logging to {log_file}")

    logger.info(f"Log level: {level}")
    return logger

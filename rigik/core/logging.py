"""Logging system with colored output and file logging"""

import copy
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "rigik"

CONSOLE_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)-24s │ %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-24s | %(message)s"


class ColoredFormatter(logging.Formatter):
    """Colored log output for terminal."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # The record is shared with the file handler, color a copy only
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        record.name = f"\033[34m{record.name}{self.RESET}"  # Blue for module name
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
    color: bool = True
) -> logging.Logger:
    """
    Setup logging for the rigik namespace.

    Calling it again only updates the level; handlers are installed once.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name prefix, a timestamp is appended
        log_dir: Directory for log files
        color: Use ANSI colors on the console

    Returns:
        The "rigik" logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))

    if root_logger.handlers:
        return root_logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    formatter_cls = ColoredFormatter if color else logging.Formatter
    console_handler.setFormatter(formatter_cls(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_path = log_path / f"{log_file}_{timestamp}.log"

        file_handler = logging.FileHandler(file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to file: {file_path}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger under the rigik namespace.

    Args:
        name: Module name (e.g., "ik.solver", "motion.animation")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

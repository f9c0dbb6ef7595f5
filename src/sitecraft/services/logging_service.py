import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from src.sitecraft.config import LOGS_DIR

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s:%(funcName)s:%(lineno)d - %(message)s"


class ColorFormatter(logging.Formatter):
    """A logging formatter that adds color to console output."""

    GREY = "\x1b[38;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    CYAN = "\x1b[36;20m"
    RESET = "\x1b[0m"

    FORMATS = {
        logging.DEBUG: f"{CYAN}{LOG_FORMAT}{RESET}",
        logging.INFO: f"{GREY}{LOG_FORMAT}{RESET}",
        logging.WARNING: f"{YELLOW}{LOG_FORMAT}{RESET}",
        logging.ERROR: f"{RED}{LOG_FORMAT}{RESET}",
        logging.CRITICAL: f"{BOLD_RED}{LOG_FORMAT}{RESET}",
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, LOG_FORMAT)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class LoggingService:
    """
    Configures centralized logging for the application.
    """
    LOG_FILE = "sitecraft.log"
    _configured = False

    @staticmethod
    def setup_logging(logs_dir: Optional[Path] = None, console_level: int = logging.INFO) -> Path:
        """
        Configure the root logger for file and console output.

        Safe to call more than once; handlers are only installed the first time.

        Returns:
            Path of the log file.
        """
        logs_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR
        log_file_path = logs_dir / LoggingService.LOG_FILE
        if LoggingService._configured:
            return log_file_path

        logs_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(ColorFormatter())

        file_handler = RotatingFileHandler(
            log_file_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root_logger.addHandler(console_handler)
        root_logger.addHandler(file_handler)
        LoggingService._configured = True

        logging.info("Logging service initialized at %s.", log_file_path)
        return log_file_path

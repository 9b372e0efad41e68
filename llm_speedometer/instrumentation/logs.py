"""
Logging setup for the benchmark CLI.

Logs go to stderr so stdout stays clean for JSON output.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LIBRARY_LOG_LEVELS = {
    "aiohttp": "WARNING",
    "asyncio": "WARNING",
    "anthropic": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "matplotlib": "WARNING",
}


class LoggingManager:
    """Manager for logging setup and logger retrieval."""

    _handlers: list[logging.Handler] = []

    @classmethod
    def setup_logging(cls, level: str = "WARNING", log_file: Optional[Path] = None) -> None:
        """Configure the root logger.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional file that receives the same records
        """
        numeric_level = getattr(logging, level.upper(), logging.WARNING)

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

        root_logger = logging.getLogger()
        # Re-running setup (tests, repeated CLI calls) must not stack handlers
        for handler in cls._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        cls._handlers = []

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(numeric_level)
        cls._handlers.append(console_handler)

        if log_file is not None:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            cls._handlers.append(file_handler)

        root_logger.setLevel(logging.DEBUG if log_file is not None else numeric_level)
        for handler in cls._handlers:
            root_logger.addHandler(handler)

        for logger_name, library_level in LIBRARY_LOG_LEVELS.items():
            logging.getLogger(logger_name).setLevel(getattr(logging, library_level))

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger instance.

        Args:
            name: Logger name, typically __name__
        """
        return logging.getLogger(name)

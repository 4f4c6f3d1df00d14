"""
Logging configuration and setup.

Console output is colored by level; an optional file handler records the
call site as well. LiteLLM's own loggers are kept at WARNING unless the
application runs at DEBUG, so provider chatter does not drown out dispatch logs.
"""

import logging
import sys
from pathlib import Path

from truthlens.config.settings import Settings

# Loggers owned by LiteLLM that are very noisy at INFO
THIRD_PARTY_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx")


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to the level name on console output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so the file handler still sees the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        if colored.levelname in self.COLORS:
            colored.levelname = f"{self.COLORS[colored.levelname]}{colored.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(settings: Settings) -> None:
    """
    Configure the ``truthlens`` logger hierarchy from settings.

    Args:
        settings: Application settings containing log configuration
    """
    level = getattr(logging, settings.log_level)

    app_logger = logging.getLogger("truthlens")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    app_logger.addHandler(console_handler)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        app_logger.addHandler(file_handler)

    app_logger.propagate = False

    third_party_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    app_logger.info(f"Logging initialized - Level: {settings.log_level}")
    if settings.log_file:
        app_logger.info(f"Logging to file: {settings.log_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the application namespace.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name == "truthlens" or name.startswith("truthlens."):
        return logging.getLogger(name)
    return logging.getLogger(f"truthlens.{name}")


def mask_secret(secret: str | None) -> str:
    """
    Render a credential safely for log output.

    Keeps the last four characters so operators can tell keys apart.

    >>> mask_secret("gsk_abcdefgh1234")
    '****1234'
    """
    if not secret:
        return "<none>"
    if len(secret) <= 8:
        return "****"
    return f"****{secret[-4:]}"

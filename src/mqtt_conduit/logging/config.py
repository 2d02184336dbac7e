"""Logging configuration and setup."""

import logging
import os
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Optional

from mqtt_conduit.logging.formatters import ThreadAwareFormatter

PACKAGE_LOGGER = "mqtt_conduit"


class LogLevel(IntEnum):
    """Log levels accepted by ``LogConfig``."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


def _level_from_env() -> LogLevel:
    name = os.getenv("MQTT_CONDUIT_LOG_LEVEL", "INFO").upper()
    try:
        return LogLevel[name]
    except KeyError:
        return LogLevel.INFO


@dataclass
class LogConfig:
    """Configuration for the logging system.

    Attributes:
        level: Minimum log level to capture
        log_file: Optional path to log file
        console_output: Whether to output to console
        package_only: Attach handlers to the ``mqtt_conduit`` logger instead of the root
    """

    level: LogLevel = field(default_factory=_level_from_env)
    log_file: Optional[Path] = None
    console_output: bool = True
    package_only: bool = False

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Create configuration from environment variables.

        Environment variables:
            MQTT_CONDUIT_LOG_LEVEL: Level name (default: INFO)
            MQTT_CONDUIT_LOG_FILE: Optional log file path
        """
        log_file = os.getenv("MQTT_CONDUIT_LOG_FILE")
        return cls(
            level=_level_from_env(),
            log_file=Path(log_file) if log_file else None,
        )


def setup_logging(config: LogConfig) -> None:
    """Setup the logging system with the given configuration.

    Args:
        config: Logging configuration
    """
    target = logging.getLogger(PACKAGE_LOGGER if config.package_only else None)
    target.setLevel(config.level)
    target.handlers.clear()

    if config.console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(ThreadAwareFormatter())
        target.addHandler(console_handler)

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(config.log_file)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(ThreadAwareFormatter())
        target.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)


# Library default: stay silent unless the application configures logging.
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())

"""Thread-aware logging infrastructure."""

from mqtt_conduit.logging.formatters import ThreadAwareFormatter
from mqtt_conduit.logging.config import (
    LogLevel,
    LogConfig,
    setup_logging,
    get_logger,
)
from mqtt_conduit.logging.context import (
    log_context,
    get_log_context,
)

__all__ = [
    # Formatters
    "ThreadAwareFormatter",
    # Configuration
    "LogLevel",
    "LogConfig",
    "setup_logging",
    "get_logger",
    # Context
    "log_context",
    "get_log_context",
]

"""
Core infrastructure layer for Rankboard.

- Configuration management (Config, ConfigManager)
- Logging (structured logging, logger factory)
- Infrastructure exceptions
- Redis subsystem (see rankboard.core.redis)

Re-exports stay limited to leaf subsystems so importing `rankboard.core`
never opens a Redis connection or pulls in domain modules.
"""

from rankboard.core.config import Config, ConfigManager
from rankboard.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    RankboardError,
    RankboardInfrastructureException,
    StoreUnavailableError,
)
from rankboard.core.logging.logger import LogContext, get_logger

__all__ = [
    "Config",
    "ConfigManager",
    "get_logger",
    "LogContext",
    "ErrorSeverity",
    "RankboardError",
    "RankboardInfrastructureException",
    "StoreUnavailableError",
    "ConfigurationError",
]

"""
Static, process-wide settings read once from the environment (.env aware).

Anything that may change while the process runs lives in ConfigManager;
this module only holds what the Redis client and the logging stack need
before they start.

Environment Variables
---------------------
- ENVIRONMENT: development | testing | staging | production
- LOG_LEVEL: DEBUG .. CRITICAL (default INFO)
- LOG_JSON: JSON console output (default: on in production only)
- LOGS_DIR: directory for the daily JSON log file
- REDIS_URL: connection URL (default redis://localhost:6379/0)
- REDIS_SOCKET_TIMEOUT: seconds, 1..60 (default 5)
- REDIS_MAX_CONNECTIONS: pool size, 1..500 (default 50)
- RANK_DECIMAL_PLACES: displayed score precision, 0..10 (default 2)
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Config:
    """
    Class-level settings, populated by `load()` at import time.

    Bad values never stop the process: they are reported in `warnings`
    and the default is used instead.
    """

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    CONFIG_DIR = PROJECT_ROOT / "config"
    LOGS_DIR = PROJECT_ROOT / "logs"

    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_MAX_CONNECTIONS: int = 50

    RANK_DECIMAL_PLACES: int = 2

    warnings: List[str] = []
    _validated: bool = False

    @classmethod
    def _int(cls, key: str, default: int, low: int, high: int) -> int:
        raw = os.getenv(key)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            cls.warnings.append(f"{key}={raw!r} is not an integer")
            return default
        if not low <= value <= high:
            cls.warnings.append(f"{key}={value} outside {low}..{high}")
            return default
        return value

    @classmethod
    def _bool(cls, key: str, default: bool) -> bool:
        raw = os.getenv(key)
        if raw is None:
            return default
        normalized = raw.strip().lower()
        if normalized in _TRUE:
            return True
        if normalized in _FALSE:
            return False
        cls.warnings.append(f"{key}={raw!r} is not a boolean")
        return default

    @classmethod
    def load(cls) -> None:
        cls.warnings = []

        env_name = os.getenv("ENVIRONMENT", Environment.DEVELOPMENT.value).lower()
        try:
            cls.ENVIRONMENT = Environment(env_name)
        except ValueError:
            cls.warnings.append(f"ENVIRONMENT={env_name!r} is unknown")
            cls.ENVIRONMENT = Environment.DEVELOPMENT

        level = os.getenv("LOG_LEVEL", "INFO").upper()
        if level not in _LOG_LEVELS:
            cls.warnings.append(f"LOG_LEVEL={level!r} is unknown")
            level = "INFO"
        cls.LOG_LEVEL = level
        cls.LOG_JSON = cls._bool("LOG_JSON", cls.is_production())
        if os.getenv("LOGS_DIR"):
            cls.LOGS_DIR = Path(os.environ["LOGS_DIR"])

        cls.REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_SOCKET_TIMEOUT = cls._int("REDIS_SOCKET_TIMEOUT", 5, 1, 60)
        cls.REDIS_MAX_CONNECTIONS = cls._int("REDIS_MAX_CONNECTIONS", 50, 1, 500)

        cls.RANK_DECIMAL_PLACES = cls._int("RANK_DECIMAL_PLACES", 2, 0, 10)

    @classmethod
    def validate(cls) -> None:
        """
        Load once and report problems.

        Raises
        ------
        ValueError
            REDIS_URL is empty in production.
        """
        if cls._validated:
            return
        cls.load()

        if cls.is_production() and not cls.REDIS_URL:
            raise ValueError("REDIS_URL is required in production")

        # Structured logging is not configured yet while this module imports
        for warning in cls.warnings:
            logging.getLogger(__name__).warning("Config fallback: %s", warning)
        cls._validated = True

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT is Environment.PRODUCTION

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT is Environment.TESTING

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Settings safe to print: the Redis URL is reduced to its scheme."""
        scheme: Optional[str] = cls.REDIS_URL.split("://", 1)[0] if "://" in cls.REDIS_URL else None
        return {
            "environment": cls.ENVIRONMENT.value,
            "log_level": cls.LOG_LEVEL,
            "redis_url_scheme": scheme or "unknown",
            "redis_socket_timeout": cls.REDIS_SOCKET_TIMEOUT,
            "redis_max_connections": cls.REDIS_MAX_CONNECTIONS,
            "rank_decimal_places": cls.RANK_DECIMAL_PLACES,
            "warnings": list(cls.warnings),
        }


Config.validate()

"""
Error hierarchy shared by the infrastructure and leaderboard layers.

Every Rankboard error carries a stable `error_code`, a `severity` for log
routing, and an `is_retryable` hint so callers can decide whether to resubmit
without inspecting exception types. Caller-facing errors live in
`rankboard.modules.shared.exceptions`; this module holds the base class and
the failures that come from below the service (config, Redis).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RankboardError(Exception):
    """
    Base class. Subclasses set `severity`, `retryable` and `code`.

    >>> StoreUnavailableError("ZSCORE", ConnectionError("refused")).to_dict()["error_code"]
    'STORE_UNAVAILABLE'
    """

    severity: ErrorSeverity = ErrorSeverity.ERROR
    retryable: bool = False
    code: str = "RANKBOARD_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    @property
    def is_retryable(self) -> bool:
        return self.retryable

    @property
    def error_code(self) -> str:
        return self.code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.retryable,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class RankboardInfrastructureException(RankboardError):
    """Failure below the leaderboard service: config, network, Redis."""


class ConfigurationError(RankboardInfrastructureException):
    """A setting is unusable; raised while wiring services, never per request."""

    severity = ErrorSeverity.CRITICAL
    code = "CONFIG_ERROR"

    def __init__(self, config_key: str, message: str) -> None:
        super().__init__(f"{config_key}: {message}", config_key=config_key)
        self.config_key = config_key


class StoreUnavailableError(RankboardInfrastructureException):
    """The rank store could not answer: connection lost, timeout, or circuit open."""

    retryable = True
    code = "STORE_UNAVAILABLE"

    def __init__(
        self,
        operation: str,
        original_error: BaseException,
        key: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"rank store unavailable during {operation}: {original_error}",
            operation=operation,
            key=key,
            error_type=type(original_error).__name__,
        )
        self.operation = operation
        self.original_error = original_error
        self.key = key


def is_transient_error(exc: BaseException) -> bool:
    """True when resubmitting the same call may succeed."""
    return isinstance(exc, RankboardError) and exc.retryable


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    if isinstance(exc, RankboardError):
        return exc.severity
    return ErrorSeverity.ERROR

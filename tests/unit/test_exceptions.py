"""
Unit tests for the error hierarchy shared by both layers.
"""

from redis.exceptions import ConnectionError as RedisConnectionError

from rankboard.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    RankboardError,
    StoreUnavailableError,
    get_error_severity,
    is_transient_error,
)
from rankboard.modules.shared.exceptions import ConcurrentUpdateError, InvalidArgumentError


class TestInfrastructureExceptions:
    """Structured metadata on store and config failures."""

    def test_store_unavailable_to_dict(self):
        exc = StoreUnavailableError("ZSCORE", RedisConnectionError("refused"), key="rank:board")

        payload = exc.to_dict()

        assert payload["error_code"] == "STORE_UNAVAILABLE"
        assert payload["is_retryable"] is True
        assert payload["details"]["key"] == "rank:board"
        assert payload["details"]["error_type"] == "ConnectionError"
        assert str(exc).startswith("[STORE_UNAVAILABLE]")

    def test_store_unavailable_is_transient(self):
        exc = StoreUnavailableError("GET", OSError("reset"))
        assert is_transient_error(exc) is True
        assert get_error_severity(exc) == ErrorSeverity.ERROR

    def test_configuration_error_is_critical(self):
        exc = ConfigurationError("leaderboard.decimal_places", "out of range")
        assert exc.severity == ErrorSeverity.CRITICAL
        assert exc.config_key == "leaderboard.decimal_places"
        assert is_transient_error(exc) is False

    def test_foreign_exceptions(self):
        assert is_transient_error(ValueError()) is False
        assert get_error_severity(ValueError()) == ErrorSeverity.ERROR


class TestDomainExceptions:
    """Caller-facing errors share the same base."""

    def test_invalid_argument(self):
        exc = InvalidArgumentError("member", "must be non-empty")
        assert isinstance(exc, RankboardError)
        assert exc.field == "member"
        assert exc.error_code == "INVALID_ARGUMENT"
        assert get_error_severity(exc) == ErrorSeverity.INFO
        assert is_transient_error(exc) is False

    def test_concurrent_update_is_retryable(self):
        exc = ConcurrentUpdateError("rank:board", "m1", 16)
        assert is_transient_error(exc) is True
        assert exc.to_dict()["details"] == {
            "leaderboard": "rank:board",
            "member": "m1",
            "attempts": 16,
        }

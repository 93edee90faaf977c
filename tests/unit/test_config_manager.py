"""
Unit tests for ConfigManager and the structured logging helpers.
"""

import json
import logging

import pytest

from rankboard.core.config import Config, ConfigManager
from rankboard.core.config.errors import ConfigInitializationError, ConfigValidationError
from rankboard.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    get_log_context,
    get_logging_health,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "a.yaml").write_text(
        "leaderboard:\n  decimal_places: 4\n  counter:\n    circular_bound: 10\n",
        encoding="utf-8",
    )
    (tmp_path / "b.yaml").write_text(
        "leaderboard:\n  counter:\n    circular_bound: 500\n",
        encoding="utf-8",
    )
    return tmp_path


class TestYamlLoading:
    """Defaults come from deep-merged YAML files."""

    def test_shipped_defaults(self):
        assert ConfigManager.get_int("leaderboard.decimal_places", -1) == 2
        assert ConfigManager.get_int("leaderboard.counter.circular_bound", -1) == 99_999
        assert ConfigManager.get_int("leaderboard.cas.max_attempts", -1) == 16

    def test_later_files_win(self, config_dir):
        ConfigManager.initialize(config_dir)
        assert ConfigManager.get("leaderboard.counter.circular_bound") == 500
        assert ConfigManager.get("leaderboard.decimal_places") == 4

    def test_missing_directory_yields_defaults(self, tmp_path):
        ConfigManager.initialize(tmp_path / "absent")
        assert ConfigManager.get("leaderboard.decimal_places", 7) == 7

    def test_malformed_yaml_raises(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("leaderboard: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigInitializationError):
            ConfigManager.initialize(tmp_path)


class TestOverrides:
    """In-memory overrides and typed readers."""

    def test_override_survives_reload(self, config_dir):
        ConfigManager.initialize(config_dir)
        ConfigManager.set("leaderboard.cas.max_attempts", 2)
        ConfigManager.reload()
        assert ConfigManager.get_int("leaderboard.cas.max_attempts", 16) == 2
        assert ConfigManager.health_snapshot()["reloads"] == 1

    def test_wrong_type_falls_back_to_default(self):
        ConfigManager.set("leaderboard.decimal_places", "two")
        assert ConfigManager.get_int("leaderboard.decimal_places", 2) == 2

    def test_bool_is_not_an_int(self):
        ConfigManager.set("leaderboard.cas.max_attempts", True)
        assert ConfigManager.get_int("leaderboard.cas.max_attempts", 16) == 16

    def test_empty_key_rejected(self):
        with pytest.raises(ConfigValidationError):
            ConfigManager.set("", 1)

    def test_section_cannot_become_scalar(self):
        with pytest.raises(ConfigValidationError):
            ConfigManager.set("leaderboard.counter", 5)


class TestLogContext:
    """Context propagation into log records."""

    def test_context_applies_and_restores(self):
        with LogContext(leaderboard="weekly", operation="join_rank", correlation_id="abc"):
            assert get_log_context()["leaderboard"] == "weekly"
            assert get_log_context()["correlation_id"] == "abc"
        assert "leaderboard" not in get_log_context()

    @pytest.mark.asyncio
    async def test_async_context(self):
        async with LogContext(member="jin_1"):
            assert get_log_context()["member"] == "jin_1"
            assert get_log_context()["correlation_id"]
        assert get_log_context() == {}

    def test_filter_keeps_explicit_extra(self):
        record = logging.LogRecord("rankboard.test", logging.INFO, __file__, 1, "msg", None, None)
        record.leaderboard = "explicit"

        with LogContext(leaderboard="ambient", member="m1"):
            ContextFilter().filter(record)

        assert record.leaderboard == "explicit"
        assert record.member == "m1"

    def test_json_formatter_serializes_context_and_extra(self):
        record = logging.LogRecord("rankboard.test", logging.INFO, __file__, 1, "Score recorded", None, None)
        with LogContext(leaderboard="weekly"):
            ContextFilter().filter(record)
        record.display_score = "100.00"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Score recorded"
        assert payload["leaderboard"] == "weekly"
        assert payload["extra"]["display_score"] == "100.00"
        assert "member" not in payload


class TestObservability:
    """Status snapshots exposed for health endpoints."""

    def test_config_manager_snapshot(self):
        ConfigManager.get("leaderboard.decimal_places")
        snapshot = ConfigManager.health_snapshot()
        assert "leaderboard" in snapshot["sections"]
        assert snapshot["initialized"] is True
        assert snapshot["override_count"] == 0

    def test_static_config_summary(self):
        summary = Config.get_config_summary()
        assert Config.is_testing() is True
        assert summary["rank_decimal_places"] == 2
        assert summary["redis_url_scheme"] == "redis"

    def test_logging_health(self):
        health = get_logging_health()
        assert health.initialized is True
        assert health.queue_max_size > 0

    def test_logging_restarts_after_shutdown(self):
        shutdown_logging()
        assert get_logging_health().initialized is False

        setup_logging(enable_file=False)

        health = get_logging_health()
        assert health.initialized is True
        assert health.records_dropped == 0

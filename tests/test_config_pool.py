"""Tests for settings validation and the bounded worker pool."""

import asyncio
from unittest.mock import patch

import pytest

from showsync.config import LOG_FORMAT, Settings, configure_logging
from showsync.errors import InfrastructureError
from showsync.sync.pool import run_bounded


# ── Settings ────────────────────────────────────────────────────────


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.google_calendar_id == "primary"
        assert s.calendar_timezone == "America/Sao_Paulo"
        assert s.conflict_window_days == 30
        assert s.conflict_max_results == 100
        assert s.health_min_sync_percentage == 80

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SYNC_MAX_WORKERS", "8")
        monkeypatch.setenv("CURRENCY_SYMBOL", "€")
        s = Settings(_env_file=None)
        assert s.sync_max_workers == 8
        assert s.currency_symbol == "€"

    def test_missing_oauth_client_warns(self):
        warnings = Settings(_env_file=None, google_client_id="", google_client_secret="").validate_startup()
        assert any("GOOGLE_CLIENT_ID" in w for w in warnings)

    def test_complete_config_has_no_warnings(self, settings):
        assert settings.validate_startup() == []

    @pytest.mark.parametrize(
        "field, value",
        [
            ("sync_max_workers", 0),
            ("conflict_window_days", 0),
            ("conflict_max_results", 0),
            ("health_min_sync_percentage", 101),
        ],
    )
    def test_invalid_values_raise(self, settings, field, value):
        bad = settings.model_copy(update={field: value})
        with pytest.raises(ValueError):
            bad.validate_startup()


class TestConfigureLogging:
    def test_level_passed_to_basic_config(self):
        with patch("showsync.config.logging.basicConfig") as basic_config:
            configure_logging("debug")
        assert basic_config.call_args.kwargs["level"] == "DEBUG"
        assert basic_config.call_args.kwargs["format"] == LOG_FORMAT


# ── run_bounded ─────────────────────────────────────────────────────


class TestRunBounded:
    async def test_results_in_input_order(self):
        async def slow_square(n):
            await asyncio.sleep(0.01 * (5 - n))
            return n * n

        assert await run_bounded([1, 2, 3, 4], slow_square, limit=4) == [1, 4, 9, 16]

    async def test_limit_respected(self):
        in_flight = 0
        peak = 0

        async def work(_):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

        await run_bounded(range(10), work, limit=3)

        assert peak == 3

    async def test_infrastructure_error_raised_after_all_finish(self):
        finished = []

        async def work(n):
            if n == 0:
                raise InfrastructureError("store down")
            await asyncio.sleep(0.01)
            finished.append(n)

        with pytest.raises(InfrastructureError):
            await run_bounded([0, 1, 2], work, limit=3)

        assert sorted(finished) == [1, 2]

    async def test_empty(self):
        async def work(n):
            return n

        assert await run_bounded([], work, limit=2) == []

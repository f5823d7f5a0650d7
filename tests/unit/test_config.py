"""Tests for configuration and clocks."""

from datetime import UTC, date, datetime

import pytest

from src.core.clock import FixedClock, SystemClock
from src.core.config import Settings, constants


def test_defaults(monkeypatch) -> None:
    """Test settings defaults when no environment is set."""
    monkeypatch.delenv("SQLITE_DB_PATH", raising=False)
    monkeypatch.delenv("TIMEZONE", raising=False)

    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "./data/hearthboard.db"
    assert settings.timezone == "UTC"
    assert settings.is_production is False


def test_reads_environment(monkeypatch) -> None:
    """Test settings are loaded from environment variables."""
    monkeypatch.setenv("TIMEZONE", "Europe/Paris")
    monkeypatch.setenv("ENVIRONMENT", "Production")

    settings = Settings(_env_file=None)

    assert settings.timezone == "Europe/Paris"
    assert settings.is_production is True


def test_task_default_minutes() -> None:
    """Test the per-kind default durations."""
    assert constants.DEFAULT_CHORE_MINUTES == 15
    assert constants.DEFAULT_ROUTINE_MINUTES == 30
    assert constants.DEFAULT_STEP_MINUTES == 5


@pytest.mark.unit
class TestClocks:
    """Tests for the injectable clocks."""

    def test_fixed_clock_naive_instant_is_utc(self):
        clock = FixedClock(datetime(2024, 1, 8, 23, 30))

        assert clock.now() == datetime(2024, 1, 8, 23, 30, tzinfo=UTC)
        assert clock.today() == date(2024, 1, 8)

    def test_fixed_clock_today_in_household_timezone(self):
        clock = FixedClock(datetime(2024, 1, 8, 23, 30, tzinfo=UTC), timezone="Asia/Tokyo")

        assert clock.today() == date(2024, 1, 9)

    def test_system_clock_now_is_utc(self):
        clock = SystemClock(timezone="UTC")

        assert clock.now().tzinfo is UTC
        assert isinstance(clock.today(), date)

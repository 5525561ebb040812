"""Tests for settings loading."""

import pytest

from subscribe.settings import (
    LogLevel,
    MembershipSettings,
    Settings,
    get_settings,
    reset_settings,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def fresh_settings():
    reset_settings()
    yield
    reset_settings()


class TestMembershipSettings:
    """Test membership settings defaults and validation."""

    def test_defaults(self):
        config = MembershipSettings()

        assert config.yearly_visible_periods == 5
        assert config.monthly_visible_periods == 14
        assert config.daily_visible_periods == 24
        assert config.daily_long_visible_periods == 18
        assert config.daily_interval_threshold == 15
        assert config.cancel_at_period_end_default is True
        assert config.currency == "USD"

    def test_currency_upper_cased(self):
        assert MembershipSettings(currency="eur").currency == "EUR"


class TestSettings:
    """Test the settings singleton and environment overrides."""

    def test_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_creates_new_instance(self):
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("MEMBERSHIPS__MONTHLY_VISIBLE_PERIODS", "12")
        monkeypatch.setenv("DATABASE__URL", "sqlite://")

        config = get_settings()

        assert config.memberships.monthly_visible_periods == 12
        assert config.database.url == "sqlite://"

    def test_observability_override(self, monkeypatch):
        monkeypatch.setenv("OBSERVABILITY__LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("OBSERVABILITY__LOG_FORMAT", "text")

        config = Settings()

        assert config.observability.log_level == LogLevel.DEBUG
        assert config.observability.log_format == "text"

    def test_env_names_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("memberships__yearly_visible_periods", "3")
        assert Settings().memberships.yearly_visible_periods == 3

"""
Unit tests for configuration module.
"""
import pytest
from pydantic import ValidationError

from core.config import get_settings, reset_settings


def test_settings_defaults():
    """Test default configuration values."""
    settings = get_settings()
    assert settings.app_name == "SpendLens Reporting Service"
    assert settings.host == "0.0.0.0"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.default_currency == "USD"
    assert settings.exchange_rates == {}
    assert settings.include_investments_in_reports is False
    assert settings.recent_transactions_limit == 100


def test_settings_validation_port(monkeypatch):
    """Test port validation."""
    monkeypatch.setenv("PORT", "99999")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_validation_log_level(monkeypatch):
    """Test log level validation."""
    monkeypatch.setenv("LOG_LEVEL", "INVALID")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_currency_and_rates_from_env(monkeypatch):
    """Currency codes are upper-cased; rates are parsed from JSON."""
    monkeypatch.setenv("DEFAULT_CURRENCY", "eur")
    monkeypatch.setenv("EXCHANGE_RATES", '{"usd": 0.9, "GBP": 1.17}')

    reset_settings()
    settings = get_settings()
    assert settings.default_currency == "EUR"
    assert settings.exchange_rates == {"USD": 0.9, "GBP": 1.17}


def test_settings_rejects_non_positive_rate(monkeypatch):
    """Test exchange rate validation."""
    monkeypatch.setenv("EXCHANGE_RATES", '{"EUR": 0}')

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_rejects_bad_currency(monkeypatch):
    monkeypatch.setenv("DEFAULT_CURRENCY", "DOLLARS")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_investments_flag(monkeypatch):
    monkeypatch.setenv("INCLUDE_INVESTMENTS_IN_REPORTS", "true")

    reset_settings()
    assert get_settings().include_investments_in_reports is True


def test_settings_singleton():
    """Test settings singleton behavior."""
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2

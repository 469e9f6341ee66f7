"""
Unit tests for custom exceptions.
"""
from core.exceptions import (
    ConfigurationError,
    CurrencyConversionError,
    DataNotFoundError,
    ReportGenerationError,
    SpendLensException,
    ValidationError,
)


def test_base_exception():
    """Test base exception class."""
    exc = SpendLensException("Test error", details={"key": "value"})
    assert str(exc) == "Test error"
    assert exc.message == "Test error"
    assert exc.details == {"key": "value"}


def test_exception_hierarchy():
    """Test exception inheritance."""
    assert issubclass(ValidationError, SpendLensException)
    assert issubclass(DataNotFoundError, SpendLensException)
    assert issubclass(CurrencyConversionError, SpendLensException)
    assert issubclass(ConfigurationError, SpendLensException)
    assert issubclass(ReportGenerationError, SpendLensException)


def test_exception_with_details():
    """Test exception with details dictionary."""
    details = {"store": "sqlite", "error": "database is locked"}
    exc = DataNotFoundError("Failed to load transactions", details=details)
    assert exc.message == "Failed to load transactions"
    assert exc.details["store"] == "sqlite"
    assert exc.details["error"] == "database is locked"


def test_exception_without_details():
    """Test exception without details."""
    exc = CurrencyConversionError("Rate lookup failed")
    assert exc.message == "Rate lookup failed"
    assert exc.details == {}

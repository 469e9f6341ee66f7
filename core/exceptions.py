"""
Custom exceptions for the reporting core.
"""
from typing import Any, Dict, Optional


class SpendLensException(Exception):
    """Base exception for all reporting and detection errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SpendLensException):
    """Raised when report parameters are invalid."""
    pass


class DataNotFoundError(SpendLensException):
    """Raised when the transaction store cannot provide data."""
    pass


class CurrencyConversionError(SpendLensException):
    """Raised when amounts cannot be converted to the reporting currency."""
    pass


class ConfigurationError(SpendLensException):
    """Raised when configuration is invalid."""
    pass


class ReportGenerationError(SpendLensException):
    """Raised when a report or detection run cannot be produced."""
    pass

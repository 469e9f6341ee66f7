"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="SpendLens Reporting Service", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage
    database_path: str = Field(default="spendlens.db", alias="DATABASE_PATH")

    # Currency
    default_currency: str = Field(default="USD", alias="DEFAULT_CURRENCY")
    exchange_rates: Dict[str, float] = Field(default_factory=dict, alias="EXCHANGE_RATES")

    # Reporting
    include_investments_in_reports: bool = Field(default=False, alias="INCLUDE_INVESTMENTS_IN_REPORTS")
    recent_transactions_limit: int = Field(default=100, alias="RECENT_TRANSACTIONS_LIMIT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v):
        """Currency must be a 3-letter ISO code."""
        v_upper = v.strip().upper()
        if len(v_upper) != 3 or not v_upper.isalpha():
            raise ValueError("Default currency must be a 3-letter ISO code")
        return v_upper

    @field_validator("exchange_rates")
    @classmethod
    def validate_exchange_rates(cls, v):
        """Upper-case currency codes and reject non-positive rates."""
        rates = {}
        for code, rate in v.items():
            if rate <= 0:
                raise ValueError(f"Exchange rate for {code} must be positive")
            rates[code.strip().upper()] = rate
        return rates

    @field_validator("recent_transactions_limit")
    @classmethod
    def validate_recent_limit(cls, v):
        if v < 1:
            raise ValueError("Recent transactions limit must be at least 1")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def ensure_directories(self) -> None:
        """Ensure the database directory exists."""
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.ensure_directories()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None

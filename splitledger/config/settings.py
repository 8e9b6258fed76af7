"""
Configuration Management for Split Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger core reads only a handful of knobs (currency defaults,
settlement tolerance, sanity thresholds); everything else belongs to
the surrounding application.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger arithmetic configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_",
        extra="ignore"
    )

    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 code used when a record does not name one"
    )
    settle_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Balances within this distance of zero count as settled"
    )
    split_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Allowed drift when exact amounts or percentages are checked against their target"
    )
    max_expense_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for review (never rejected)"
    )
    # Extra or corrected minor units, e.g. {"CLF": 4}
    minor_unit_overrides: dict[str, int] = Field(
        default_factory=dict,
        description="Currency code -> number of decimal places"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.strip().upper()

    @field_validator('minor_unit_overrides')
    @classmethod
    def validate_overrides(cls, v: dict[str, int]) -> dict[str, int]:
        """Decimal places must be between 0 and 4."""
        normalized = {}
        for code, places in v.items():
            if not 0 <= places <= 4:
                raise ValueError(f"Invalid minor unit for {code}: {places}")
            normalized[code.strip().upper()] = places
        return normalized


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Audit trail
    audit_log_path: Optional[str] = Field(
        default=None,
        description="Path of the JSON Lines audit file (None = log locally only)"
    )

    @field_validator('audit_log_path')
    @classmethod
    def validate_audit_log_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if the audit directory doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).parent.exists():
            import warnings
            warnings.warn(
                f"Audit log directory not found for {v}. "
                "Make sure it exists before recording expenses."
            )
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

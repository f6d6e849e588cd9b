"""
Budget Coach configuration.

One pydantic-settings class per external concern (Google Sheets, Gemini,
the app itself), each reading its own env prefix and the local .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Spreadsheet and worksheet names for the ledger."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per entity
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet for monthly budgets"
    )
    debts_sheet_name: str = Field(
        default="Debts",
        description="Name of the sheet for debts"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing file only warns; containers often mount it after import."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Service account file {v} does not exist yet; "
                "Sheets calls will fail until it does."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the coach."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Optional so a missing key surfaces as a coach error, not a startup crash
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class AppSettings(BaseSettings):
    """Ledger owner, currency and financial context sizes."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sign-in is handled outside this app; every query is scoped to this id
    user_id: str = Field(
        default="local-user",
        min_length=1,
        description="ID of the user whose ledger is shown"
    )

    currency_symbol: str = Field(
        default="₱",
        min_length=1,
        max_length=4,
        description="Symbol prefixed to amounts in the coach context"
    )

    # Financial context window
    trend_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="How many months of income/spending trends to summarize"
    )
    context_transaction_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum transactions of the current month to fetch"
    )
    recent_transaction_count: int = Field(
        default=5,
        ge=0,
        le=50,
        description="How many recent transactions to list in the context"
    )


class Settings(BaseSettings):
    """
    Entry point to every settings group.

    Each group is built on access, so the coach can run without Sheets
    credentials and the ledger without a Gemini key.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings. Tests call get_settings.cache_clear() between cases."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Check each settings group for the Settings page.

    Maps group name to whether it loaded; a failed group also gets a
    "<name>_error" entry with the reason.
    """
    settings = get_settings()
    results = {}

    for name in ("google_sheets", "gemini", "app"):
        try:
            group = getattr(settings, name)
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue
        results[name] = True

        if name == "gemini" and not group.api_key:
            results[name] = False
            results[f"{name}_error"] = "GEMINI_API_KEY is not set"

    return results

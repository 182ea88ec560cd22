"""Application configuration and environment helpers."""

from __future__ import annotations

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .batching import DEFAULT_FLAG_COLOR, DEFAULT_UPDATE_PAYEE, MAX_MEMO_LENGTH
from .reconcile import MILLIUNIT_SCALE

DEFAULT_ACCOUNT_MARKER = "INVESTMENT_TO_TRACK"
YNAB_BASE_URL = "https://api.ynab.com/v1"


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or invalid."""


class TrackerSettings(BaseSettings):
    """Configuration options for the investment tracker."""

    ynab_api_token: str = Field(..., description="YNAB personal access token")
    ynab_budget_id: str = Field(..., description="Budget holding the tracked accounts")
    ynab_base_url: str = Field(default=YNAB_BASE_URL)
    ynab_timeout_seconds: float = Field(default=30.0)

    alphavantage_api_key: str = Field(..., description="Alpha Vantage API key")
    alphavantage_requests_per_minute: int = Field(default=5, ge=1)
    alphavantage_timeout_seconds: float = Field(default=30.0)

    tracked_account_marker: str = Field(
        default=DEFAULT_ACCOUNT_MARKER,
        description="Text an account note must contain for the account to be reconciled.",
    )
    update_payee_name: str = Field(default=DEFAULT_UPDATE_PAYEE)
    flag_color: str | None = Field(default=DEFAULT_FLAG_COLOR)
    max_memo_length: int = Field(default=MAX_MEMO_LENGTH, gt=0)
    milliunit_scale: int = Field(default=MILLIUNIT_SCALE, gt=0)
    timezone: str | None = Field(
        default=None,
        description="IANA zone used to date adjustment entries; process local time when unset.",
    )

    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="investment-tracker")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            raise ValueError(f"Unknown time zone {value!r}") from exc
        return value

    def utc_offset(self, at: datetime | None = None) -> timedelta | None:
        """Return the configured zone's UTC offset, or ``None`` for local time."""

        if not self.timezone:
            return None
        moment = at or datetime.now(ZoneInfo(self.timezone))
        return moment.astimezone(ZoneInfo(self.timezone)).utcoffset()

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"ynab_api_token", "alphavantage_api_key"}
        return {k: ("***" if k in hidden else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> TrackerSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return TrackerSettings(**overrides)
    return TrackerSettings()


def load_settings(**overrides: Any) -> TrackerSettings:
    """Return settings, turning validation failures into ``ConfigurationError``."""

    try:
        return get_settings(**overrides)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ConfigurationError(f"Invalid or missing settings: {fields}") from exc


__all__ = [
    "ConfigurationError",
    "DEFAULT_ACCOUNT_MARKER",
    "TrackerSettings",
    "YNAB_BASE_URL",
    "get_settings",
    "load_settings",
]

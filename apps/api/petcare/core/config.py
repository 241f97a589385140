"""Application configuration for the scheduling service."""
from __future__ import annotations

from datetime import tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    backend_base_url: str = Field(default="http://localhost:5000/api")
    backend_api_token: str = Field(default="")
    backend_timeout_seconds: float = Field(default=10.0, gt=0)

    clinic_timezone: str = Field(default="UTC")
    date_label_format: str = Field(default="%A, %B %d, %Y")
    time_label_format: str = Field(default="%I:%M %p")

    lifecycle_max_tracked: int = Field(default=1024, gt=0)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("clinic_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def clinic_tz(self) -> tzinfo:
        return ZoneInfo(self.clinic_timezone)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()

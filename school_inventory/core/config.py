"""Environment-driven configuration for the inventory service.

Every tunable the service reads lives on ``AppSettings``. Values come from the
process environment first and then from ``.env``/``.env.local`` files, so a
developer can boot the API with zero setup while production overrides
everything through the container environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "School Inventory"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TZ: str = "America/Lima"
    LOG_LEVEL: str = "INFO"

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    # Empty means "derive a SQLite file under DATA_DIR" (see ``database_url``).
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # Alerting excludes depleted rows, the report screen includes them.
    LOW_STOCK_THRESHOLD: int = Field(default=5, ge=1)
    REPORT_LOW_STOCK_THRESHOLD: int = Field(default=50, ge=1)
    LOW_STOCK_DEBOUNCE_MINUTES: int = Field(default=30, ge=0)
    LOW_STOCK_CHECK_MINUTES: int = Field(default=5, ge=1)
    SCHEDULER_ENABLED: bool = True

    ASSISTANT_WEBHOOK_URL: str = ""
    ASSISTANT_TIMEOUT_SECONDS: float = 20.0

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'inventory.db'}"

    @property
    def assistant_enabled(self) -> bool:
        return bool(self.ASSISTANT_WEBHOOK_URL.strip())

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


# Importing ``settings`` anywhere gives the cached instance.
settings = get_settings()

"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchApiSettings(BaseModel):
    base_url: AnyHttpUrl = Field(
        default="https://en.wikipedia.org/w/api.php",
        description="Endpoint answering OpenSearch title queries.",
    )
    result_limit: int = Field(default=10, ge=1, le=500)
    namespace: int = Field(default=0, ge=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    max_attempts: int = Field(default=2, ge=1, le=5)
    retry_delay_seconds: float = Field(default=0.2, ge=0)
    user_agent: str = "typeahead-search/0.1"


class CacheSettings(BaseModel):
    dsn: str = Field(
        default="sqlite+aiosqlite:///typeahead_cache.db",
        description="SQLAlchemy async DSN of the durable result store.",
    )
    ttl_minutes: int = Field(default=30, ge=1)
    sweep_interval_seconds: int = Field(default=300, ge=1)
    echo: bool = False


class DebounceSettings(BaseModel):
    quiet_period_ms: int = Field(default=300, ge=0, le=10_000)

    @property
    def quiet_period_seconds(self) -> float:
        return self.quiet_period_ms / 1000


class TypeaheadSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TYPEAHEAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    search_api: SearchApiSettings = Field(default_factory=SearchApiSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    debounce: DebounceSettings = Field(default_factory=DebounceSettings)


@lru_cache
def get_settings() -> TypeaheadSettings:
    """Return cached settings instance."""

    return TypeaheadSettings()


__all__ = [
    "CacheSettings",
    "DebounceSettings",
    "SearchApiSettings",
    "TypeaheadSettings",
    "get_settings",
]

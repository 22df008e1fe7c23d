"""Configuration management for the sharded URL shortener.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shardurl.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    shard_urls = settings.shard_urls

**Step 3 — Override shards from the environment**::
    REDIS_SHARD_URLS="redis://r1:6379/0,redis://r2:6379/0" uvicorn shardurl.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- The shard list is ordered; its order decides which shard owns which key,
  so it must not change while entries are still alive.
- An empty shard list is rejected at load time.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shardurl"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:3000"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Ordered, comma-separated shard addresses (redis://, rediss://, unix:// or memory://)
    REDIS_SHARD_URLS: str = "redis://localhost:6379/0,redis://localhost:6380/0,redis://localhost:6381/0"

    # Mapping entries
    SHORT_CODE_LENGTH: int = 8
    DEFAULT_TTL_SECONDS: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("REDIS_SHARD_URLS")
    @classmethod
    def validate_shard_urls(cls, v: str) -> str:
        if not [url for url in v.split(",") if url.strip()]:
            raise ValueError("At least one shard URL must be configured")
        return v

    @field_validator("SHORT_CODE_LENGTH", "DEFAULT_TTL_SECONDS")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be a positive integer")
        return v

    @property
    def shard_urls(self) -> list[str]:
        return [url.strip() for url in self.REDIS_SHARD_URLS.split(",") if url.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()

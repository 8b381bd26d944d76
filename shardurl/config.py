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
    for host, port in settings.shard_addresses:
        ...

**Step 3 — Override via environment**::
    REDIS_SHARDS="redis-a:6379,redis-b:6379,redis-c:6379" uvicorn shardurl.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- REDIS_SHARDS is an ordered list; the order defines shard indexes, so
  reordering or resizing it remaps keys.
- An empty shard list is a configuration error, never a runtime fallback.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shardurl"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # Redis shards, "host:port" entries separated by commas
    REDIS_SHARDS: str = "localhost:6379,localhost:6380,localhost:6381"
    REDIS_PASSWORD: str | None = None
    REDIS_SOCKET_TIMEOUT: float = 5.0
    REDIS_SOCKET_CONNECT_TIMEOUT: float = 5.0

    # Record lifecycle
    DEFAULT_TTL_SECONDS: int = 3600
    MAX_TTL_SECONDS: int = 60 * 60 * 24 * 365
    ANALYTICS_KEY_PREFIX: str = "analytics"

    # Short ids
    SHORT_ID_LENGTH: int = 8
    ALIAS_MAX_LENGTH: int = 50

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("REDIS_SHARDS")
    @classmethod
    def validate_redis_shards(cls, v: str) -> str:
        entries = [entry.strip() for entry in v.split(",") if entry.strip()]
        if not entries:
            raise ValueError("REDIS_SHARDS must name at least one shard")
        for entry in entries:
            host, sep, port = entry.rpartition(":")
            if not sep or not host or not port.isdigit():
                raise ValueError(f"Invalid shard address {entry!r}, expected host:port")
        return v

    @field_validator("DEFAULT_TTL_SECONDS", "MAX_TTL_SECONDS", "SHORT_ID_LENGTH", "ALIAS_MAX_LENGTH")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def shard_addresses(self) -> list[tuple[str, int]]:
        addresses = []
        for entry in self.REDIS_SHARDS.split(","):
            entry = entry.strip()
            if not entry:
                continue
            host, _, port = entry.rpartition(":")
            addresses.append((host, int(port)))
        return addresses


@lru_cache()
def get_settings() -> Settings:
    return Settings()

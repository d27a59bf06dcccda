"""Configuration management for the link tracking application.

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
    from linktracker.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Override through the environment**::
    DATABASE_URL=postgresql+asyncpg://user:pass@db/tracking uvicorn linktracker.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- BASE_URL is optional; tracking URLs fall back to the request origin.
- The geolocation URLs are templates with an ``{ip}`` placeholder.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "link-tracker"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    BASE_URL: str | None = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./tracking.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Identifiers
    SHORT_CODE_LENGTH: int = 8
    LINK_ID_LENGTH: int = 21

    # IP geolocation
    GEO_PRIMARY_URL: str = "https://ipapi.co/{ip}/json/"
    GEO_SECONDARY_URL: str = "http://ip-api.com/json/{ip}?fields=status,country,regionName,city,lat,lon"
    GEO_USER_AGENT: str = "TrackingApp/1.0"
    GEO_TIMEOUT_SECONDS: float = 5.0

    # Analytics windows and limits
    ANALYTICS_DAILY_WINDOW_DAYS: int = 30
    ANALYTICS_TOP_LINKS_WINDOW_DAYS: int = 7
    ANALYTICS_TOP_CITIES: int = 10
    ANALYTICS_RECENT_CLICKS: int = 10
    ANALYTICS_TOP_LINKS: int = 5

    CORS_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

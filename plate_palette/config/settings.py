# plate_palette/config/settings.py
"""
Application configuration using pydantic-settings (pydantic v2 style).

This centralizes environment-driven configuration. Prefer reading values
from environment variables; do not rely on os.getenv inline defaults which
can silently hide missing configuration.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY
      - DATABASE_URL
      - USDA_API_KEY / USDA_BASE_URL / USDA_PAGE_SIZE
      - CATALOG_TIMEOUT_SECONDS
      - DEFAULT_TIMEZONE
      - DEFAULT_WEEKLY_GOAL
      - HEALTH_CHECK_TIMEOUT
      - FAIL_ON_DB_STARTUP
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    # only used to create the schema (see plate_palette.models.database)
    database_url: Optional[str] = None

    # USDA FoodData Central
    usda_api_key: Optional[str] = None
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_page_size: int = Field(default=10, ge=1, le=200)
    catalog_timeout_seconds: float = Field(default=10.0, gt=0)

    # Calendar / goals
    default_timezone: str = "America/Los_Angeles"
    default_weekly_goal: int = Field(default=20, ge=5, le=100)

    # Startup / health
    health_check_timeout: float = Field(default=5.0, gt=0)
    fail_on_db_startup: bool = False

    # --- validators / post-init checks ---
    @field_validator("supabase_url", "supabase_service_role_key", "usda_api_key")
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("default_timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        v = v.strip()
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {v!r}") from exc
        return v

    def model_post_init(self, __context) -> None:  # pydantic v2 hooks
        """
        Light-weight notice that runs after model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if not self.supabase_url or not self.supabase_service_role_key:
            logger.warning(
                "Supabase credentials are not configured. "
                "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable DB features."
            )
        if not self.usda_api_key:
            logger.info("USDA_API_KEY not set. Food catalog search will be disabled.")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

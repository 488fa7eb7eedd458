from __future__ import annotations

import os
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("sqlite+aiosqlite:///./daylog.db", alias="DATABASE_URL")
    backend_session_secret: str = Field(..., alias="BACKEND_SESSION_SECRET")

    timezone_name: str = Field("UTC", alias="DAYLOG_TIMEZONE")
    log_level: str = Field("INFO", alias="DAYLOG_LOG_LEVEL")

    allowed_owners_raw: str = Field("", alias="ALLOWED_OWNERS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_owners(self) -> List[str]:
        return [owner.strip() for owner in self.allowed_owners_raw.split(",") if owner.strip()]

    def today(self) -> date:
        try:
            return datetime.now(ZoneInfo(self.timezone_name)).date()
        except (KeyError, ValueError):
            return date.today()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("DAYLOG_DEBUG_SETTINGS"):
    print(get_settings())

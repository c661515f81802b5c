import os
from datetime import date, datetime, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Values the frontend template ships with; treat them as "not configured"
_PLACEHOLDER_MARKERS = ("placeholder",)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


class Settings(BaseModel):
    app_env: str = "local"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    openai_api_key: str = ""
    chat_model: str = "gpt-4o-mini"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1000
    chat_max_steps: int = Field(5, ge=1)
    timezone: str = "UTC"
    local_store_path: str = ""
    google_calendar_id: str = "primary"
    http_retries: int = Field(2, ge=0)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_env=os.getenv("APP_ENV", "local"),
            supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            chat_model=os.getenv("LIFEOS_CHAT_MODEL", "gpt-4o-mini"),
            chat_temperature=_env_float("LIFEOS_CHAT_TEMPERATURE", 0.7),
            chat_max_tokens=_env_int("LIFEOS_CHAT_MAX_TOKENS", 1000),
            chat_max_steps=_env_int("LIFEOS_CHAT_MAX_STEPS", 5),
            timezone=os.getenv("LIFEOS_TIMEZONE", "UTC"),
            local_store_path=os.getenv("LIFEOS_LOCAL_STORE_PATH", ""),
            google_calendar_id=os.getenv("GOOGLE_CALENDAR_ID", "primary"),
            http_retries=_env_int("LIFEOS_HTTP_RETRIES", 2),
        )

    @property
    def supabase_configured(self) -> bool:
        if not self.supabase_url or not self.supabase_anon_key:
            return False
        values = (self.supabase_url.lower(), self.supabase_anon_key.lower())
        return not any(marker in v for marker in _PLACEHOLDER_MARKERS for v in values)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment (.env honoured)."""
    return Settings.from_env()


def local_today(tz: Optional[tzinfo] = None) -> date:
    """Today in ``tz``, or in the configured LIFEOS_TIMEZONE when omitted."""
    return datetime.now(tz or get_settings().tz).date()

"""Application configuration."""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    payment_api_key: str
    currency: str = "usd"
    marketplace_timezone: str = "UTC"
    customer_can_cancel_confirmed: bool = False
    checkout_token_ttl_seconds: int = 900
    realtime_relay_url: str | None = None
    realtime_relay_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_timezone(raw: str | None) -> ZoneInfo:
    """Resolve the marketplace timezone, falling back to UTC."""
    cleaned = (raw or "").strip()
    if not cleaned:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")

"""Configuration and environment loading for the Intake Portal server."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str
    supabase_key: str

    # Session credential fallback when no Authorization header is sent
    session_cookie_name: str = "sb-access-token"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    site_url: str = "http://localhost:3000"

    # Form notifications (Resend)
    resend_api_key: str | None = None
    notification_from: str = "Intake Portal <noreply@intake-portal.local>"
    notification_recipients: list[str] = []
    notification_timezone: str = "America/New_York"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

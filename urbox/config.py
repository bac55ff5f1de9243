"""Client configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_base_url: str = "https://api.urbox.ai"
    http_timeout_seconds: float = 30.0

    # Tenant scoping (sent as x-company-id on storage calls)
    company_id: str | None = None

    # Real-time channel (Socket.IO)
    realtime_url: str | None = None  # defaults to api_base_url
    realtime_transports: list[str] = ["websocket"]
    realtime_reconnection: bool = True

    # Chat
    chat_history_limit: int = 50

    # Storage
    storage_max_keys: int = 1000

    # WhatsApp
    whatsapp_cache_ttl_seconds: float = 30.0  # status + first message page

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def realtime_endpoint(self) -> str:
        return self.realtime_url or self.api_base_url

    def endpoint(self, path: str) -> str:
        """Absolute URL for an API path like ``/api/chat/groups``."""
        return f"{self.api_base_url.rstrip('/')}/{path.lstrip('/')}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Configuration and settings for the marketplace API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000"
    )

    # Managed auth service (Supabase GoTrue)
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)
    auth_timeout_seconds: float = Field(default=10.0)

    # Postgres behind the managed service
    database_url: Optional[str] = Field(default=None)

    # S3-compatible object storage for guide uploads
    storage_bucket: Optional[str] = Field(default=None)
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Rate limiting; Redis makes the counters shared across processes.
    redis_url: Optional[str] = Field(default=None)
    rate_limit_window_seconds: int = Field(default=60)
    rate_limit_key_prefix: str = Field(default="marketplace:ratelimit")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="MARKETPLACE_USE_IN_MEMORY_BACKENDS"
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    def missing_backend_settings(self) -> List[str]:
        """Names of required backend settings that are unset."""
        required = {
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_ANON_KEY": self.supabase_anon_key,
            "SUPABASE_SERVICE_ROLE_KEY": self.supabase_service_role_key,
            "DATABASE_URL": self.database_url,
        }
        return [name for name, value in required.items() if not value]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

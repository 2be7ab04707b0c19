"""
Configuration and settings for the CityHub backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")
    cors_allow_origins: str = Field(default="*")

    # Managed platform (REST auth + keys)
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    supabase_service_key: Optional[str] = Field(default=None)
    auth_timeout_seconds: float = Field(default=10.0)

    # Direct Postgres connection used by the SQL data store
    database_url: Optional[str] = Field(default=None)
    # Role unauthenticated requests run as; empty keeps the connection's own role
    db_public_role: Optional[str] = Field(default="anon")

    # Session tokens issued by /auth/login-or-register
    jwt_secret: Optional[str] = Field(default=None)
    session_ttl_days: int = Field(default=7)

    # S3-compatible storage endpoint of the platform
    storage_s3_endpoint: Optional[str] = Field(default=None)
    storage_s3_region: str = Field(default="us-east-1")
    storage_access_key_id: Optional[str] = Field(default=None)
    storage_secret_access_key: Optional[str] = Field(default=None)
    offers_bucket: str = Field(default="HomeHeroOffers")
    spotlight_bucket: str = Field(default="spotlight")

    bulk_signup_concurrency: int = Field(default=1, ge=1)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @property
    def s3_endpoint(self) -> str:
        if self.storage_s3_endpoint:
            return self.storage_s3_endpoint
        return f"{(self.supabase_url or '').rstrip('/')}/storage/v1/s3"

    def public_object_url(self, bucket: str, path: str) -> str:
        base = (self.supabase_url or "https://example.test").rstrip("/")
        return f"{base}/storage/v1/object/public/{bucket}/{path}"

    def check_required(self) -> None:
        """Fail fast when the platform endpoint or its keys are missing."""
        missing = [
            name
            for name, value in (
                ("JWT_SECRET", self.jwt_secret),
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
                ("SUPABASE_SERVICE_KEY", self.supabase_service_key),
                ("DATABASE_URL", self.database_url),
            )
            if not value
        ]
        if self.use_in_memory_backends:
            missing = [name for name in missing if name == "JWT_SECRET"]
        if missing:
            raise RuntimeError(
                "Missing required configuration: " + ", ".join(missing)
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

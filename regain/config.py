"""
Configuration and settings for the ReGain API.
"""

from __future__ import annotations

import secrets
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings (``REGAIN_*`` variables or ``.env``)."""

    model_config = SettingsConfigDict(
        env_prefix="REGAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = Field(default="")

    # Database (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None)
    use_in_memory_backends: bool = Field(default=False)

    # Sessions
    jwt_secret: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_hours: int = Field(default=24, ge=1)
    cookie_name: str = Field(default="token")
    cookie_secure: bool = Field(default=False)
    cookie_samesite: Literal["lax", "strict", "none"] = Field(default="lax")
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Proximity search
    default_search_radius_km: float = Field(default=15.0, gt=0)
    max_search_radius_km: float = Field(default=100.0, gt=0)
    nearby_limit: int = Field(default=20, ge=1)

    cors_origins: list[str] = Field(default=["http://localhost:5173"])

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

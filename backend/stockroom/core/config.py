"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database - relative path for local runs, override via DATABASE_URL
    database_url: str = "sqlite:///./data/stockroom.db"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100  # requests per window
    rate_limit_window: int = 60  # window in seconds

    # ==========================================================================
    # Inventory alerts (periodic re-scan)
    # ==========================================================================
    alert_scan_enabled: bool = True
    alert_scan_interval_seconds: int = 60

    # ==========================================================================
    # Business defaults
    # ==========================================================================
    company_name: str = "Stockroom Inventory"
    currency: str = "R"
    tax_rate: Decimal = Decimal("15")
    default_created_by: str = "system"

    # Data export
    export_version: str = "2.0.0"

    @field_validator("alert_scan_interval_seconds")
    @classmethod
    def validate_scan_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("ALERT_SCAN_INTERVAL_SECONDS must be at least 1 second")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

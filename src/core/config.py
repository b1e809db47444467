"""
Configuration module for the stock dashboard core.
Loads environment variables and provides settings for the application.
"""

from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Market data provider (both optional; absence means fallback-only mode)
    alpha_vantage_api_key: Optional[str] = Field(
        default=None, alias="ALPHA_VANTAGE_API_KEY"
    )
    alpha_vantage_base_url: str = Field(
        default="https://www.alphavantage.co/query", alias="ALPHA_VANTAGE_BASE_URL"
    )

    # HTTP transport
    request_timeout_seconds: float = Field(default=10.0, alias="REQUEST_TIMEOUT_SECONDS")
    retry_max_attempts: int = Field(default=3, ge=1, alias="RETRY_MAX_ATTEMPTS")
    retry_base_delay_ms: int = Field(default=1000, ge=0, alias="RETRY_BASE_DELAY_MS")

    # Response cache
    cache_ttl_seconds: float = Field(default=60.0, gt=0, alias="CACHE_TTL_SECONDS")

    # Client state
    recent_searches_limit: int = Field(default=10, ge=1, alias="RECENT_SEARCHES_LIMIT")
    storage_name: str = Field(default="stock-app-storage", alias="STORAGE_NAME")

    # Data storage paths
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Optional[str] = Field(default=None, alias="LOG_FORMAT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def provider_configured(self) -> bool:
        """Whether a provider API key is available."""
        return bool(self.alpha_vantage_api_key)

    @property
    def storage_path(self) -> Path:
        """Location of the persisted client state blob."""
        return self.data_dir / f"{self.storage_name}.json"


# Global settings instance
settings = Settings()

# ===================================
# config.py - Configuration Management
# ===================================

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Alpha Vantage API
    alpha_vantage_api_key: str = "demo"
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"

    # Rate Limiting
    rate_limit_requests: int = 5
    rate_limit_window: int = 60  # seconds
    request_timeout: int = 30
    resource_timeout: int = 60

    # Caching
    cache_backend: str = "file"  # "file" or "redis"
    cache_dir: Path = Path("data/stock_cache")
    cache_ttl: int = 86400  # 24 hours
    redis_url: str = "redis://localhost:6379"

    # Local storage
    data_dir: Path = Path("data")
    max_recent_stocks: int = 10

    # Caller policies
    watchlist_request_delay: float = 0.2
    retry_countdown_seconds: int = 60
    search_debounce_seconds: float = 0.8

    # Application
    app_name: str = "Stock Screener API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @model_validator(mode="after")
    def _pick_first_listed_key(self):
        # ALPHA_VANTAGE_API_KEYS=key1,key2 is still accepted from older .env files
        keys_string: Optional[str] = os.getenv("ALPHA_VANTAGE_API_KEYS")
        if keys_string and self.alpha_vantage_api_key == "demo":
            keys = [key.strip() for key in keys_string.split(",") if key.strip()]
            if keys:
                self.alpha_vantage_api_key = keys[0]
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance"""
    return Settings()

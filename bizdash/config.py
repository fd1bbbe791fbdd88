"""
Dashboard Configuration

Manages configuration settings for the business dashboard client including
the backend base URL, local storage location and display settings.
"""

import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Ensure .env is read from the working directory (if present)
load_dotenv()

DEFAULT_API_BASE_URL = "http://localhost:3001/api"
SERVICE_BILLING_PATH = "/service-billing"


class DashboardSettings(BaseSettings):
    """Configuration settings for the dashboard backend"""

    model_config = SettingsConfigDict(
        env_prefix="BIZDASH_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    API_BASE_URL: str = DEFAULT_API_BASE_URL
    APP_ENV: str = "development"
    STORAGE_PATH: str = os.path.join("~", ".bizdash", "storage.json")
    REQUEST_TIMEOUT: float = 30.0
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    VAT_RATE: float = 0.16
    CURRENCY: str = "KES"
    RECEIPT_DIR: Optional[str] = None

    @property
    def base_url(self) -> str:
        """Base URL without a trailing slash"""
        return self.API_BASE_URL.rstrip("/")

    @property
    def service_billing_url(self) -> str:
        """Base URL of the service-billing endpoint family"""
        return f"{self.base_url}{SERVICE_BILLING_PATH}"

    @property
    def storage_file(self) -> Path:
        return Path(self.STORAGE_PATH).expanduser()

    def headers(self, token: Optional[str] = None) -> Dict[str, str]:
        """Get standard headers for backend requests"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def validate(self) -> bool:
        """Validate that required configuration is present"""
        if not self.API_BASE_URL or not self.API_BASE_URL.strip():
            raise ValueError("API base URL is required")
        if self.REQUEST_TIMEOUT <= 0:
            raise ValueError("Request timeout must be positive")
        return True


def get_settings(**overrides) -> DashboardSettings:
    """Create settings from environment variables, with explicit overrides"""
    settings = DashboardSettings(**overrides)
    settings.validate()
    return settings

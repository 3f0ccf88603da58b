# tutor_portal/core/config.py
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Tutor Portal"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Backend base URL: the server-only variable wins over the public one
    API_BASE_URL: str = os.getenv("API_BASE_URL", "")
    PUBLIC_API_BASE_URL: str = os.getenv("PUBLIC_API_BASE_URL", "")

    PAYPAL_CLIENT_ID: str = os.getenv("PAYPAL_CLIENT_ID", "")

    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    AUTH_COOKIE_NAME: str = "auth_token"
    AUTH_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days

    LOGIN_TIMEOUT_SECONDS: float = 10.0
    LOGIN_MAX_RETRIES: int = 2
    LOGIN_RETRY_DELAY_SECONDS: float = 1.0

    BACKEND_TIMEOUT_SECONDS: float = 15.0
    UPLOAD_TIMEOUT_SECONDS: float = 20.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def backend_base_url(self) -> Optional[str]:
        base = self.API_BASE_URL or self.PUBLIC_API_BASE_URL
        if not base:
            return None
        return base.rstrip("/")

    @property
    def secure_cookies(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

settings = Settings()

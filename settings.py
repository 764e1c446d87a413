from functools import lru_cache
from typing import List, Optional

from pydantic import EmailStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: Optional[str] = None
    DATABASE_NAME: str = "mc_store"

    # Shared secret for the admin panel; admin routes answer 500 until it is set
    ADMIN_SECRET_KEY: Optional[str] = None

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT: float = 10.0
    NOTIFY_EMAIL: Optional[EmailStr] = None

    STORE_NAME: str = "Arelix Developments"
    CURRENCY_SYMBOL: str = "₹"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: Optional[str] = None
    CORS_ORIGINS: List[str] = ["*"]
    PORT: int = 8000

    @property
    def email_configured(self) -> bool:
        return bool(self.SMTP_USER and self.SMTP_PASSWORD and self.NOTIFY_EMAIL)


@lru_cache
def get_settings() -> Settings:
    return Settings()

# app/config.py
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./chat.db"
    CREATE_TABLES_ON_STARTUP: bool = False

    # API configuration
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]
    DEBUG_ENDPOINTS_ENABLED: bool = False

    # Email notifications (SendGrid); an empty key disables sending
    SENDGRID_API_KEY: str = ""
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    EMAIL_FROM: str = "noreply@goodslister.com"
    EMAIL_FROM_NAME: str = "GoodsLister"
    APP_URL: str = "https://goodslister-marketplace-2025.vercel.app"
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    # Display fallbacks
    DEFAULT_AVATAR_URL: str = "https://i.pravatar.cc/150?u={user_id}"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings():
    return Settings()

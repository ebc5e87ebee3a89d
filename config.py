"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are optional to prevent application startup failure.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Core authentication and security
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")

    # Stripe payment configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    payment_currency: str = Field(default="usd", alias="PAYMENT_CURRENCY")

    # Infrastructure configuration
    database_url: Optional[str] = Field(
        default="sqlite+aiosqlite:///./house_renting.db", alias="DATABASE_URL"
    )
    upload_dir: str = Field(default="./uploads", alias="UPLOAD_DIR")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

UPLOAD_DIR = Path(settings.upload_dir)

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")

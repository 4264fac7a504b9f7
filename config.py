import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read .env by default (repo root). Exported env vars win.
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    CLINIC_NAME: str = "Optica Maxima G.E"
    CURRENCY_PREFIX: str = "$"

    # file | memory | mongo
    STORAGE_BACKEND: str = "file"
    DATA_DIR: str = "data"
    MONGO_URL: Optional[str] = None
    DATABASE_NAME: str = "optica"

    WHATSAPP_BASE_URL: str = "https://wa.me/"
    NOTIFICATION_DELAY_MS: int = 3000

    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    return Settings()


def setup_logging(log_level: str = "INFO"):
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

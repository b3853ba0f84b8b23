from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load .env early for local development
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Storage
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./travel.db")
    storage_backend: str = os.getenv("STORAGE_BACKEND", "orm")  # memory | sql | orm
    seed_on_startup: bool = _env_flag("SEED_ON_STARTUP", "true")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "./logs")

    # Broadcast relay
    relay_tick_seconds: float = float(os.getenv("RELAY_TICK_SECONDS", "3.0"))
    relay_queue_size: int = int(os.getenv("RELAY_QUEUE_SIZE", "100"))
    relay_auto_add_probability: float = float(os.getenv("RELAY_AUTO_ADD_PROBABILITY", "0.3"))
    # Off by default: clients normally persist through HTTP before emitting the event.
    relay_persist_updates: bool = _env_flag("RELAY_PERSIST_UPDATES", "false")


settings = Settings()

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///poster.db"

    # Session Management
    SESSION_EXPIRY_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "poster_session"
    SESSION_SAME_SITE: str = "lax"
    SESSION_HTTPS_ONLY: bool = False  # Set to True in production

    # Token store backend: "memory" or "database"
    TOKEN_STORE_BACKEND: str = "memory"

    # Temporary copies of uploaded images; system temp dir when unset
    UPLOAD_DIR: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_SECONDS: float = 60.0
    SCHEDULER_MAX_ATTEMPTS: int = 3

    # Security
    SECRET_KEY: str = "your-secret-key-here"  # Change this in production!

    class Config:
        env_file = ".env"
        extra = "ignore"  # Allow extra fields from environment variables

@lru_cache()
def get_settings():
    return Settings()

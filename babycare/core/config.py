import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    """
    Application settings.
    """

    # Application
    PROJECT_NAME: str = "Baby Care Tracker API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Child care record keeping with timezone-aware local storage"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./babycare.db")

    # Time handling
    DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "Asia/Taipei")
    TIMEZONE_PREFERENCE_KEY: str = "timezone"

    # Backup / restore
    SNAPSHOT_SCHEMA_VERSION: str = "1.0"

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_TIMEZONE: str = os.getenv("LOG_TIMEZONE", "UTC")
    LOG_TO_FILE: bool = os.getenv("LOG_TO_FILE", "true").lower() == "true"

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"

settings = Settings()

from typing import List

from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings class.
    Reads variables from .env file automatically.
    """

    # API Config
    PROJECT_NAME: str = "Workcenter Output Tracker"
    API_V1_STR: str = "/api"
    CORS_ORIGINS: List[str] = ["*"]

    # MongoDB Config
    # Transactions need a replica set (a single-node one is enough)
    MONGODB_URL: AnyUrl = "mongodb://localhost:27017/?replicaSet=rs0"
    DATABASE_NAME: str = "production_tracker"

    # Plant
    TIMEZONE: str = "Asia/Kolkata"

    # Realtime push
    POLL_INTERVAL_SECONDS: int = 30

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Pydantic V2 Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


config = Settings()

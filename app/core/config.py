# =============================================================================
# app/core/config.py
# =============================================================================
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings
import os
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Gitea Slack Notifier"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Relays Gitea pull request webhooks into threaded Slack conversations"
    API_V1_STR: str = "/api/v1"

    # Gitea user directory (used to deanonymise emails)
    GITEA_API_URL: str = os.getenv("GITEA_API_URL", "http://localhost:3000/api/v1")
    GITEA_API_TOKEN: Optional[str] = os.getenv("GITEA_API_TOKEN")

    # Slack
    SLACK_API_BASE: str = os.getenv("SLACK_API_BASE", "https://slack.com/api")
    SLACK_BOT_TOKEN: Optional[str] = os.getenv("SLACK_BOT_TOKEN")
    SLACK_CHANNEL: str = os.getenv("SLACK_CHANNEL", "#pull-requests")

    # Thread store, empty string keeps the mapping in memory only
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./threads.db")
    DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", "10"))
    DATABASE_MAX_OVERFLOW: int = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Serialize the first post per pull request so concurrent events share one thread
    SERIALIZE_ROOT_POSTS: bool = os.getenv("SERIALIZE_ROOT_POSTS", "true").lower() in ("1", "true", "yes")

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", "./logs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_RETENTION_HOURS: int = int(os.getenv("LOG_RETENTION_HOURS", "48"))

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"

    PORT: int = int(os.getenv("PORT", "4242"))

    @field_validator("GITEA_API_TOKEN")
    @classmethod
    def validate_gitea_api_token(cls, v):
        if not v:
            print("⚠️  WARNING: GITEA_API_TOKEN is not set")
        return v

    @field_validator("SLACK_BOT_TOKEN")
    @classmethod
    def validate_slack_bot_token(cls, v):
        if not v:
            print("⚠️  WARNING: SLACK_BOT_TOKEN is not set")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()

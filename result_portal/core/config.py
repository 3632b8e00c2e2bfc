# result_portal/core/config.py

import secrets
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from result_portal.core.logger import get_logger

load_dotenv()

logger = get_logger("config")


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    MONGODB_URI: str = "mongodb://127.0.0.1:27017"
    MONGODB_DB: str = "student_result_system"

    # Tokens
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Comma separated list of allowed front-end origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"

    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 500
    AUTH_RATE_LIMIT_MAX_REQUESTS: int = 10

    # Credits assumed by the grading engine when a subject has none.
    DEFAULT_SUBJECT_CREDITS: int = 1
    # Default of the stored subject schema. Not used for grading.
    STORED_SUBJECT_CREDITS_DEFAULT: int = 4

    SLOW_REQUEST_MS: int = 500
    ACTIVITY_LOG_SIZE: int = 100

    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    PORTAL_URL: str = "http://localhost:5173"

    class Config:
        env_prefix = "RESULT_PORTAL_"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.CORS_ORIGINS.split(",") if o.strip()]


CONFIG = Settings()


def validate_config(settings: Settings = CONFIG) -> Settings:
    """
    Check the settings before the app starts serving.

    In production a missing or short JWT secret is fatal. In development a
    throwaway secret is generated so the server can still boot.
    """
    errors = []

    if settings.is_production:
        if not settings.JWT_SECRET:
            errors.append("JWT_SECRET is required in production")
        elif len(settings.JWT_SECRET) < 32:
            errors.append("JWT_SECRET must be at least 32 characters in production")

    if errors:
        for err in errors:
            logger.error("Configuration error: %s", err)
        raise RuntimeError("Invalid configuration: " + "; ".join(errors))

    if not settings.JWT_SECRET:
        settings.JWT_SECRET = "dev_only_" + secrets.token_urlsafe(32)
        logger.warning("Using auto-generated JWT secret (development only)")

    return settings

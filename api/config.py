"""
API Configuration Management

Settings of the HTTP service loaded from the environment (``.env``
supported) and validated with pydantic-settings.
"""

import os
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, field_validator

from inbox_actions.jobs.scheduler import parse_daily_time

DEVELOPMENT_JWT_SECRET = "insecure_development_key_do_not_use_in_production_1234567890"


class EnvironmentType(str, Enum):
    """Valid environment types for configuration context."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class APISettings(BaseSettings):
    """
    API configuration settings with environment-specific defaults and validation.
    """
    # Environment Configuration
    ENVIRONMENT: EnvironmentType = Field(
        default=EnvironmentType.DEVELOPMENT,
        description="Runtime environment context"
    )
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FILE: Optional[str] = Field(
        default="logs/inbox_actions.log",
        description="Rotating log file, empty to log to the console only"
    )

    # API Settings
    API_TITLE: str = Field(default="Inbox Actions API", description="API title for documentation")
    API_DESCRIPTION: str = Field(
        default="Turns French emails into a list of concrete actions",
        description="API description for documentation"
    )
    API_VERSION: str = Field(default="1.0.0", description="API version")

    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL, overrides the storage default when set"
    )

    # Security Settings
    JWT_SECRET_KEY: SecretStr = Field(
        default=DEVELOPMENT_JWT_SECRET,
        description="Secret key for JWT token generation and validation"
    )
    JWT_ALGORITHM: str = Field(default="HS256", description="Algorithm used for JWT tokens")
    JWT_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7, description="JWT token lifetime in minutes")
    CRON_SECRET: Optional[SecretStr] = Field(
        default=None,
        description="Bearer secret expected by the /cron endpoints"
    )

    # CORS Settings
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed origins for CORS"
    )
    CORS_METHODS: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS",
        description="Comma-separated list of allowed methods for CORS"
    )

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=False, description="Run jobs inside the API process")
    SCHEDULER_TIMEZONE: str = Field(default="Europe/Paris", description="Timezone of daily job times")
    DAILY_SYNC_TIME: str = Field(default="08:00", description="Daily sync time, HH:MM")
    CLEANUP_TIME: str = Field(default="03:00", description="Daily cleanup time, HH:MM")
    EMAIL_COUNT_INTERVAL_SECONDS: int = Field(
        default=900,
        description="Interval of the pending email count job"
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, value: str) -> list:
        """Parse comma-separated CORS origins into list."""
        if value == "*":
            return ["*"]
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("CORS_METHODS")
    @classmethod
    def parse_cors_methods(cls, value: str) -> list:
        """Parse comma-separated CORS methods into list."""
        return [method.strip() for method in value.split(",") if method.strip()]

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_jwt_secret(cls, value: SecretStr) -> SecretStr:
        """Validate JWT secret key meets minimum security requirements."""
        if len(value.get_secret_value()) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        return value

    @field_validator("DAILY_SYNC_TIME", "CLEANUP_TIME")
    @classmethod
    def validate_daily_time(cls, value: str) -> str:
        parse_daily_time(value)
        return value

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> APISettings:
    """
    Retrieve validated API settings.

    Raises:
        ValidationError: If configuration fails validation
        ValueError: If production runs with the development JWT secret
    """
    settings = APISettings()
    if (settings.ENVIRONMENT == EnvironmentType.PRODUCTION
            and settings.JWT_SECRET_KEY.get_secret_value() == DEVELOPMENT_JWT_SECRET
            and not os.getenv("ALLOW_DEVELOPMENT_SECRET")):
        raise ValueError("JWT_SECRET_KEY must be set in production")
    return settings

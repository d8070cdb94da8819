"""
Centralized Configuration for the Code Tutor backend.

All environment variables are managed here using Pydantic Settings.
This provides:
- Type validation
- Default values
- Single source of truth

Usage:
    from tutor_backend.config import settings

    db_url = settings.database_url
    secret = settings.jwt_secret
"""

import os
import re
from datetime import timedelta
from typing import Literal
from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError


# =============================================================================
# Duration Parsing
# =============================================================================

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*([a-z]+)?\s*$", re.IGNORECASE)
_UNIT_SECONDS = {}
for _names, _seconds in (
    (("ms", "msec", "msecs", "millisecond", "milliseconds"), 0.001),
    (("s", "sec", "secs", "second", "seconds"), 1),
    (("m", "min", "mins", "minute", "minutes"), 60),
    (("h", "hr", "hrs", "hour", "hours"), 3600),
    (("d", "day", "days"), 86400),
    (("w", "week", "weeks"), 604800),
    (("y", "yr", "yrs", "year", "years"), 31557600),
):
    _UNIT_SECONDS.update(dict.fromkeys(_names, _seconds))


def parse_expires_in(value) -> timedelta:
    """
    Convert a lifetime such as "7d", "7 days", "1.5h" or "90" (seconds)
    to a timedelta.

    Raises:
        ConfigurationError: If the value cannot be parsed or is not positive
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _DURATION_PATTERN.match(str(value))
        if not match or (match.group(2) or "s").lower() not in _UNIT_SECONDS:
            raise ConfigurationError("JWT_EXPIRES_IN", f"unrecognised duration '{value}'")
        amount, unit = match.groups()
        seconds = float(amount) * _UNIT_SECONDS[(unit or "s").lower()]
    if seconds <= 0:
        raise ConfigurationError("JWT_EXPIRES_IN", "duration must be positive")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    See .env.example for all available options.
    """

    # =============================================================================
    # Application Environment
    # =============================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
        validation_alias="ENVIRONMENT"
    )

    testing: bool = Field(
        default=False,
        description="Enable testing mode",
        validation_alias="TESTING"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validation_alias="LOG_LEVEL"
    )

    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
        validation_alias="HOST"
    )

    port: int = Field(
        default=3000,
        description="Port the HTTP server listens on",
        validation_alias="PORT"
    )

    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Frontend application URL (always allowed by CORS)",
        validation_alias="FRONTEND_URL"
    )

    backend_url: str = Field(
        default="http://localhost:3000",
        description="Public base URL of this API, used to build avatar URLs",
        validation_alias="BACKEND_URL"
    )

    allowed_origins: str = Field(
        default="*",
        description="CORS allowed origins (comma-separated or '*')",
        validation_alias="ALLOWED_ORIGINS"
    )

    # =============================================================================
    # Database
    # =============================================================================

    database_url: str = Field(
        default="sqlite:///./code_tutor.db",
        description="Database connection URL (PostgreSQL or SQLite)",
        validation_alias="DATABASE_URL"
    )

    # =============================================================================
    # Authentication & Security
    # =============================================================================

    jwt_secret: str = Field(
        ...,  # Required field
        description="Secret key for JWT token signing (generate with: openssl rand -hex 32)",
        validation_alias="JWT_SECRET"
    )

    jwt_expires_in: str = Field(
        default="7d",
        description="JWT lifetime, e.g. 7d, 7 days, 12h, 1.5h, 30m or plain seconds",
        validation_alias="JWT_EXPIRES_IN"
    )

    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor for password hashing",
        validation_alias="BCRYPT_ROUNDS"
    )

    # =============================================================================
    # Uploads
    # =============================================================================

    upload_storage: Literal["memory", "disk"] = Field(
        default="memory",
        description="Where avatar uploads are kept",
        validation_alias="UPLOAD_STORAGE"
    )

    upload_dir: str = Field(
        default="uploads",
        description="Directory for avatar files when UPLOAD_STORAGE=disk",
        validation_alias="UPLOAD_DIR"
    )

    upload_max_bytes: int = Field(
        default=2 * 1024 * 1024,
        gt=0,
        description="Maximum avatar upload size in bytes",
        validation_alias="UPLOAD_MAX_BYTES"
    )

    upload_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Lifetime of an in-memory upload",
        validation_alias="UPLOAD_TTL_SECONDS"
    )

    upload_sweep_interval_seconds: int = Field(
        default=1800,
        gt=0,
        description="How often expired in-memory uploads are swept",
        validation_alias="UPLOAD_SWEEP_INTERVAL_SECONDS"
    )

    # =============================================================================
    # Computed Properties
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def cors_origins(self) -> list:
        """Allowed CORS origins, always including the frontend."""
        if self.allowed_origins.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url)
        return origins

    # =============================================================================
    # Pydantic Model Configuration
    # =============================================================================

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Field Validators
    # =============================================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is uppercase and valid."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is lowercase."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("backend_url", "frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_jwt_expires_in(cls, v):
        """Reject token lifetimes that cannot be parsed."""
        try:
            parse_expires_in(v)
        except ConfigurationError as e:
            raise ValueError(e.message) from e
        return v.strip()


# =============================================================================
# Global Settings Instance
# =============================================================================

# Create settings instance - will raise validation error if required fields missing
try:
    settings = Settings()
except Exception as e:
    if os.getenv("TESTING") == "true":
        os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
        settings = Settings()
    else:
        raise RuntimeError(
            f"Failed to load application settings: {e}\n\n"
            "Required environment variables:\n"
            "- JWT_SECRET (generate with: openssl rand -hex 32)\n\n"
            "See .env.example for all available configuration options."
        ) from e


__all__ = ["settings", "Settings", "parse_expires_in"]

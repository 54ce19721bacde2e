"""Application Configuration Module.

Implements 12-factor app configuration using pydantic-settings.
All configuration is loaded from environment variables with sensible defaults.

Environment file loading priority:
1. If APP_ENV is set, loads .env.{APP_ENV} (e.g., .env.dev, .env.prod)
2. Falls back to .env if specific file doesn't exist
3. Environment variables always override file values
"""
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_file() -> str | tuple[str, ...]:
    """
    Determine which .env file(s) to load based on APP_ENV.

    Returns:
        Tuple of env file paths to load (base first, specific overrides)
    """
    app_env = os.getenv("APP_ENV", "").lower()

    env_to_file = {
        "dev": "dev",
        "development": "dev",
        "prod": "prod",
        "production": "prod",
        "staging": "staging",
        "test": "test",
    }

    file_suffix = env_to_file.get(app_env, app_env)

    env_files: list[str] = []
    if Path(".env").exists():
        env_files.append(".env")

    if file_suffix:
        env_specific = f".env.{file_suffix}"
        if Path(env_specific).exists():
            env_files.append(env_specific)

    if env_files:
        return tuple(env_files)
    return ".env"


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment file loading:
    - Set APP_ENV=dev to load .env.dev
    - Set APP_ENV=prod to load .env.prod
    - Falls back to .env if specific file doesn't exist
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application Settings
    # ========================================
    APP_NAME: str = Field(
        default="dentacare-clinic-service",
        description="Application name used in logging"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Semantic version of the application"
    )
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (never enable in production)"
    )

    # ========================================
    # Logging
    # ========================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # ========================================
    # Database Configuration (PostgreSQL)
    # ========================================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL connection URL (SQLAlchemy asyncpg format). Required in production."
    )
    DATABASE_POOL_SIZE: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Database connection pool size"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=10,
        ge=0,
        description="Max overflow connections beyond pool size"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30,
        ge=1,
        description="Timeout for getting connection from pool (seconds)"
    )
    DATABASE_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to logs"
    )

    # ========================================
    # Google Gemini AI Configuration
    # ========================================
    GOOGLE_API_KEY: str = Field(
        default="",
        description="Google AI Studio API key for Gemini"
    )
    GEMINI_MODEL: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used by the clinic assistant"
    )
    GEMINI_MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retry attempts for Gemini API calls"
    )
    GEMINI_RETRY_DELAY: float = Field(
        default=1.0,
        ge=0.1,
        description="Initial delay between retries (seconds)"
    )
    GEMINI_TIMEOUT: int = Field(
        default=60,
        ge=5,
        description="Timeout for Gemini API requests (seconds)"
    )
    GEMINI_TEMPERATURE: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Temperature for AI generation"
    )
    GEMINI_MAX_TOKENS: int = Field(
        default=1500,
        ge=100,
        description="Upper bound on tokens in an assistant response"
    )

    # ========================================
    # Security Configuration
    # ========================================
    SECRET_KEY: str = Field(
        default="change-me-in-production-use-strong-random-key",
        min_length=32,
        description="Secret key for JWT and QR code signing"
    )
    ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60,
        ge=1,
        description="JWT access token expiration time (minutes)"
    )
    PASSWORD_HASH_ITERATIONS: int = Field(
        default=260_000,
        ge=1_000,
        description="PBKDF2-SHA256 iterations for new password hashes"
    )

    # ========================================
    # CORS Configuration
    # ========================================
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow credentials in CORS requests. Must be False when CORS_ORIGINS='*'."
    )
    CORS_ALLOW_METHODS: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS,PATCH",
        description="Comma-separated list of allowed HTTP methods"
    )

    # ========================================
    # File Upload Settings
    # ========================================
    MAX_FILE_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum patient document upload size in MB"
    )
    ALLOWED_EXTENSIONS: str = Field(
        default="pdf,png,jpg,jpeg,webp",
        description="Comma-separated list of allowed patient document extensions"
    )
    PAYMENT_PROOF_MAX_SIZE_MB: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum payment proof image size in MB"
    )
    PAYMENT_PROOF_EXTENSIONS: str = Field(
        default="jpg,jpeg,png,gif,webp",
        description="Comma-separated list of allowed payment proof image extensions"
    )
    BLOB_STORAGE_PATH: str = Field(
        default="./blob_storage",
        description="Local filesystem path for uploaded files"
    )
    BLOB_BASE_URL: str = Field(
        default="/api/v1/blobs",
        description="Base URL for serving uploaded files"
    )

    # ========================================
    # Clinic Operations
    # ========================================
    DEFAULT_APPOINTMENT_DURATION_MINUTES: int = Field(
        default=30,
        ge=5,
        description="Appointment length when neither request nor treatment sets one"
    )
    QUEUE_MINUTES_PER_PATIENT: int = Field(
        default=30,
        ge=1,
        description="Per-position wait estimate on the live queue"
    )
    WALK_IN_MINUTES_PER_PATIENT: int = Field(
        default=20,
        ge=1,
        description="Per-waiting-patient estimate quoted to walk-ins"
    )
    NO_SHOW_GRACE_MINUTES: int = Field(
        default=15,
        ge=0,
        description="Minutes after the scheduled time before a booked appointment is a no-show"
    )
    DAILY_QR_EXPIRY_HOUR: int = Field(
        default=23,
        ge=0,
        le=23,
        description="Hour of day (UTC) after which the daily check-in code stops working"
    )
    APPOINTMENT_QR_TTL_HOURS: int = Field(
        default=24,
        ge=1,
        description="Lifetime of an appointment check-in code"
    )
    STAFF_QR_TTL_HOURS: int = Field(
        default=8,
        ge=1,
        description="Lifetime of a staff time-in code"
    )
    HOUSEKEEPING_INTERVAL_SECONDS: int = Field(
        default=300,
        ge=0,
        description="Period of the in-process reminder and no-show sweep; 0 disables it"
    )

    # ========================================
    # Derived values
    # ========================================
    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def cors_methods_list(self) -> list[str]:
        return [method.upper() for method in _split_csv(self.CORS_ALLOW_METHODS)]

    @property
    def allowed_extensions_list(self) -> list[str]:
        """Patient document extensions, lowercase without the dot."""
        return [ext.lower().lstrip(".") for ext in _split_csv(self.ALLOWED_EXTENSIONS)]

    @property
    def payment_proof_extensions_list(self) -> list[str]:
        return [ext.lower().lstrip(".") for ext in _split_csv(self.PAYMENT_PROOF_EXTENSIONS)]

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def payment_proof_max_bytes(self) -> int:
        return self.PAYMENT_PROOF_MAX_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.APP_ENV == "development"

    # ========================================
    # Validators
    # ========================================
    @field_validator("GOOGLE_API_KEY")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Warn if API key is not set."""
        if not v:
            warnings.warn(
                "GOOGLE_API_KEY is not set. The clinic assistant will not work.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Warn (not silently substitute) when DATABASE_URL is absent."""
        if not v:
            warnings.warn(
                "DATABASE_URL is not set. The application will fail on first DB access.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.CORS_ORIGINS.strip() == "*" and self.CORS_ALLOW_CREDENTIALS:
            raise ValueError(
                "CORS_ALLOW_CREDENTIALS cannot be True when CORS_ORIGINS is '*'. "
                "Set CORS_ORIGINS to an explicit comma-separated list of origins."
            )

        if self.is_production:
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if "change-me" in self.SECRET_KEY.lower():
                raise ValueError("SECRET_KEY must be changed in production")
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production")
            if "localhost" in self.DATABASE_URL or "127.0.0.1" in self.DATABASE_URL:
                raise ValueError("DATABASE_URL must not point to localhost in production")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings instance.

    Tests can reset it via ``get_settings.cache_clear()``.
    """
    return Settings()

"""Tests for settings validation and derived values."""

import pytest
from pydantic import ValidationError

from src.dentacare.core.config import Settings


def test_defaults_and_derived_lists():
    settings = Settings(ALLOWED_EXTENSIONS="PDF, png", CORS_ORIGINS="https://a.com, https://b.com")
    assert settings.allowed_extensions_list == ["pdf", "png"]
    assert settings.cors_origins_list == ["https://a.com", "https://b.com"]
    assert settings.max_file_size_bytes == settings.MAX_FILE_SIZE_MB * 1024 * 1024
    assert settings.payment_proof_extensions_list == ["jpg", "jpeg", "png", "gif", "webp"]


def test_wildcard_cors_with_credentials_rejected():
    with pytest.raises(ValidationError):
        Settings(CORS_ORIGINS="*", CORS_ALLOW_CREDENTIALS=True)


def test_production_requires_real_secret():
    with pytest.raises(ValidationError):
        Settings(APP_ENV="production", DATABASE_URL="postgresql+asyncpg://u:p@db:5432/clinic")


def test_production_rejects_localhost_database():
    with pytest.raises(ValidationError):
        Settings(
            APP_ENV="production",
            SECRET_KEY="a-strong-production-secret-key-0123456789",
            DATABASE_URL="postgresql+asyncpg://u:p@localhost:5432/clinic",
        )


def test_valid_production_settings():
    settings = Settings(
        APP_ENV="production",
        SECRET_KEY="a-strong-production-secret-key-0123456789",
        DATABASE_URL="postgresql+asyncpg://u:p@db.internal:5432/clinic",
    )
    assert settings.is_production
    assert not settings.is_development


def test_housekeeping_interval_cannot_be_negative():
    with pytest.raises(ValidationError):
        Settings(HOUSEKEEPING_INTERVAL_SECONDS=-1)

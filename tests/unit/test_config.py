"""
Unit Tests for Configuration

Tests for settings and configuration management.
"""

import pytest
from pydantic import ValidationError

from cohortly.config import DEV_JWT_SECRET, Settings


def test_settings_defaults():
    """Test default settings values."""
    settings = Settings()

    assert settings.ENVIRONMENT in ["local", "staging", "production"]
    assert settings.LOG_LEVEL in ["DEBUG", "INFO", "WARNING", "ERROR"]
    assert isinstance(settings.DATABASE_URL, str)
    assert settings.JWT_AUDIENCE == "edge"
    assert settings.JWT_ALGORITHM == "HS256"


def test_settings_environment_specific():
    """Test environment-specific behavior."""
    settings_local = Settings(ENVIRONMENT="local")
    assert settings_local.is_local is True
    assert settings_local.is_production is False

    settings_prod = Settings(ENVIRONMENT="production", JWT_SECRET="a-real-secret")
    assert settings_prod.is_local is False
    assert settings_prod.is_production is True


def test_production_rejects_dev_secret():
    """Production must not sign tokens with the development secret."""
    with pytest.raises(ValidationError, match="JWT_SECRET"):
        Settings(ENVIRONMENT="production", JWT_SECRET=DEV_JWT_SECRET)


def test_staging_allows_dev_secret():
    settings = Settings(ENVIRONMENT="staging", JWT_SECRET=DEV_JWT_SECRET)
    assert settings.JWT_SECRET == DEV_JWT_SECRET


def test_cors_origins_split():
    settings = Settings(CORS_ORIGINS="https://app.example.com, https://admin.example.com,")
    assert settings.cors_origins == ["https://app.example.com", "https://admin.example.com"]


def test_expiration_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(JWT_EXPIRATION_MINUTES=0)

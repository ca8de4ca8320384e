"""Unit tests for AppSettings (infrastructure configuration).

AppSettings reads PLURA_* environment variables once at startup; the
production check flags development placeholders that must not ship.
"""

import os
from unittest.mock import patch

from plura.config.app_settings import AppSettings, get_settings


class TestAppSettings:
    """Tests for AppSettings defaults and environment overrides."""

    def test_defaults(self) -> None:
        settings = AppSettings()

        assert settings.api_port == 8000
        assert settings.jwt_algorithm == "HS256"
        assert settings.redis_ratelimit_db == 1

    def test_env_override_uses_plura_prefix(self) -> None:
        with patch.dict(
            os.environ,
            {"PLURA_API_PORT": "9999", "PLURA_PUBLIC_DOMAIN": "plura.test"},
        ):
            settings = AppSettings()

        assert settings.api_port == 9999
        assert settings.public_domain == "plura.test"

    def test_premium_price_ids_from_json(self) -> None:
        with patch.dict(os.environ, {"PLURA_PREMIUM_PRICE_IDS": '["price_a", "price_b"]'}):
            settings = AppSettings()

        assert settings.premium_price_ids == ["price_a", "price_b"]

    def test_environment_checks_ignore_case(self) -> None:
        assert AppSettings(environment="Production").is_production() is True
        assert AppSettings(environment="development").is_development() is True


class TestValidateProductionConfig:
    """Tests for AppSettings.validate_production_config."""

    def test_placeholders_are_reported(self) -> None:
        errors = AppSettings(environment="production", debug=True).validate_production_config()

        assert "SECRET_KEY must be changed in production" in errors
        assert "ADMIN_JWT_SECRET must be changed in production" in errors
        assert "ADMIN_PASSWORD must be changed in production" in errors
        assert "DEBUG should be False in production" in errors
        assert "PostgreSQL URL should not use localhost in production" in errors

    def test_clean_production_config(self) -> None:
        settings = AppSettings(
            environment="production",
            secret_key="s" * 48,
            admin_jwt_secret="a" * 48,
            admin_password="correct horse battery staple",
            postgres_url="postgresql+asyncpg://plura:pw@db.internal:5432/plura",
            redis_url="redis://cache.internal:6379",
        )

        assert settings.validate_production_config() == []


class TestGetSettings:
    def test_returns_singleton(self) -> None:
        assert get_settings() is get_settings()
        assert isinstance(get_settings(), AppSettings)

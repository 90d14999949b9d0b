"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from core.config import Settings


class TestSettings:
    """Test environment-driven settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ACCESS_LOOKUP_TIMEOUT_SECONDS", "1.5")
        monkeypatch.setenv("APP_BASE_URL", "https://hire.example.com")

        settings = Settings()

        assert settings.access_lookup_timeout_seconds == 1.5
        assert settings.app_base_url == "https://hire.example.com"

    def test_secret_key_is_required(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("ACCESS_LOOKUP_TIMEOUT_SECONDS", "0")

        with pytest.raises(ValidationError):
            Settings()

    def test_unknown_environment_rejected(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "qa")

        with pytest.raises(ValidationError):
            Settings()

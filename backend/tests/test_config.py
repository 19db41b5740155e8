"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from autohub.core.config import Settings


class TestSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("APP_MAX_UPLOAD_SIZE_MB", "2")
        monkeypatch.setenv("APP_PROPAGATE_REFUND_AS_REFUNDED", "true")

        settings = Settings()

        assert settings.max_upload_size_bytes == 2 * 1024 * 1024
        assert settings.propagate_refund_as_refunded is True

    def test_refunds_propagate_as_failed_by_default(self):
        assert Settings().propagate_refund_as_refunded is False

    def test_rejects_non_postgres_url(self):
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite:///autohub.db")

    def test_extensions_are_normalized(self):
        settings = Settings(receipt_extensions=["PDF", " .Png ", ""])

        assert settings.receipt_extensions == [".pdf", ".png"]

    def test_cors_origins_from_comma_separated_string(self):
        settings = Settings(cors_origins="https://a.example, https://b.example")

        assert settings.cors_origins == ["https://a.example", "https://b.example"]

"""
Tests for environment-driven settings.
"""

import pytest
from pydantic import ValidationError

from invoicing.config import Settings, get_settings
from invoicing.domain.numbering import DEFAULT_TEMPLATE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "DATABASE_URL",
        "INVOICE_NUMBER_FORMAT",
        "NUMBER_MAX_RETRIES",
        "NUMBER_RETRY_BACKOFF_MIN_MS",
        "NUMBER_RETRY_BACKOFF_MAX_MS",
        "DEBUG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///./invoicing.db"
        assert settings.invoice_number_format == DEFAULT_TEMPLATE
        assert settings.number_max_retries == 5
        assert settings.retry_backoff_ms == (10, 50)
        assert settings.debug is False
        assert settings.log_level == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("INVOICE_NUMBER_FORMAT", "INV-{year}-{month}-{number:6}")
        monkeypatch.setenv("number_max_retries", "3")

        settings = Settings(_env_file=None)

        assert settings.invoice_number_format == "INV-{year}-{month}-{number:6}"
        assert settings.number_max_retries == 3

    def test_rejects_incomplete_template(self, monkeypatch):
        monkeypatch.setenv("INVOICE_NUMBER_FORMAT", "FV/{year}/{number}")

        with pytest.raises(ValidationError, match="month"):
            Settings(_env_file=None)

    def test_rejects_inverted_backoff(self):
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                number_retry_backoff_min_ms=100,
                number_retry_backoff_max_ms=10,
            )

    def test_rejects_zero_retries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, number_max_retries=0)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

"""Unit tests for core configuration module."""

import pytest
from pydantic import ValidationError

from ballot_api.core.config import Settings

SECRET = "test-nullifier-secret-that-is-at-least-32-characters"


@pytest.fixture
def base_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://localhost/db")
    monkeypatch.setenv("NULLIFIER_SECRET", SECRET)
    return monkeypatch


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_from_env(self, base_env: pytest.MonkeyPatch) -> None:
        """Settings load from environment variables."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.database_url == "postgresql+asyncpg://localhost/db"
        assert settings.nullifier_secret == SECRET

    def test_settings_defaults(self, base_env: pytest.MonkeyPatch) -> None:
        """Default values are applied correctly."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.ballot_codec == "base64-json"
        assert settings.default_max_rankings == 3
        assert settings.default_credit_budget == 100
        assert settings.default_estimated_voters == 1000
        assert settings.timeline_bucket_minutes == 60
        assert settings.timeline_window_hours == 24
        assert settings.ledger_enabled is False
        assert settings.ledger_url is None
        assert settings.log_level == "INFO"
        assert settings.api_v1_prefix == "/api/v1"
        assert settings.rate_limit_per_minute == 100

    def test_nullifier_secret_minimum_length(self, base_env: pytest.MonkeyPatch) -> None:
        """Nullifier secret must be at least 32 characters."""
        base_env.setenv("NULLIFIER_SECRET", "too-short")
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_nullifier_secret_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://localhost/db")
        monkeypatch.delenv("NULLIFIER_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_ballot_codec_is_normalized(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("BALLOT_CODEC", " JSON ")
        assert Settings(_env_file=None).ballot_codec == "json"  # type: ignore[call-arg]

    def test_unknown_ballot_codec_rejected(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("BALLOT_CODEC", "rot13")
        with pytest.raises(ValidationError, match="Unsupported ballot_codec"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_ledger_url_must_be_http(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("LEDGER_URL", "ftp://ledger.example.test")
        with pytest.raises(ValidationError, match="http"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_ledger_url_trailing_slash_stripped(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("LEDGER_URL", "https://ledger.example.test/ballots/")
        assert Settings(_env_file=None).ledger_url == "https://ledger.example.test/ballots"  # type: ignore[call-arg]

    def test_blank_ledger_url_is_none(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("LEDGER_URL", "  ")
        assert Settings(_env_file=None).ledger_url is None  # type: ignore[call-arg]

    def test_validation_positive_integers(self, base_env: pytest.MonkeyPatch) -> None:
        """Positive integer fields reject zero."""
        base_env.setenv("DEFAULT_CREDIT_BUDGET", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_invalid_database_schema(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("DATABASE_SCHEMA", "Robert'); DROP TABLE ballots;--")
        with pytest.raises(ValidationError, match="database_schema"):
            Settings(_env_file=None)  # type: ignore[call-arg]

    def test_cors_origin_list(self, base_env: pytest.MonkeyPatch) -> None:
        """CORS origins string is parsed into a list."""
        base_env.setenv("CORS_ORIGINS", "http://localhost:3000, http://example.com")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.cors_origin_list == ["http://localhost:3000", "http://example.com"]

    def test_trusted_proxy_header_list(self, base_env: pytest.MonkeyPatch) -> None:
        base_env.setenv("TRUSTED_PROXY_HEADERS", "")
        assert Settings(_env_file=None).trusted_proxy_header_list == []  # type: ignore[call-arg]

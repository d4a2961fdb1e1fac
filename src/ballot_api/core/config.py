"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg or sqlite+aiosqlite)",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Ballot integrity
    nullifier_secret: str = Field(
        min_length=32,
        description="HMAC key used to derive per-voter-per-election nullifiers (minimum 32 characters)",
    )
    ballot_codec: str = Field(
        default="base64-json",
        description="Codec used to encode stored ballot payloads (base64-json, json)",
    )

    @field_validator("ballot_codec")
    @classmethod
    def validate_ballot_codec(cls, v: str) -> str:
        normalized = v.strip().lower()
        if normalized not in ("base64-json", "json"):
            msg = f"Unsupported ballot_codec '{v}': expected base64-json or json"
            raise ValueError(msg)
        return normalized

    # Election defaults
    default_max_rankings: int = Field(
        default=3,
        description="Maximum rankings per ranked-choice ballot when an election does not set one",
        gt=0,
    )
    default_credit_budget: int = Field(
        default=100,
        description="Credit budget per quadratic ballot when an election does not set one",
        gt=0,
    )
    default_estimated_voters: int = Field(
        default=1000,
        description="Turnout denominator when an election does not set an eligible-voter estimate",
        gt=0,
    )

    # Live results
    timeline_bucket_minutes: int = Field(
        default=60,
        description="Width of each live-results timeline bucket in minutes",
        gt=0,
        le=1440,
    )
    timeline_window_hours: int = Field(
        default=24,
        description="Trailing window covered by the live-results timeline in hours",
        gt=0,
        le=24 * 31,
    )
    ballot_stream_batch_size: int = Field(
        default=500,
        description="Rows fetched per round trip when streaming ballots for a tally",
        gt=0,
    )

    # Ledger collaborator
    ledger_enabled: bool = Field(
        default=False,
        description="Post accepted ballot hashes to the external ledger service",
    )
    ledger_url: str | None = Field(
        default=None,
        description="Endpoint receiving {ballot_id, vote_hash, nullifier} records",
    )
    ledger_timeout: float = Field(
        default=10.0,
        description="Ledger request timeout in seconds",
        gt=0,
    )

    @field_validator("ledger_url")
    @classmethod
    def validate_ledger_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not v.startswith(("http://", "https://")):
            msg = "ledger_url must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    rate_limit_per_minute: int = Field(
        default=100,
        description="Maximum write requests per minute per IP address",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]

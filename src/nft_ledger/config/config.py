# -*- coding: utf-8 -*-
"""Configuration loaded from environment via Pydantic Settings.

Nested env vars use <section>__<key>, e.g. LOGGING__CONSOLE_LEVEL, LEDGER__CONFIRMATION_THRESHOLD.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """General application configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    app_name: str = "nft-ledger"
    service_name: Optional[str] = None
    service_version: Optional[str] = None
    environment: Literal["development", "test", "production"] = "development"


class LoggingSettings(BaseSettings):
    """Structured logging configuration for structlog/stdlib/Logfire."""

    model_config = SettingsConfigDict(extra="ignore")

    console_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    logfire_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    log_to_console: bool = True
    log_to_file: bool = False
    log_file_path: str = "logs/nft_ledger.log"
    # TimedRotatingFileHandler: when to rotate (S/M/H/D/W0–W6/midnight), interval, backups to keep
    log_file_when: Literal[
        "S", "M", "H", "D", "W0", "W1", "W2", "W3", "W4", "W5", "W6", "midnight"
    ] = "midnight"
    log_file_interval: int = 1
    log_file_backup_count: int = 30
    log_file_utc: bool = True

    # JSONRenderer if True, ConsoleRenderer if False
    json_format: bool = False

    logfire_enabled: bool = False
    logfire_token: Optional[str] = None


class LedgerSettings(BaseSettings):
    """Transaction ledger behaviour and storage backend (from env LEDGER__*)."""

    model_config = SettingsConfigDict(extra="ignore")

    confirmation_threshold: int = Field(
        default=3,
        ge=1,
        le=1000,
        description="Confirmations at which a PENDING transaction becomes CONFIRMED.",
    )
    default_currency: str = Field(
        default="ETH",
        min_length=1,
        description="Currency assigned when an event carries none.",
    )
    normalize_addresses: bool = Field(
        default=True,
        description="Lower-case hashes and party/contract addresses at ingestion.",
    )
    storage_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Record store implementation.",
    )
    sqlite_path: str = Field(
        default="data/nft_ledger.db",
        description="SQLite database file (storage_backend=sqlite).",
    )
    sqlite_timeout_seconds: float = Field(
        default=5.0,
        ge=0.1,
        le=120.0,
        description="How long SQLite waits on a locked database before failing.",
    )


class IngestionSettings(BaseSettings):
    """In-process chain event queue (from env INGESTION__*)."""

    model_config = SettingsConfigDict(extra="ignore")

    queue_size: int = Field(
        default=1000,
        ge=0,
        le=100_000,
        description="Max queued chain events. 0 means unbounded.",
    )


class QuerySettings(BaseSettings):
    """Read side configuration (from env QUERY__*)."""

    model_config = SettingsConfigDict(extra="ignore")

    stats_cache_ttl_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=3600.0,
        description="TTL of the cached marketplace stats snapshot. 0 disables caching.",
    )


class ApiSettings(BaseSettings):
    """HTTP API bind address (from env API__*)."""

    model_config = SettingsConfigDict(extra="ignore")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class Settings(BaseSettings):
    """Root application configuration.

    Groups all sub-configurations so the rest of the code does not
    read environment variables directly. Nested overrides use
    <section>__<key>, e.g. LOGGING__CONSOLE_LEVEL, LEDGER__STORAGE_BACKEND.
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @classmethod
    def from_env(cls, **overrides: Any) -> Settings:
        """Build settings from environment (and .env), with optional overrides.

        Nested overrides can be passed as nested dicts, e.g.
        from_env(ledger={"confirmation_threshold": 6}).
        """
        return cls(**overrides)


@lru_cache
def get_settings() -> Settings:
    """Return a single cached instance of Settings.

    Typical usage:

        from nft_ledger.config import get_settings

        threshold = get_settings().ledger.confirmation_threshold
    """
    return Settings()

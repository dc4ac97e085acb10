"""Configuration subpackage."""

from nft_ledger.config.config import (
    ApiSettings,
    AppSettings,
    IngestionSettings,
    LedgerSettings,
    LoggingSettings,
    QuerySettings,
    Settings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "IngestionSettings",
    "LedgerSettings",
    "LoggingSettings",
    "QuerySettings",
    "Settings",
    "get_settings",
]

"""Logging setup (structlog + Logfire)."""

from nft_ledger.logging.config import configure_logging

__all__ = ["configure_logging"]

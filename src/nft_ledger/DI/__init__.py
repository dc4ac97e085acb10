"""Dependency injection."""

from nft_ledger.DI.container import Container

__all__ = ["Container"]

# -*- coding: utf-8 -*-
"""Repositories: interfaces (abstractions) and implementations (in_memory, sqlite)."""

from nft_ledger.persistence.repositories.interfaces import (
    ITransactionRepository,
    UpsertResult,
)
from nft_ledger.persistence.repositories.in_memory import InMemoryTransactionRepository
from nft_ledger.persistence.repositories.sqlite import SqliteTransactionRepository

__all__ = [
    "ITransactionRepository",
    "InMemoryTransactionRepository",
    "SqliteTransactionRepository",
    "UpsertResult",
]

"""Persistence layer (Record Store repositories)."""

from nft_ledger.persistence.repositories import (
    InMemoryTransactionRepository,
    ITransactionRepository,
    SqliteTransactionRepository,
    UpsertResult,
)

__all__ = [
    "ITransactionRepository",
    "InMemoryTransactionRepository",
    "SqliteTransactionRepository",
    "UpsertResult",
]

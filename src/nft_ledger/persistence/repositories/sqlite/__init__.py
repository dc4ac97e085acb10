"""SQLite repository implementations."""

from nft_ledger.persistence.repositories.sqlite.transaction_repository import (
    SqliteTransactionRepository,
)

__all__ = ["SqliteTransactionRepository"]

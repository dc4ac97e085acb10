"""In-memory repository implementations."""

from nft_ledger.persistence.repositories.in_memory.transaction_repository import (
    InMemoryTransactionRepository,
)

__all__ = ["InMemoryTransactionRepository"]

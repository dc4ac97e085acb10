# -*- coding: utf-8 -*-
"""Repository interfaces (abstractions). Implementations live in in_memory/, sqlite/."""

from nft_ledger.persistence.repositories.interfaces.transaction_repository import (
    ITransactionRepository,
    UpsertResult,
)

__all__ = [
    "ITransactionRepository",
    "UpsertResult",
]

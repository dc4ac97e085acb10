# -*- coding: utf-8 -*-
"""Domain models."""

from nft_ledger.models.marketplace_stats import MarketplaceStats
from nft_ledger.models.transaction_record import (
    STRUCTURAL_FIELDS,
    TransactionKind,
    TransactionMetadata,
    TransactionRecord,
    TransactionStatus,
)

__all__ = [
    "MarketplaceStats",
    "STRUCTURAL_FIELDS",
    "TransactionKind",
    "TransactionMetadata",
    "TransactionRecord",
    "TransactionStatus",
]

"""NFT marketplace transaction ledger: ingestion, confirmation tracking and queries."""

from nft_ledger.config import get_settings
from nft_ledger.DI import Container
from nft_ledger.models import MarketplaceStats, TransactionKind, TransactionRecord, TransactionStatus
from nft_ledger.services.ingestion import ChainWatcherEvent, IngestionGateway
from nft_ledger.services.query import QueryEngine

__version__ = "0.1.0"
__all__ = [
    "ChainWatcherEvent",
    "Container",
    "IngestionGateway",
    "MarketplaceStats",
    "QueryEngine",
    "TransactionKind",
    "TransactionRecord",
    "TransactionStatus",
    "get_settings",
]

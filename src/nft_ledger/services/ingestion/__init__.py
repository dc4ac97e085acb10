"""Ingestion gateway, event DTO and validation rules."""

from nft_ledger.services.ingestion.event_dto import ChainWatcherEvent
from nft_ledger.services.ingestion.ingestion_gateway import IngestionGateway, IngestResult
from nft_ledger.services.ingestion.validation import KIND_RULES, KindRule, validate_event

__all__ = [
    "ChainWatcherEvent",
    "IngestResult",
    "IngestionGateway",
    "KIND_RULES",
    "KindRule",
    "validate_event",
]

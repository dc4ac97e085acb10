# -*- coding: utf-8 -*-
"""Event bus and ledger event types."""

from nft_ledger.events.bus import get_event_bus, set_event_bus
from nft_ledger.events.ledger_events import (
    ChainEventRejectedEvent,
    TransactionConfirmedEvent,
    TransactionFailedEvent,
)

__all__ = [
    "ChainEventRejectedEvent",
    "TransactionConfirmedEvent",
    "TransactionFailedEvent",
    "get_event_bus",
    "set_event_bus",
]

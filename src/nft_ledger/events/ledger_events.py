# -*- coding: utf-8 -*-
"""Ledger events (bubus BaseEvent), emitted after a transition is persisted."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bubus import BaseEvent  # type: ignore[import-untyped]


class TransactionConfirmedEvent(BaseEvent[None]):
    """Emitted once per hash when it moves PENDING -> CONFIRMED."""

    transaction_hash: str
    token_id: int
    kind: str
    confirmations: int
    confirmed_at: datetime
    forced: bool = False
    """True when an operator force-confirmed the transaction."""


class TransactionFailedEvent(BaseEvent[None]):
    """Emitted once per hash when it moves PENDING -> FAILED."""

    transaction_hash: str
    token_id: int
    kind: str
    failed_at: datetime


class ChainEventRejectedEvent(BaseEvent[None]):
    """Emitted by the queue consumer when an event could not be ingested."""

    error_code: str
    """One of: invalid_event, duplicate_key, unavailable, not_found."""
    message: str
    transaction_hash: Optional[str] = None
    retryable: bool = False
    """True for storage failures; the watcher should redeliver."""

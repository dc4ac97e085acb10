"""Envelope for items on the ingestion queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class QueueMessage[T]:
    """One queued delivery; id/created_at identify it in logs, payload is the event."""

    id: uuid.UUID
    payload: T
    created_at: datetime
    metadata: dict[str, Any] | None = None

    @classmethod
    def create(cls, payload: T, metadata: dict[str, Any] | None = None) -> QueueMessage[T]:
        """Create a new message with the given payload."""
        return cls(
            id=uuid.uuid4(),
            payload=payload,
            created_at=datetime.now(UTC),
            metadata=metadata,
        )

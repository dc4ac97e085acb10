# -*- coding: utf-8 -*-
"""Confirmation state machine: pure transitions over TransactionRecord.

PENDING -> CONFIRMED when the confirmation counter reaches the threshold, or on
an explicit force-confirm. PENDING -> FAILED only on an explicit failure signal.
CONFIRMED and FAILED are terminal: every later signal is REJECTED and the
record is returned unchanged.

No I/O and no clocks beyond the optional `now` default. Stores call these
inside their own per-hash critical section, so a single read-modify-write
covers both the counter and the status flip.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from nft_ledger.exceptions import InvalidEventError
from nft_ledger.models.transaction_record import TransactionRecord, TransactionStatus


class TransitionOutcome(str, Enum):
    """What a signal did to the record."""

    INCREMENTED = "incremented"
    """Counter advanced, still PENDING."""
    CONFIRMED = "confirmed"
    """PENDING -> CONFIRMED fired on this signal."""
    FAILED = "failed"
    """PENDING -> FAILED fired on this signal."""
    REJECTED = "rejected"
    """Record was already terminal; nothing changed."""


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Record after the signal plus what happened."""

    record: TransactionRecord
    outcome: TransitionOutcome
    previous_status: TransactionStatus

    @property
    def changed(self) -> bool:
        return self.outcome != TransitionOutcome.REJECTED

    @property
    def transitioned(self) -> bool:
        """True when the status changed (CONFIRMED or FAILED fired)."""
        return self.outcome in (TransitionOutcome.CONFIRMED, TransitionOutcome.FAILED)


def _rejected(record: TransactionRecord) -> TransitionResult:
    return TransitionResult(record, TransitionOutcome.REJECTED, record.status)


def apply_confirmations(
    record: TransactionRecord,
    delta: int,
    threshold: int,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """Add delta confirmations; confirm if the counter reaches threshold while PENDING.

    A catch-up batch that overshoots the threshold in one step still confirms
    exactly once: the PENDING guard makes the flip fire on the first signal
    that brings the counter to or past the threshold.

    Raises:
        InvalidEventError: If delta < 1.
        ValueError: If threshold < 1.
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta < 1:
        raise InvalidEventError(
            f"confirmation delta must be an integer >= 1, got {delta!r}",
            field="confirmationIncrement",
            transaction_hash=record.transaction_hash,
        )
    if threshold < 1:
        raise ValueError(f"confirmation threshold must be >= 1, got {threshold}")
    if record.is_terminal:
        return _rejected(record)

    ts = now or datetime.now(UTC)
    count = record.confirmations + delta
    if count >= threshold:
        return TransitionResult(
            record.with_confirmed(confirmations=count, now=ts),
            TransitionOutcome.CONFIRMED,
            record.status,
        )
    return TransitionResult(
        record.with_confirmations(count, now=ts),
        TransitionOutcome.INCREMENTED,
        record.status,
    )


def apply_failure(record: TransactionRecord, *, now: datetime | None = None) -> TransitionResult:
    """PENDING -> FAILED. Terminal records are rejected."""
    if record.is_terminal:
        return _rejected(record)
    return TransitionResult(
        record.with_failed(now=now),
        TransitionOutcome.FAILED,
        record.status,
    )


def apply_force_confirm(record: TransactionRecord, *, now: datetime | None = None) -> TransitionResult:
    """Operator correction: PENDING -> CONFIRMED regardless of the counter."""
    if record.is_terminal:
        return _rejected(record)
    return TransitionResult(
        record.with_confirmed(now=now),
        TransitionOutcome.CONFIRMED,
        record.status,
    )


class ConfirmationStateMachine:
    """Binds the process-wide threshold to the pure transition functions."""

    def __init__(self, threshold: int = 3) -> None:
        if threshold < 1:
            raise ValueError(f"confirmation threshold must be >= 1, got {threshold}")
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    def confirm(
        self,
        record: TransactionRecord,
        delta: int,
        *,
        now: datetime | None = None,
    ) -> TransitionResult:
        return apply_confirmations(record, delta, self._threshold, now=now)

    def fail(self, record: TransactionRecord, *, now: datetime | None = None) -> TransitionResult:
        return apply_failure(record, now=now)

    def force_confirm(self, record: TransactionRecord, *, now: datetime | None = None) -> TransitionResult:
        return apply_force_confirm(record, now=now)

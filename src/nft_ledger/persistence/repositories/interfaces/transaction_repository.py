# -*- coding: utf-8 -*-
"""Abstract interface for transaction record storage (in-memory, SQLite, etc.)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)

if TYPE_CHECKING:
    from nft_ledger.services.confirmation.state_machine import TransitionResult


@dataclass(frozen=True, slots=True)
class UpsertResult:
    """Stored record and whether this call created it."""

    record: TransactionRecord
    created: bool


class ITransactionRepository(ABC):
    """Interface for the Record Store: the only writer of TransactionRecord state.

    Per-hash mutations (upsert, apply_confirmation_delta, mark_failed,
    force_confirm) are linearizable: implementations serialize them per
    transaction_hash and apply each as one atomic replace of the record.
    Records returned are immutable values; callers never hold a mutable copy.
    Storage failures raise UnavailableError.
    """

    @abstractmethod
    async def upsert(self, record: TransactionRecord) -> UpsertResult:
        """Insert record if its hash is unseen; otherwise return the stored record unchanged.

        Raises:
            DuplicateKeyError: If the stored record differs in kind, token_id or contract_address.
        """
        ...

    @abstractmethod
    async def get_by_hash(self, transaction_hash: str) -> TransactionRecord:
        """Return the record.

        Raises:
            NotFoundError: If the hash is unknown.
        """
        ...

    @abstractmethod
    async def find_by_hash(self, transaction_hash: str) -> Optional[TransactionRecord]:
        """Return the record, or None if missing."""
        ...

    @abstractmethod
    async def list_by_party(self, address: str) -> list[TransactionRecord]:
        """Records where address is buyer, seller or creator, newest created_at first."""
        ...

    @abstractmethod
    async def list_by_token(
        self,
        token_id: int,
        kind: TransactionKind | None = None,
    ) -> list[TransactionRecord]:
        """Records for token_id (optionally one kind), newest created_at first."""
        ...

    @abstractmethod
    async def list_by_kind_status(
        self,
        kind: TransactionKind,
        status: TransactionStatus,
    ) -> list[TransactionRecord]:
        """Records with the given kind and status, newest created_at first.

        The returned list is a consistent point-in-time view: no record appears
        with its counter and status from different writes.
        """
        ...

    @abstractmethod
    async def apply_confirmation_delta(self, transaction_hash: str, delta: int) -> TransitionResult:
        """Atomically add delta (>= 1) confirmations; flip to CONFIRMED on reaching the threshold.

        Terminal records are left untouched (outcome REJECTED).

        Raises:
            NotFoundError: If the hash is unknown.
            InvalidEventError: If delta < 1.
        """
        ...

    @abstractmethod
    async def mark_failed(self, transaction_hash: str) -> TransitionResult:
        """PENDING -> FAILED. Terminal records are left untouched (outcome REJECTED).

        Raises:
            NotFoundError: If the hash is unknown.
        """
        ...

    @abstractmethod
    async def force_confirm(self, transaction_hash: str) -> TransitionResult:
        """Operator correction: PENDING -> CONFIRMED regardless of count.

        Raises:
            NotFoundError: If the hash is unknown.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
        ...

    async def close(self) -> None:
        """Release storage resources. Default: nothing to release."""
        return None

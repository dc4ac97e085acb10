# -*- coding: utf-8 -*-
"""In-memory transaction repository (keyed by transaction_hash, with secondary indexes)."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime

from nft_ledger.exceptions import DuplicateKeyError, NotFoundError
from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from nft_ledger.persistence.repositories.interfaces.transaction_repository import (
    ITransactionRepository,
    UpsertResult,
)
from nft_ledger.services.confirmation.state_machine import (
    ConfirmationStateMachine,
    TransitionResult,
)


def _key(transaction_hash: str) -> str:
    return transaction_hash.strip()


def _newest_first(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    """Sort by created_at descending; hash breaks ties so order is stable."""
    return sorted(
        records,
        key=lambda r: (r.created_at, r.transaction_hash),
        reverse=True,
    )


class InMemoryTransactionRepository(ITransactionRepository):
    """In-memory implementation of ITransactionRepository.

    Records are frozen dataclasses replaced whole under a per-hash asyncio.Lock,
    so readers never see a half-applied transition. Index maps hold hashes only.
    """

    def __init__(
        self,
        state_machine: ConfirmationStateMachine | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize an empty in-memory store.

        Args:
            state_machine: Transition rules (threshold). Defaults to threshold 3.
            clock: UTC time source for transition timestamps (injected in tests).
        """
        self._state_machine = state_machine or ConfirmationStateMachine()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._store: dict[str, TransactionRecord] = {}
        # One lock per stored hash: records are never deleted and transitions
        # on unknown hashes fail before a lock is allocated.
        self._locks: dict[str, asyncio.Lock] = {}
        self._by_party: defaultdict[str, set[str]] = defaultdict(set)
        self._by_token: defaultdict[int, set[str]] = defaultdict(set)
        self._by_kind_status: defaultdict[tuple[TransactionKind, TransactionStatus], set[str]] = (
            defaultdict(set)
        )

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    def _index(self, record: TransactionRecord) -> None:
        key = record.transaction_hash
        for party in record.parties:
            self._by_party[party].add(key)
        self._by_token[record.token_id].add(key)
        self._by_kind_status[(record.kind, record.status)].add(key)

    def _replace(self, before: TransactionRecord, after: TransactionRecord) -> None:
        """Swap the stored record; only the (kind, status) index can move."""
        key = after.transaction_hash
        if before.status != after.status:
            self._by_kind_status[(before.kind, before.status)].discard(key)
            self._by_kind_status[(after.kind, after.status)].add(key)
        self._store[key] = after

    def _require(self, key: str) -> TransactionRecord:
        record = self._store.get(key)
        if record is None:
            raise NotFoundError(key)
        return record

    def _records(self, keys: Iterable[str]) -> list[TransactionRecord]:
        return [self._store[k] for k in keys if k in self._store]

    async def upsert(self, record: TransactionRecord) -> UpsertResult:
        """Insert if unseen; return the stored record if seen with the same structure."""
        key = _key(record.transaction_hash)
        if record.transaction_hash != key:
            record = replace(record, transaction_hash=key)
        async with self._lock_for(key):
            existing = self._store.get(key)
            if existing is None:
                self._store[key] = record
                self._index(record)
                return UpsertResult(record=record, created=True)
            mismatched = existing.structural_mismatches(record)
            if mismatched:
                raise DuplicateKeyError(
                    f"Transaction {key!r} re-observed with different {', '.join(mismatched)}",
                    transaction_hash=key,
                    mismatched_fields=mismatched,
                )
            return UpsertResult(record=existing, created=False)

    async def get_by_hash(self, transaction_hash: str) -> TransactionRecord:
        return self._require(_key(transaction_hash))

    async def find_by_hash(self, transaction_hash: str) -> TransactionRecord | None:
        return self._store.get(_key(transaction_hash))

    async def list_by_party(self, address: str) -> list[TransactionRecord]:
        keys = self._by_party.get(address.strip(), set())
        return _newest_first(self._records(keys))

    async def list_by_token(
        self,
        token_id: int,
        kind: TransactionKind | None = None,
    ) -> list[TransactionRecord]:
        records = self._records(self._by_token.get(token_id, set()))
        if kind is not None:
            records = [r for r in records if r.kind == kind]
        return _newest_first(records)

    async def list_by_kind_status(
        self,
        kind: TransactionKind,
        status: TransactionStatus,
    ) -> list[TransactionRecord]:
        # No await between reading the index and the records: one consistent view.
        keys = list(self._by_kind_status.get((kind, status), set()))
        return _newest_first(self._records(keys))

    async def apply_confirmation_delta(self, transaction_hash: str, delta: int) -> TransitionResult:
        key = _key(transaction_hash)
        self._require(key)
        async with self._lock_for(key):
            record = self._require(key)
            result = self._state_machine.confirm(record, delta, now=self._clock())
            if result.changed:
                self._replace(record, result.record)
            return result

    async def mark_failed(self, transaction_hash: str) -> TransitionResult:
        key = _key(transaction_hash)
        self._require(key)
        async with self._lock_for(key):
            record = self._require(key)
            result = self._state_machine.fail(record, now=self._clock())
            if result.changed:
                self._replace(record, result.record)
            return result

    async def force_confirm(self, transaction_hash: str) -> TransitionResult:
        key = _key(transaction_hash)
        self._require(key)
        async with self._lock_for(key):
            record = self._require(key)
            result = self._state_machine.force_confirm(record, now=self._clock())
            if result.changed:
                self._replace(record, result.record)
            return result

    async def count(self) -> int:
        return len(self._store)

# -*- coding: utf-8 -*-
"""Unit tests for InMemoryTransactionRepository."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from nft_ledger.exceptions import DuplicateKeyError, NotFoundError
from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from nft_ledger.persistence.repositories.in_memory.transaction_repository import (
    InMemoryTransactionRepository,
)
from nft_ledger.services.confirmation import TransitionOutcome


async def test_upsert_creates_then_returns_existing(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()

    first = await transaction_repo.upsert(record)
    second = await transaction_repo.upsert(record_factory(block_number=101))

    assert first.created
    assert not second.created
    assert second.record == record
    assert await transaction_repo.count() == 1


async def test_upsert_rejects_structural_mismatch(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    await transaction_repo.upsert(record_factory())

    with pytest.raises(DuplicateKeyError) as exc_info:
        await transaction_repo.upsert(record_factory(kind=TransactionKind.TRANSFER, token_id=7))

    assert set(exc_info.value.mismatched_fields) == {"kind", "token_id"}


async def test_get_by_hash_raises_for_unknown(
    transaction_repo: InMemoryTransactionRepository,
    tx_hash_factory: Callable[[int], str],
) -> None:
    with pytest.raises(NotFoundError):
        await transaction_repo.get_by_hash(tx_hash_factory(99))
    assert await transaction_repo.find_by_hash(tx_hash_factory(99)) is None


async def test_apply_delta_accumulates_and_confirms_once(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    now_utc: datetime,
) -> None:
    record = record_factory()
    await transaction_repo.upsert(record)

    first = await transaction_repo.apply_confirmation_delta(record.transaction_hash, 2)
    second = await transaction_repo.apply_confirmation_delta(record.transaction_hash, 1)
    third = await transaction_repo.apply_confirmation_delta(record.transaction_hash, 1)

    assert first.outcome == TransitionOutcome.INCREMENTED
    assert second.outcome == TransitionOutcome.CONFIRMED
    assert third.outcome == TransitionOutcome.REJECTED
    stored = await transaction_repo.get_by_hash(record.transaction_hash)
    assert stored.status == TransactionStatus.CONFIRMED
    assert stored.confirmations == 3
    assert stored.confirmed_at == now_utc


async def test_apply_delta_on_unknown_hash_raises(
    transaction_repo: InMemoryTransactionRepository,
    tx_hash_factory: Callable[[int], str],
) -> None:
    with pytest.raises(NotFoundError):
        await transaction_repo.apply_confirmation_delta(tx_hash_factory(5), 1)


async def test_concurrent_deltas_are_not_lost(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()
    await transaction_repo.upsert(record)

    results = await asyncio.gather(
        *(transaction_repo.apply_confirmation_delta(record.transaction_hash, 1) for _ in range(10))
    )

    outcomes = [r.outcome for r in results]
    assert outcomes.count(TransitionOutcome.CONFIRMED) == 1
    assert outcomes.count(TransitionOutcome.INCREMENTED) == 2
    assert outcomes.count(TransitionOutcome.REJECTED) == 7
    stored = await transaction_repo.get_by_hash(record.transaction_hash)
    assert stored.confirmations == 3


async def test_mark_failed_then_terminal(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()
    await transaction_repo.upsert(record)

    failed = await transaction_repo.mark_failed(record.transaction_hash)
    confirm = await transaction_repo.apply_confirmation_delta(record.transaction_hash, 5)
    forced = await transaction_repo.force_confirm(record.transaction_hash)

    assert failed.outcome == TransitionOutcome.FAILED
    assert confirm.outcome == TransitionOutcome.REJECTED
    assert forced.outcome == TransitionOutcome.REJECTED
    stored = await transaction_repo.get_by_hash(record.transaction_hash)
    assert stored.status == TransactionStatus.FAILED
    assert stored.confirmations == 0


async def test_list_by_party_newest_first(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
    buyer: str,
    creator: str,
    now_utc: datetime,
) -> None:
    older = record_factory(transaction_hash=tx_hash_factory(1), created_at=now_utc)
    newer = record_factory(
        transaction_hash=tx_hash_factory(2),
        created_at=now_utc + timedelta(minutes=5),
    )
    mint = record_factory(
        transaction_hash=tx_hash_factory(3),
        kind=TransactionKind.MINT,
        created_at=now_utc + timedelta(minutes=10),
    )
    for r in (older, newer, mint):
        await transaction_repo.upsert(r)

    by_buyer = await transaction_repo.list_by_party(buyer)
    by_creator = await transaction_repo.list_by_party(creator)

    assert [r.transaction_hash for r in by_buyer] == [newer.transaction_hash, older.transaction_hash]
    assert [r.transaction_hash for r in by_creator] == [mint.transaction_hash]
    assert await transaction_repo.list_by_party("0xunknown") == []


async def test_list_by_token_filters_kind(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
) -> None:
    await transaction_repo.upsert(record_factory(transaction_hash=tx_hash_factory(1)))
    await transaction_repo.upsert(
        record_factory(transaction_hash=tx_hash_factory(2), kind=TransactionKind.MINT)
    )
    await transaction_repo.upsert(record_factory(transaction_hash=tx_hash_factory(3), token_id=7))

    all_for_token = await transaction_repo.list_by_token(42)
    purchases = await transaction_repo.list_by_token(42, TransactionKind.PURCHASE)

    assert len(all_for_token) == 2
    assert [r.transaction_hash for r in purchases] == [tx_hash_factory(1)]


async def test_kind_status_index_follows_transitions(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()
    await transaction_repo.upsert(record)

    pending = await transaction_repo.list_by_kind_status(
        TransactionKind.PURCHASE, TransactionStatus.PENDING
    )
    await transaction_repo.apply_confirmation_delta(record.transaction_hash, 3)
    confirmed = await transaction_repo.list_by_kind_status(
        TransactionKind.PURCHASE, TransactionStatus.CONFIRMED
    )
    pending_after = await transaction_repo.list_by_kind_status(
        TransactionKind.PURCHASE, TransactionStatus.PENDING
    )

    assert len(pending) == 1
    assert len(confirmed) == 1
    assert pending_after == []


async def test_concurrent_upserts_create_exactly_once(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()

    results = await asyncio.gather(*(transaction_repo.upsert(record) for _ in range(8)))

    assert [r.created for r in results].count(True) == 1
    assert all(r.record == record for r in results)
    assert await transaction_repo.count() == 1


async def test_upsert_stores_and_indexes_stripped_hash(
    transaction_repo: InMemoryTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
    buyer: str,
) -> None:
    padded = record_factory(transaction_hash=f"  {tx_hash_factory(1)}\n")

    result = await transaction_repo.upsert(padded)
    by_party = await transaction_repo.list_by_party(buyer)
    by_token = await transaction_repo.list_by_token(42)
    pending = await transaction_repo.list_by_kind_status(
        TransactionKind.PURCHASE, TransactionStatus.PENDING
    )

    assert result.record.transaction_hash == tx_hash_factory(1)
    assert [r.transaction_hash for r in by_party] == [tx_hash_factory(1)]
    assert [r.transaction_hash for r in by_token] == [tx_hash_factory(1)]
    assert [r.transaction_hash for r in pending] == [tx_hash_factory(1)]


async def test_transitions_on_unknown_hash_do_not_allocate_locks(
    transaction_repo: InMemoryTransactionRepository,
    tx_hash_factory: Callable[[int], str],
) -> None:
    for n in range(5):
        with pytest.raises(NotFoundError):
            await transaction_repo.apply_confirmation_delta(tx_hash_factory(n), 1)
        with pytest.raises(NotFoundError):
            await transaction_repo.mark_failed(tx_hash_factory(n))

    assert transaction_repo._locks == {}

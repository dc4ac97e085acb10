# -*- coding: utf-8 -*-
"""Unit tests for SqliteTransactionRepository (file-backed, per-test database)."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from nft_ledger.exceptions import DuplicateKeyError, NotFoundError
from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionMetadata,
    TransactionRecord,
    TransactionStatus,
)
from nft_ledger.persistence.repositories.sqlite.transaction_repository import (
    SqliteTransactionRepository,
)
from nft_ledger.services.confirmation import ConfirmationStateMachine, TransitionOutcome


@pytest.fixture
async def sqlite_repo(
    tmp_path: Path,
    state_machine: ConfirmationStateMachine,
    now_utc: datetime,
) -> AsyncIterator[SqliteTransactionRepository]:
    repo = SqliteTransactionRepository(
        tmp_path / "ledger.db",
        state_machine,
        clock=lambda: now_utc,
    )
    yield repo
    await repo.close()


async def test_record_roundtrip_preserves_values(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    D: Callable[[Any], Decimal],
) -> None:
    record = record_factory(
        price=D("1.234567890123456789"),
        platform_fee=D("0.025"),
        royalty_fee=D("0.05"),
        gas_price="30000000000",
        metadata=TransactionMetadata(token_uri="ipfs://x", title="Rocket", category="3d"),
    )

    created = await sqlite_repo.upsert(record)
    loaded = await sqlite_repo.get_by_hash(record.transaction_hash)

    assert created.created
    assert loaded == record


async def test_upsert_is_idempotent_and_checks_structure(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    await sqlite_repo.upsert(record_factory())
    again = await sqlite_repo.upsert(record_factory())

    assert not again.created
    assert await sqlite_repo.count() == 1
    with pytest.raises(DuplicateKeyError) as exc_info:
        await sqlite_repo.upsert(record_factory(contract_address="0x" + "1" * 40))
    assert exc_info.value.mismatched_fields == ("contract_address",)


async def test_unknown_hash(
    sqlite_repo: SqliteTransactionRepository,
    tx_hash_factory: Callable[[int], str],
) -> None:
    assert await sqlite_repo.find_by_hash(tx_hash_factory(9)) is None
    with pytest.raises(NotFoundError):
        await sqlite_repo.get_by_hash(tx_hash_factory(9))
    with pytest.raises(NotFoundError):
        await sqlite_repo.mark_failed(tx_hash_factory(9))


async def test_confirmation_lifecycle(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    now_utc: datetime,
) -> None:
    record = record_factory()
    await sqlite_repo.upsert(record)

    first = await sqlite_repo.apply_confirmation_delta(record.transaction_hash, 2)
    second = await sqlite_repo.apply_confirmation_delta(record.transaction_hash, 1)
    late_failure = await sqlite_repo.mark_failed(record.transaction_hash)

    assert first.outcome == TransitionOutcome.INCREMENTED
    assert second.outcome == TransitionOutcome.CONFIRMED
    assert late_failure.outcome == TransitionOutcome.REJECTED
    stored = await sqlite_repo.get_by_hash(record.transaction_hash)
    assert stored.status == TransactionStatus.CONFIRMED
    assert stored.confirmations == 3
    assert stored.confirmed_at == now_utc


async def test_concurrent_deltas_are_not_lost(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()
    await sqlite_repo.upsert(record)

    results = await asyncio.gather(
        *(sqlite_repo.apply_confirmation_delta(record.transaction_hash, 1) for _ in range(6))
    )

    outcomes = [r.outcome for r in results]
    assert outcomes.count(TransitionOutcome.CONFIRMED) == 1
    stored = await sqlite_repo.get_by_hash(record.transaction_hash)
    assert stored.confirmations == 3


async def test_listings_and_kind_status(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
    seller: str,
    now_utc: datetime,
) -> None:
    older = record_factory(transaction_hash=tx_hash_factory(1), created_at=now_utc)
    newer = record_factory(
        transaction_hash=tx_hash_factory(2),
        created_at=now_utc + timedelta(seconds=1),
    )
    mint = record_factory(transaction_hash=tx_hash_factory(3), kind=TransactionKind.MINT)
    for r in (older, newer, mint):
        await sqlite_repo.upsert(r)
    await sqlite_repo.force_confirm(newer.transaction_hash)

    by_seller = await sqlite_repo.list_by_party(seller)
    mints = await sqlite_repo.list_by_token(42, TransactionKind.MINT)
    confirmed = await sqlite_repo.list_by_kind_status(
        TransactionKind.PURCHASE, TransactionStatus.CONFIRMED
    )

    assert [r.transaction_hash for r in by_seller] == [newer.transaction_hash, older.transaction_hash]
    assert [r.transaction_hash for r in mints] == [mint.transaction_hash]
    assert [r.transaction_hash for r in confirmed] == [newer.transaction_hash]


async def test_data_survives_reopen(
    tmp_path: Path,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    path = tmp_path / "ledger.db"
    record = record_factory()
    repo = SqliteTransactionRepository(path)
    await repo.upsert(record)
    await repo.apply_confirmation_delta(record.transaction_hash, 1)
    await repo.close()

    reopened = SqliteTransactionRepository(path)
    try:
        stored = await reopened.get_by_hash(record.transaction_hash)
    finally:
        await reopened.close()

    assert stored.confirmations == 1
    assert stored.status == TransactionStatus.PENDING


async def test_uint256_token_and_block_ids_roundtrip(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    token_id = 2**255
    record = record_factory(token_id=token_id, block_number=2**64)

    await sqlite_repo.upsert(record)
    loaded = await sqlite_repo.get_by_hash(record.transaction_hash)
    by_token = await sqlite_repo.list_by_token(token_id)
    purchases = await sqlite_repo.list_by_token(token_id, TransactionKind.PURCHASE)

    assert loaded.token_id == token_id
    assert loaded.block_number == 2**64
    assert [r.transaction_hash for r in by_token] == [record.transaction_hash]
    assert [r.transaction_hash for r in purchases] == [record.transaction_hash]
    assert await sqlite_repo.list_by_token(token_id - 1) == []


async def test_concurrent_upserts_create_exactly_once(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
) -> None:
    record = record_factory()

    results = await asyncio.gather(*(sqlite_repo.upsert(record) for _ in range(8)))

    assert [r.created for r in results].count(True) == 1
    assert all(r.record == record for r in results)
    assert await sqlite_repo.count() == 1


async def test_upsert_stores_and_indexes_stripped_hash(
    sqlite_repo: SqliteTransactionRepository,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
    buyer: str,
) -> None:
    padded = record_factory(transaction_hash=f"  {tx_hash_factory(1)}\n")

    result = await sqlite_repo.upsert(padded)
    by_party = await sqlite_repo.list_by_party(buyer)

    assert result.record.transaction_hash == tx_hash_factory(1)
    assert [r.transaction_hash for r in by_party] == [tx_hash_factory(1)]
    assert (await sqlite_repo.get_by_hash(tx_hash_factory(1))).transaction_hash == tx_hash_factory(1)


async def test_version_1_database_is_migrated_to_text_ids(
    tmp_path: Path,
    record_factory: Callable[..., TransactionRecord],
    tx_hash_factory: Callable[[int], str],
    contract: str,
    buyer: str,
    seller: str,
    now_utc: datetime,
) -> None:
    path = tmp_path / "ledger.db"
    ts = now_utc.isoformat(timespec="microseconds")
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE transactions (
          transaction_hash TEXT PRIMARY KEY, block_number INTEGER NOT NULL,
          token_id INTEGER NOT NULL, contract_address TEXT NOT NULL, kind TEXT NOT NULL,
          price TEXT, currency TEXT NOT NULL, buyer TEXT, seller TEXT, creator TEXT,
          gas_used TEXT NOT NULL, gas_price TEXT, platform_fee TEXT NOT NULL,
          royalty_fee TEXT NOT NULL, metadata_json TEXT, status TEXT NOT NULL,
          confirmations INTEGER NOT NULL CHECK (confirmations >= 0),
          created_at TEXT NOT NULL, updated_at TEXT NOT NULL,
          confirmed_at TEXT, failed_at TEXT
        );
        CREATE INDEX idx_tx_token_kind ON transactions(token_id, kind);
        PRAGMA user_version=1;
        """
    )
    conn.execute(
        "INSERT INTO transactions(transaction_hash, block_number, token_id, contract_address, "
        "kind, price, currency, buyer, seller, gas_used, platform_fee, royalty_fee, status, "
        "confirmations, created_at, updated_at) "
        "VALUES (?, 100, 42, ?, 'purchase', '1.5', 'ETH', ?, ?, '21000', '0', '0', 'pending', 1, ?, ?)",
        (tx_hash_factory(1), contract, buyer, seller, ts, ts),
    )
    conn.commit()
    conn.close()

    repo = SqliteTransactionRepository(path)
    try:
        stored = await repo.get_by_hash(tx_hash_factory(1))
        by_token = await repo.list_by_token(42)
        await repo.upsert(
            record_factory(
                transaction_hash=tx_hash_factory(2),
                token_id=2**200,
                kind=TransactionKind.MINT,
            )
        )
        minted = await repo.list_by_token(2**200)
    finally:
        await repo.close()

    check = sqlite3.connect(path)
    try:
        version = check.execute("PRAGMA user_version").fetchone()[0]
        column_types = {row[1]: row[2] for row in check.execute("PRAGMA table_info(transactions)")}
    finally:
        check.close()

    assert stored.block_number == 100
    assert stored.token_id == 42
    assert stored.confirmations == 1
    assert [r.transaction_hash for r in by_token] == [tx_hash_factory(1)]
    assert [r.transaction_hash for r in minted] == [tx_hash_factory(2)]
    assert version == 2
    assert column_types["token_id"] == "TEXT"
    assert column_types["block_number"] == "TEXT"

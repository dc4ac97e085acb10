# -*- coding: utf-8 -*-
"""Shared pytest fixtures for unit and integration tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pytest
from bubus import EventBus  # type: ignore[import-untyped]

from nft_ledger.config import Settings
from nft_ledger.models.transaction_record import TransactionKind, TransactionRecord
from nft_ledger.persistence.repositories.in_memory.transaction_repository import (
    InMemoryTransactionRepository,
)
from nft_ledger.services.confirmation.state_machine import ConfirmationStateMachine
from nft_ledger.services.ingestion.event_dto import ChainWatcherEvent


@pytest.fixture
def contract() -> str:
    """Default marketplace contract used by tests."""
    return "0x5fbdb2315678afecb367f032d93f642f64180aa3"


@pytest.fixture
def buyer() -> str:
    return "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"


@pytest.fixture
def seller() -> str:
    return "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"


@pytest.fixture
def creator() -> str:
    return "0x90f79bf6eb2c4f870365e785982e1f101e93b906"


@pytest.fixture
def now_utc() -> datetime:
    """Stable UTC timestamp for deterministic assertions."""
    return datetime(2026, 2, 13, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def D() -> Callable[[Any], Decimal]:
    """Decimal helper: D('1.23') -> Decimal('1.23')."""
    return lambda value: Decimal(str(value))


@pytest.fixture
def tx_hash_factory() -> Callable[[int], str]:
    """Deterministic 32-byte hex hashes: tx_hash(1) -> '0x00..01'."""
    return lambda n: "0x" + format(n, "064x")


@pytest.fixture
def settings() -> Settings:
    """Default settings (threshold 3, ETH, in-memory store, no stats cache)."""
    return Settings.from_env()


@pytest.fixture
def record_factory(
    contract: str,
    buyer: str,
    seller: str,
    creator: str,
    now_utc: datetime,
    D: Callable[[Any], Decimal],
    tx_hash_factory: Callable[[int], str],
) -> Callable[..., TransactionRecord]:
    """Build PENDING TransactionRecord (purchase by default) with easy overrides."""

    def _build(**overrides: Any) -> TransactionRecord:
        kind = overrides.pop("kind", TransactionKind.PURCHASE)
        is_purchase = kind == TransactionKind.PURCHASE
        return TransactionRecord.create(
            transaction_hash=overrides.pop("transaction_hash", tx_hash_factory(1)),
            block_number=overrides.pop("block_number", 100),
            token_id=overrides.pop("token_id", 42),
            contract_address=overrides.pop("contract_address", contract),
            kind=kind,
            gas_used=overrides.pop("gas_used", "21000"),
            currency=overrides.pop("currency", "ETH"),
            price=overrides.pop("price", D("1.5") if is_purchase else None),
            buyer=overrides.pop("buyer", buyer if is_purchase else None),
            seller=overrides.pop("seller", seller if is_purchase else None),
            creator=overrides.pop("creator", creator if kind == TransactionKind.MINT else None),
            gas_price=overrides.pop("gas_price", None),
            platform_fee=overrides.pop("platform_fee", D("0")),
            royalty_fee=overrides.pop("royalty_fee", D("0")),
            metadata=overrides.pop("metadata", None),
            created_at=overrides.pop("created_at", now_utc),
        )

    return _build


@pytest.fixture
def event_factory(
    contract: str,
    buyer: str,
    seller: str,
    creator: str,
    D: Callable[[Any], Decimal],
    tx_hash_factory: Callable[[int], str],
) -> Callable[..., ChainWatcherEvent]:
    """Build a valid ChainWatcherEvent (purchase by default) with easy overrides."""

    def _build(**overrides: Any) -> ChainWatcherEvent:
        kind = overrides.pop("kind", TransactionKind.PURCHASE)
        is_purchase = kind == TransactionKind.PURCHASE
        return ChainWatcherEvent(
            transaction_hash=overrides.pop("transaction_hash", tx_hash_factory(1)),
            block_number=overrides.pop("block_number", 100),
            token_id=overrides.pop("token_id", 42),
            contract_address=overrides.pop("contract_address", contract),
            kind=kind,
            gas_used=overrides.pop("gas_used", "21000"),
            price=overrides.pop("price", D("1.5") if is_purchase else None),
            currency=overrides.pop("currency", None),
            buyer=overrides.pop("buyer", buyer if is_purchase else None),
            seller=overrides.pop("seller", seller if is_purchase else None),
            creator=overrides.pop("creator", creator if kind == TransactionKind.MINT else None),
            gas_price=overrides.pop("gas_price", None),
            platform_fee=overrides.pop("platform_fee", None),
            royalty_fee=overrides.pop("royalty_fee", None),
            metadata=overrides.pop("metadata", None),
            confirmation_increment=overrides.pop("confirmation_increment", None),
            failed=overrides.pop("failed", False),
        )

    return _build


@pytest.fixture
def payload_factory(
    contract: str,
    buyer: str,
    seller: str,
    tx_hash_factory: Callable[[int], str],
) -> Callable[..., dict[str, Any]]:
    """Build a camelCase wire payload for a purchase; overrides merge on top."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "transactionHash": tx_hash_factory(1),
            "blockNumber": 100,
            "tokenId": 42,
            "contractAddress": contract,
            "kind": "purchase",
            "price": "1.5",
            "buyer": buyer,
            "seller": seller,
            "gasUsed": "21000",
        }
        payload.update(overrides)
        return {k: v for k, v in payload.items() if v is not None}

    return _build


@pytest.fixture
def state_machine() -> ConfirmationStateMachine:
    return ConfirmationStateMachine(threshold=3)


@pytest.fixture
def transaction_repo(
    state_machine: ConfirmationStateMachine,
    now_utc: datetime,
) -> InMemoryTransactionRepository:
    """Fresh in-memory transaction repository per test (fixed clock)."""
    return InMemoryTransactionRepository(state_machine, clock=lambda: now_utc)


@pytest.fixture
def event_bus() -> EventBus:
    """Isolated event bus instance for tests."""
    return EventBus(
        name="NftLedgerTests",
        max_history_size=200,
        wal_path=None,
    )

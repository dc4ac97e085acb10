# -*- coding: utf-8 -*-
"""TransactionRecord: the ledger's sole entity, one per on-chain transaction hash.

Identity is transaction_hash. kind, token_id and contract_address are structural
(immutable after creation); status, confirmations and the confirmation/failure
timestamps change only through the confirmation state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from nft_ledger.utils.money import decimal_to_str


class TransactionKind(str, Enum):
    """Marketplace activity type."""

    MINT = "mint"
    PURCHASE = "purchase"
    TRANSFER = "transfer"
    LISTING = "listing"

    @classmethod
    def parse(cls, value: Any) -> TransactionKind:
        """Accept enum members or case-insensitive names/values ('Mint', 'PURCHASE', 'listing').

        Raises:
            ValueError: If value is not a known kind.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"unknown transaction kind: {value!r}")


class TransactionStatus(str, Enum):
    """Confirmation lifecycle state."""

    PENDING = "pending"
    """Seen on chain, not yet buried under enough blocks."""
    CONFIRMED = "confirmed"
    """Reached the finality threshold (or force-confirmed). Terminal."""
    FAILED = "failed"
    """Reverted or dropped, as reported by the chain watcher. Terminal."""

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


STRUCTURAL_FIELDS: tuple[str, ...] = ("kind", "token_id", "contract_address")
"""Fields that must match when a known hash is observed again."""


@dataclass(frozen=True, slots=True)
class TransactionMetadata:
    """Descriptive NFT payload. Opaque to the ledger's invariants."""

    token_uri: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    model_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenURI": self.token_uri,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "imageUrl": self.image_url,
            "modelUrl": self.model_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionMetadata:
        """Build from the wire shape (camelCase) or snake_case keys. Unknown keys are dropped."""

        def pick(*keys: str) -> Optional[str]:
            for k in keys:
                v = data.get(k)
                if v is not None:
                    return str(v)
            return None

        return cls(
            token_uri=pick("tokenURI", "tokenUri", "token_uri"),
            title=pick("title"),
            description=pick("description"),
            category=pick("category"),
            image_url=pick("imageUrl", "image_url"),
            model_url=pick("modelUrl", "model_url"),
        )


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """One marketplace transaction mirrored from chain.

    Invariants (enforced by ingestion and the state machine, not by __init__):
    - confirmed_at is set iff status is CONFIRMED.
    - confirmations never decreases while PENDING; frozen once terminal.
    - party fields and price satisfy the per-kind rules at creation.
    """

    transaction_hash: str
    block_number: int
    token_id: int
    contract_address: str
    kind: TransactionKind
    gas_used: str
    currency: str
    status: TransactionStatus
    confirmations: int
    created_at: datetime
    updated_at: datetime

    price: Optional[Decimal] = None
    buyer: Optional[str] = None
    seller: Optional[str] = None
    creator: Optional[str] = None
    gas_price: Optional[str] = None
    platform_fee: Decimal = Decimal("0")
    royalty_fee: Decimal = Decimal("0")
    metadata: Optional[TransactionMetadata] = None

    confirmed_at: Optional[datetime] = None
    """Set exactly once, on the PENDING -> CONFIRMED transition."""
    failed_at: Optional[datetime] = None
    """Set on the PENDING -> FAILED transition."""

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def parties(self) -> tuple[str, ...]:
        """Distinct non-empty party addresses (buyer, seller, creator)."""
        seen: list[str] = []
        for addr in (self.buyer, self.seller, self.creator):
            if addr and addr not in seen:
                seen.append(addr)
        return tuple(seen)

    @property
    def total_fees(self) -> Decimal:
        return self.platform_fee + self.royalty_fee

    def structural_mismatches(self, other: TransactionRecord) -> tuple[str, ...]:
        """Names of structural fields whose values differ from other's."""
        return tuple(
            name for name in STRUCTURAL_FIELDS if getattr(self, name) != getattr(other, name)
        )

    def with_confirmations(self, confirmations: int, *, now: datetime | None = None) -> TransactionRecord:
        """Return a copy with the confirmation counter set (status unchanged)."""
        return replace(
            self,
            confirmations=confirmations,
            updated_at=now or datetime.now(UTC),
        )

    def with_confirmed(
        self,
        *,
        confirmations: int | None = None,
        now: datetime | None = None,
    ) -> TransactionRecord:
        """Return a CONFIRMED copy with confirmed_at stamped."""
        ts = now or datetime.now(UTC)
        return replace(
            self,
            status=TransactionStatus.CONFIRMED,
            confirmations=self.confirmations if confirmations is None else confirmations,
            confirmed_at=ts,
            updated_at=ts,
        )

    def with_failed(self, *, now: datetime | None = None) -> TransactionRecord:
        """Return a FAILED copy with failed_at stamped."""
        ts = now or datetime.now(UTC)
        return replace(
            self,
            status=TransactionStatus.FAILED,
            failed_at=ts,
            updated_at=ts,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict in the wire's camelCase shape. Decimals rendered as strings."""
        return {
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "tokenId": self.token_id,
            "contractAddress": self.contract_address,
            "kind": self.kind.value,
            "price": decimal_to_str(self.price),
            "currency": self.currency,
            "buyer": self.buyer,
            "seller": self.seller,
            "creator": self.creator,
            "gasUsed": self.gas_used,
            "gasPrice": self.gas_price,
            "platformFee": decimal_to_str(self.platform_fee),
            "royaltyFee": decimal_to_str(self.royalty_fee),
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "status": self.status.value,
            "confirmations": self.confirmations,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "confirmedAt": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "failedAt": self.failed_at.isoformat() if self.failed_at else None,
        }

    @classmethod
    def create(
        cls,
        *,
        transaction_hash: str,
        block_number: int,
        token_id: int,
        contract_address: str,
        kind: TransactionKind,
        gas_used: str,
        currency: str = "ETH",
        price: Optional[Decimal] = None,
        buyer: Optional[str] = None,
        seller: Optional[str] = None,
        creator: Optional[str] = None,
        gas_price: Optional[str] = None,
        platform_fee: Decimal = Decimal("0"),
        royalty_fee: Decimal = Decimal("0"),
        metadata: Optional[TransactionMetadata] = None,
        created_at: datetime | None = None,
    ) -> TransactionRecord:
        """Create a new PENDING record with zero confirmations."""
        now = created_at or datetime.now(UTC)
        return cls(
            transaction_hash=transaction_hash,
            block_number=block_number,
            token_id=token_id,
            contract_address=contract_address,
            kind=kind,
            gas_used=gas_used,
            currency=currency,
            status=TransactionStatus.PENDING,
            confirmations=0,
            created_at=now,
            updated_at=now,
            price=price,
            buyer=buyer,
            seller=seller,
            creator=creator,
            gas_price=gas_price,
            platform_fee=platform_fee,
            royalty_fee=royalty_fee,
            metadata=metadata,
            confirmed_at=None,
            failed_at=None,
        )

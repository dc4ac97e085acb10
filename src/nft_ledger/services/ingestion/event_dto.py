"""Chain-watcher event DTO: the inbound shape of one observed marketplace transaction.

The wire payload is camelCase JSON (transactionHash, blockNumber, ...). The
original backend called the kind field `type`; both keys are accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from nft_ledger.exceptions import InvalidEventError
from nft_ledger.models.transaction_record import TransactionKind, TransactionMetadata
from nft_ledger.utils.money import to_decimal


def _opt_str(payload: dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise InvalidEventError(f"{key} must be a string", field=key)
    return value.strip() or None


def _req_str(payload: dict[str, Any], key: str) -> str:
    value = _opt_str(payload, key)
    if value is None:
        raise InvalidEventError(f"{key} is required", field=key)
    return value


def _req_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None:
        raise InvalidEventError(f"{key} is required", field=key)
    return _as_int(value, key)


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise InvalidEventError(f"{key} must be an integer", field=key)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        digits = s[1:] if s.startswith("-") else s
        # isdigit() alone admits superscripts and other non-ASCII digits.
        if digits.isascii() and digits.isdigit():
            try:
                return int(s)
            except ValueError as e:
                raise InvalidEventError(f"{key} is out of range", field=key) from e
    raise InvalidEventError(f"{key} must be an integer", field=key)


def _opt_decimal(payload: dict[str, Any], key: str) -> Optional[Decimal]:
    value = payload.get(key)
    if value is None:
        return None
    try:
        return to_decimal(value)
    except ValueError as e:
        raise InvalidEventError(f"{key} must be a number", field=key) from e


@dataclass(frozen=True, slots=True)
class ChainWatcherEvent:
    """One observation of an on-chain marketplace transaction.

    Same shape as TransactionRecord plus the delivery-specific
    confirmation_increment and failed flag. Values are typed but not yet
    checked against the per-kind rules; see services.ingestion.validation.
    """

    transaction_hash: str
    block_number: int
    token_id: int
    contract_address: str
    kind: TransactionKind
    gas_used: str

    price: Optional[Decimal] = None
    currency: Optional[str] = None
    buyer: Optional[str] = None
    seller: Optional[str] = None
    creator: Optional[str] = None
    gas_price: Optional[str] = None
    platform_fee: Optional[Decimal] = None
    royalty_fee: Optional[Decimal] = None
    metadata: Optional[TransactionMetadata] = None

    confirmation_increment: Optional[int] = None
    """Confirmations observed since the watcher's previous delivery for this hash."""
    failed: bool = False
    """Watcher reports the transaction reverted or was dropped."""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChainWatcherEvent:
        """Build from the camelCase wire payload.

        Raises:
            InvalidEventError: If a required field is missing or a value has the wrong type.
        """
        if not isinstance(payload, dict):
            raise InvalidEventError("event payload must be a JSON object")

        raw_kind = payload.get("kind", payload.get("type"))
        try:
            kind = TransactionKind.parse(raw_kind)
        except ValueError as e:
            raise InvalidEventError(str(e), field="kind") from e

        raw_metadata = payload.get("metadata")
        if raw_metadata is not None and not isinstance(raw_metadata, dict):
            raise InvalidEventError("metadata must be an object", field="metadata")

        raw_increment = payload.get("confirmationIncrement")
        increment = (
            _as_int(raw_increment, "confirmationIncrement") if raw_increment is not None else None
        )

        raw_failed = payload.get("failed", False)
        if not isinstance(raw_failed, bool):
            raise InvalidEventError("failed must be a boolean", field="failed")

        return cls(
            transaction_hash=_req_str(payload, "transactionHash"),
            block_number=_req_int(payload, "blockNumber"),
            token_id=_req_int(payload, "tokenId"),
            contract_address=_req_str(payload, "contractAddress"),
            kind=kind,
            gas_used=_req_str(payload, "gasUsed"),
            price=_opt_decimal(payload, "price"),
            currency=_opt_str(payload, "currency"),
            buyer=_opt_str(payload, "buyer"),
            seller=_opt_str(payload, "seller"),
            creator=_opt_str(payload, "creator"),
            gas_price=_opt_str(payload, "gasPrice"),
            platform_fee=_opt_decimal(payload, "platformFee"),
            royalty_fee=_opt_decimal(payload, "royaltyFee"),
            metadata=TransactionMetadata.from_dict(raw_metadata) if raw_metadata else None,
            confirmation_increment=increment,
            failed=raw_failed,
        )

# -*- coding: utf-8 -*-
"""Event validation: a rule table keyed by transaction kind, checked once at ingestion."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType

from nft_ledger.exceptions import InvalidEventError
from nft_ledger.models.transaction_record import TransactionKind
from nft_ledger.services.ingestion.event_dto import ChainWatcherEvent
from nft_ledger.utils.validation import is_numeric_string


@dataclass(frozen=True, slots=True)
class KindRule:
    """Fields a given kind must carry."""

    required_parties: tuple[str, ...]
    """Attribute names among buyer/seller/creator that must be non-empty."""
    price_required: bool


KIND_RULES: Mapping[TransactionKind, KindRule] = MappingProxyType(
    {
        TransactionKind.MINT: KindRule(required_parties=("creator",), price_required=False),
        TransactionKind.PURCHASE: KindRule(required_parties=("buyer", "seller"), price_required=True),
        TransactionKind.TRANSFER: KindRule(required_parties=(), price_required=False),
        TransactionKind.LISTING: KindRule(required_parties=("seller",), price_required=True),
    }
)


def _fail(message: str, field: str, event: ChainWatcherEvent) -> InvalidEventError:
    return InvalidEventError(message, field=field, transaction_hash=event.transaction_hash or None)


def _check_non_negative(value: Decimal | None, field: str, event: ChainWatcherEvent) -> None:
    if value is not None and value < 0:
        raise _fail(f"{field} must be non-negative", field, event)


def validate_event(event: ChainWatcherEvent) -> None:
    """Check an event against the common rules and its kind's rule.

    Raises:
        InvalidEventError: On the first violated rule (field names match the wire payload).
    """
    if not event.transaction_hash.strip():
        raise _fail("transactionHash is required", "transactionHash", event)
    if not event.contract_address.strip():
        raise _fail("contractAddress is required", "contractAddress", event)
    if event.block_number < 0:
        raise _fail("blockNumber must be non-negative", "blockNumber", event)
    if event.token_id < 0:
        raise _fail("tokenId must be non-negative", "tokenId", event)
    if not is_numeric_string(event.gas_used):
        raise _fail("gasUsed must be a numeric string", "gasUsed", event)
    if event.gas_price is not None and not is_numeric_string(event.gas_price):
        raise _fail("gasPrice must be a numeric string", "gasPrice", event)
    if event.confirmation_increment is not None and event.confirmation_increment < 0:
        raise _fail("confirmationIncrement must be non-negative", "confirmationIncrement", event)

    _check_non_negative(event.platform_fee, "platformFee", event)
    _check_non_negative(event.royalty_fee, "royaltyFee", event)

    rule = KIND_RULES[event.kind]
    if rule.price_required and event.price is None:
        raise _fail(f"price is required for {event.kind.value}", "price", event)
    _check_non_negative(event.price, "price", event)

    for party in rule.required_parties:
        value = getattr(event, party)
        if value is None or not value.strip():
            raise _fail(f"{party} is required for {event.kind.value}", party, event)

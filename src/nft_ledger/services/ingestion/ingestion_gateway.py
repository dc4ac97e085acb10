# -*- coding: utf-8 -*-
"""Ingestion gateway: validates chain-watcher events and drives them into the Record Store.

Delivery from the watcher is at-least-once, so ingest() must be idempotent:
re-delivering an already stored event never creates a second record and is
not an error. Each delivery's confirmation_increment is applied, so
increments split across deliveries accumulate.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog

from nft_ledger.events.ledger_events import TransactionConfirmedEvent, TransactionFailedEvent
from nft_ledger.models.transaction_record import TransactionRecord
from nft_ledger.services.confirmation.state_machine import TransitionOutcome, TransitionResult
from nft_ledger.services.ingestion.event_dto import ChainWatcherEvent
from nft_ledger.services.ingestion.validation import validate_event
from nft_ledger.utils.validation import mask_address, normalize_hex

if TYPE_CHECKING:
    from bubus import EventBus  # type: ignore[import-untyped]

    from nft_ledger.config import Settings
    from nft_ledger.persistence.repositories.interfaces.transaction_repository import (
        ITransactionRepository,
    )


@dataclass(frozen=True, slots=True)
class IngestResult:
    """Outcome of one ingest() call."""

    record: TransactionRecord
    """Stored record after this delivery was applied."""
    created: bool
    """True if this delivery created the record."""
    outcome: Optional[TransitionOutcome] = None
    """What the delivery's confirmation/failure signal did; None if it carried none."""

    @property
    def duplicate(self) -> bool:
        """Re-delivery of a known hash that changed nothing."""
        return not self.created and self.outcome in (None, TransitionOutcome.REJECTED)


class IngestionGateway:
    """Accepts chain-watcher events and administrative signals for the ledger."""

    def __init__(
        self,
        repository: ITransactionRepository,
        settings: Settings,
        *,
        event_bus: Optional[Any] = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            repository: Record Store (injected).
            settings: Ledger settings (default currency, address normalization).
            event_bus: Optional; if set, confirmed/failed transitions are published.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._repo = repository
        self._settings = settings
        self._event_bus: Optional["EventBus"] = event_bus
        self._logger = get_logger(logger_name or self.__class__.__name__)

    def normalize_hash(self, transaction_hash: str) -> str:
        """Canonical form of a hash as stored by this gateway."""
        if self._settings.ledger.normalize_addresses:
            return normalize_hex(transaction_hash) or ""
        return transaction_hash.strip()

    def _normalize_party(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if self._settings.ledger.normalize_addresses:
            return normalize_hex(value)
        return value.strip() or None

    def _build_record(self, event: ChainWatcherEvent) -> TransactionRecord:
        return TransactionRecord.create(
            transaction_hash=self.normalize_hash(event.transaction_hash),
            block_number=event.block_number,
            token_id=event.token_id,
            contract_address=self._normalize_party(event.contract_address) or "",
            kind=event.kind,
            gas_used=event.gas_used.strip(),
            currency=event.currency or self._settings.ledger.default_currency,
            price=event.price,
            buyer=self._normalize_party(event.buyer),
            seller=self._normalize_party(event.seller),
            creator=self._normalize_party(event.creator),
            gas_price=event.gas_price.strip() if event.gas_price else None,
            platform_fee=event.platform_fee if event.platform_fee is not None else Decimal("0"),
            royalty_fee=event.royalty_fee if event.royalty_fee is not None else Decimal("0"),
            metadata=event.metadata,
        )

    async def ingest(self, event: ChainWatcherEvent) -> IngestResult:
        """Validate, store (first sighting) and apply the delivery's signal.

        Returns:
            IngestResult with the stored record. Signals aimed at a terminal
            record come back with outcome REJECTED instead of raising.

        Raises:
            InvalidEventError: If the event breaks a validation rule (nothing is stored).
            DuplicateKeyError: If the hash is known with a different kind, token_id or contract.
            UnavailableError: On storage failure; safe to redeliver.
        """
        validate_event(event)
        candidate = self._build_record(event)
        tx_hash = candidate.transaction_hash

        upsert = await self._repo.upsert(candidate)
        if upsert.created:
            self._logger.info(
                "transaction_recorded",
                transaction_hash=mask_address(tx_hash),
                kind=candidate.kind.value,
                token_id=candidate.token_id,
                block_number=candidate.block_number,
            )

        transition: Optional[TransitionResult] = None
        if event.failed:
            if event.confirmation_increment:
                self._logger.debug(
                    "transaction_increment_ignored_on_failure",
                    transaction_hash=mask_address(tx_hash),
                    confirmation_increment=event.confirmation_increment,
                )
            transition = await self._repo.mark_failed(tx_hash)
        elif event.confirmation_increment:
            transition = await self._repo.apply_confirmation_delta(
                tx_hash, event.confirmation_increment
            )

        if transition is None:
            if not upsert.created:
                self._logger.debug(
                    "transaction_redelivered",
                    transaction_hash=mask_address(tx_hash),
                )
            return IngestResult(record=upsert.record, created=upsert.created)

        self._after_transition(transition)
        return IngestResult(
            record=transition.record,
            created=upsert.created,
            outcome=transition.outcome,
        )

    async def ingest_payload(self, payload: dict[str, Any]) -> IngestResult:
        """Parse a camelCase wire payload and ingest it."""
        return await self.ingest(ChainWatcherEvent.from_payload(payload))

    async def mark_failed(self, transaction_hash: str) -> TransitionResult:
        """Administrative: PENDING -> FAILED.

        Raises:
            NotFoundError: If the hash is unknown.
        """
        result = await self._repo.mark_failed(self.normalize_hash(transaction_hash))
        self._after_transition(result, admin=True)
        return result

    async def force_confirm(self, transaction_hash: str) -> TransitionResult:
        """Administrative: PENDING -> CONFIRMED regardless of confirmations.

        Raises:
            NotFoundError: If the hash is unknown.
        """
        result = await self._repo.force_confirm(self.normalize_hash(transaction_hash))
        self._after_transition(result, admin=True, forced=True)
        return result

    def _after_transition(
        self,
        result: TransitionResult,
        *,
        admin: bool = False,
        forced: bool = False,
    ) -> None:
        record = result.record
        masked = mask_address(record.transaction_hash)
        if result.outcome == TransitionOutcome.REJECTED:
            self._logger.warning(
                "transaction_transition_rejected",
                transaction_hash=masked,
                status=record.status.value,
                admin=admin,
            )
            return
        if result.outcome == TransitionOutcome.INCREMENTED:
            self._logger.debug(
                "transaction_confirmations_incremented",
                transaction_hash=masked,
                confirmations=record.confirmations,
            )
            return
        self._logger.info(
            "transaction_status_changed",
            transaction_hash=masked,
            previous_status=result.previous_status.value,
            status=record.status.value,
            confirmations=record.confirmations,
            admin=admin,
        )
        self._emit(result, forced=forced)

    def _emit(self, result: TransitionResult, *, forced: bool) -> None:
        if self._event_bus is None:
            return
        record = result.record
        if result.outcome == TransitionOutcome.CONFIRMED and record.confirmed_at is not None:
            self._event_bus.dispatch(
                TransactionConfirmedEvent(
                    transaction_hash=record.transaction_hash,
                    token_id=record.token_id,
                    kind=record.kind.value,
                    confirmations=record.confirmations,
                    confirmed_at=record.confirmed_at,
                    forced=forced,
                )
            )
        elif result.outcome == TransitionOutcome.FAILED and record.failed_at is not None:
            self._event_bus.dispatch(
                TransactionFailedEvent(
                    transaction_hash=record.transaction_hash,
                    token_id=record.token_id,
                    kind=record.kind.value,
                    failed_at=record.failed_at,
                )
            )

# -*- coding: utf-8 -*-
"""Query & aggregation engine: read-only views over the Record Store."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog
from cachetools import TTLCache

from nft_ledger.events.ledger_events import TransactionConfirmedEvent
from nft_ledger.models.marketplace_stats import MarketplaceStats
from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from nft_ledger.utils.validation import mask_address, normalize_hex

if TYPE_CHECKING:
    from nft_ledger.config import Settings
    from nft_ledger.persistence.repositories.interfaces.transaction_repository import (
        ITransactionRepository,
    )

_STATS_KEY = "stats"


def compute_stats(records: Iterable[TransactionRecord], *, now: datetime | None = None) -> MarketplaceStats:
    """Aggregate confirmed purchases in Decimal. Records of other kinds/statuses are skipped."""
    count = 0
    volume = Decimal("0")
    fees = Decimal("0")
    for r in records:
        if r.kind != TransactionKind.PURCHASE or r.status != TransactionStatus.CONFIRMED:
            continue
        count += 1
        volume += r.price if r.price is not None else Decimal("0")
        fees += r.total_fees
    average = volume / count if count else Decimal("0")
    return MarketplaceStats(
        total_sales=count,
        total_volume=volume,
        average_price=average,
        total_fees=fees,
        computed_at=now or datetime.now(UTC),
    )


class QueryEngine:
    """Answers point, listing and marketplace-wide queries. Never mutates records.

    The stats snapshot may be cached for QUERY__STATS_CACHE_TTL_SECONDS;
    point lookups always go to the store (read-your-writes). After start(), a
    confirmed purchase on the event bus drops the cached snapshot.
    """

    def __init__(
        self,
        repository: ITransactionRepository,
        settings: Settings,
        *,
        event_bus: Optional[Any] = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: Optional[str] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            repository: Record Store (injected).
            settings: Query and ledger settings.
            event_bus: Optional; confirmations received here invalidate cached stats.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._repo = repository
        self._settings = settings
        self._event_bus = event_bus
        self._logger = get_logger(logger_name or self.__class__.__name__)
        ttl = settings.query.stats_cache_ttl_seconds
        self._stats_cache: Optional[TTLCache[str, MarketplaceStats]] = (
            TTLCache(maxsize=1, ttl=ttl) if ttl > 0 else None
        )

    def _normalize(self, value: str) -> str:
        if self._settings.ledger.normalize_addresses:
            return normalize_hex(value) or ""
        return value.strip()

    async def get_transaction(self, transaction_hash: str) -> TransactionRecord:
        """Fetch one record.

        Raises:
            NotFoundError: If the hash is unknown.
        """
        return await self._repo.get_by_hash(self._normalize(transaction_hash))

    async def user_activity(self, address: str) -> list[TransactionRecord]:
        """Every record where address is buyer, seller or creator, newest first."""
        records = await self._repo.list_by_party(self._normalize(address))
        self._logger.debug(
            "user_activity_loaded",
            address=mask_address(address),
            count=len(records),
        )
        return records

    async def token_activity(
        self,
        token_id: int,
        kind: TransactionKind | None = None,
    ) -> list[TransactionRecord]:
        """Records for a token, optionally one kind, newest first."""
        return await self._repo.list_by_token(token_id, kind)

    async def purchase_history(self, token_id: int) -> list[TransactionRecord]:
        """Confirmed purchases of a token, newest first."""
        records = await self._repo.list_by_token(token_id, TransactionKind.PURCHASE)
        return [r for r in records if r.status == TransactionStatus.CONFIRMED]

    async def stats_snapshot(self) -> MarketplaceStats:
        """Sales count, volume, average price and fees over confirmed purchases.

        Built from one list_by_kind_status read, so every record contributes a
        state that was committed as a whole.
        """
        if self._stats_cache is not None:
            cached = self._stats_cache.get(_STATS_KEY)
            if cached is not None:
                return cached

        records = await self._repo.list_by_kind_status(
            TransactionKind.PURCHASE, TransactionStatus.CONFIRMED
        )
        stats = compute_stats(records)
        self._logger.debug(
            "stats_snapshot_computed",
            total_sales=stats.total_sales,
            total_volume=str(stats.total_volume),
        )
        if self._stats_cache is not None:
            self._stats_cache[_STATS_KEY] = stats
        return stats

    def invalidate_stats(self) -> None:
        """Drop the cached stats snapshot (if caching is enabled)."""
        if self._stats_cache is not None:
            self._stats_cache.clear()

    def start(self) -> None:
        """Subscribe to TransactionConfirmedEvent (no-op without an event bus)."""
        if self._event_bus is None:
            return
        self._event_bus.on(TransactionConfirmedEvent, self._on_confirmed)
        self._logger.debug("query_engine_started")

    def stop(self) -> None:
        """Unsubscribe from TransactionConfirmedEvent."""
        if self._event_bus is None:
            return
        key = TransactionConfirmedEvent.__name__
        handlers = getattr(self._event_bus, "handlers", {})
        if key in handlers:
            handlers[key] = [h for h in handlers[key] if h != self._on_confirmed]
        self._logger.debug("query_engine_stopped")

    def _on_confirmed(self, event: TransactionConfirmedEvent) -> None:
        # Only confirmed purchases feed the snapshot.
        if event.kind != TransactionKind.PURCHASE.value:
            return
        self.invalidate_stats()
        self._logger.debug(
            "stats_cache_invalidated",
            transaction_hash=mask_address(event.transaction_hash),
        )

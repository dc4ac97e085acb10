# -*- coding: utf-8 -*-
"""Consumer that reads chain-watcher deliveries from the queue and ingests them.

Uses _running (instance) for start/stop state only. queue.get() blocks until a
message arrives or queue.shutdown() is called, so stopping goes through
queue.shutdown() (QueueShutdown) or task cancel (CancelledError).
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any, Callable, Optional, Type, Union

import structlog

from nft_ledger.events.ledger_events import ChainEventRejectedEvent
from nft_ledger.exceptions import LedgerError, QueueShutdown, UnavailableError
from nft_ledger.queue import IAsyncQueue, QueueMessage
from nft_ledger.services.ingestion import ChainWatcherEvent, IngestionGateway, IngestResult
from nft_ledger.utils.validation import mask_address

ChainEventPayload = Union[ChainWatcherEvent, dict[str, Any]]
"""A parsed event or a raw camelCase wire payload."""


class ChainEventConsumer:
    """Consumes chain events from the queue and delegates to IngestionGateway.

    Ingestion errors are logged and published as ChainEventRejectedEvent; the
    loop keeps running. Storage failures are flagged retryable. Any other
    exception is logged with its traceback and the message is dropped.
    """

    def __init__(
        self,
        queue: IAsyncQueue[QueueMessage[ChainEventPayload]],
        gateway: IngestionGateway,
        *,
        event_bus: Optional[Any] = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: Optional[str] = None,
    ) -> None:
        """Initialize the consumer.

        Args:
            queue: Async queue of chain-event messages.
            gateway: Ingestion gateway that applies each event.
            event_bus: Optional; rejected events are published here.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._queue = queue
        self._gateway = gateway
        self._event_bus = event_bus
        self._logger = get_logger(logger_name or self.__class__.__name__)
        self._running = False
        self._lock = asyncio.Lock()
        self._worker_task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._running

    async def __aenter__(self) -> ChainEventConsumer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> bool:
        await self.stop()
        return False

    async def start(self) -> None:
        """Start the consumer in a background task. Idempotent."""
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._worker_task = asyncio.create_task(self._consume_loop())

    async def stop(self) -> None:
        """Stop the consumer: cancel the task and wait for it to finish. Idempotent."""
        async with self._lock:
            if not self._running:
                return
            self._running = False
            task = self._worker_task
            self._worker_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def consume(self) -> None:
        """Run the loop in the current task until the queue is shut down."""
        await self._consume_loop()

    async def process(self, message: QueueMessage[ChainEventPayload]) -> Optional[IngestResult]:
        """Ingest one message. Returns None when the event was rejected."""
        payload = message.payload
        try:
            if isinstance(payload, ChainWatcherEvent):
                return await self._gateway.ingest(payload)
            return await self._gateway.ingest_payload(payload)
        except LedgerError as e:
            self._reject(message, e)
            return None

    def _reject(self, message: QueueMessage[ChainEventPayload], error: LedgerError) -> None:
        retryable = isinstance(error, UnavailableError)
        tx_hash = error.transaction_hash or _payload_hash(message.payload)
        log = self._logger.warning if retryable else self._logger.info
        log(
            "chain_event_rejected",
            message_id=str(message.id),
            error_code=error.code,
            error=error.message,
            transaction_hash=mask_address(tx_hash) if tx_hash else None,
            retryable=retryable,
        )
        if self._event_bus is not None:
            self._event_bus.dispatch(
                ChainEventRejectedEvent(
                    error_code=error.code,
                    message=error.message,
                    transaction_hash=tx_hash,
                    retryable=retryable,
                )
            )

    async def _consume_loop(self) -> None:
        """Inner loop: get message, process, task_done. Exits on QueueShutdown or cancel."""
        self._logger.debug("chain_event_consumer_started")
        try:
            while True:
                message = await self._queue.get()
                try:
                    await self.process(message)
                except Exception:
                    self._logger.exception(
                        "chain_event_processing_failed",
                        message_id=str(message.id),
                        transaction_hash=_masked_hash(message.payload),
                    )
                finally:
                    self._queue.task_done()
        except QueueShutdown:
            self._logger.info(
                "chain_event_consumer_stopped",
                reason="queue_shutdown",
            )
        except asyncio.CancelledError:
            self._logger.debug("chain_event_consumer_cancelled")
            raise
        finally:
            async with self._lock:
                self._running = False
                self._worker_task = None


def _payload_hash(payload: ChainEventPayload) -> Optional[str]:
    if isinstance(payload, ChainWatcherEvent):
        return payload.transaction_hash or None
    value = payload.get("transactionHash") if isinstance(payload, dict) else None
    return value if isinstance(value, str) and value else None


def _masked_hash(payload: ChainEventPayload) -> Optional[str]:
    tx_hash = _payload_hash(payload)
    return mask_address(tx_hash) if tx_hash else None

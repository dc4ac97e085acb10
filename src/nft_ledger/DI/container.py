# -*- coding: utf-8 -*-
"""Dependency injection container (dependency-injector)."""

from __future__ import annotations

from dependency_injector import containers, providers

from nft_ledger.api import create_app
from nft_ledger.config import Settings, get_settings
from nft_ledger.consumers.chain_event_consumer import ChainEventConsumer, ChainEventPayload
from nft_ledger.events.bus import get_event_bus
from nft_ledger.persistence.repositories import (
    InMemoryTransactionRepository,
    ITransactionRepository,
    SqliteTransactionRepository,
)
from nft_ledger.queue import InMemoryQueue, QueueMessage
from nft_ledger.services.confirmation import ConfirmationStateMachine
from nft_ledger.services.ingestion import IngestionGateway
from nft_ledger.services.query import QueryEngine


def _build_state_machine(settings: Settings) -> ConfirmationStateMachine:
    return ConfirmationStateMachine(threshold=settings.ledger.confirmation_threshold)


def _build_repository(
    settings: Settings,
    state_machine: ConfirmationStateMachine,
) -> ITransactionRepository:
    """Build the Record Store selected by LEDGER__STORAGE_BACKEND."""
    ledger = settings.ledger
    if ledger.storage_backend == "sqlite":
        return SqliteTransactionRepository(
            ledger.sqlite_path,
            state_machine,
            timeout_seconds=ledger.sqlite_timeout_seconds,
        )
    return InMemoryTransactionRepository(state_machine)


def _build_event_queue(settings: Settings) -> InMemoryQueue[QueueMessage[ChainEventPayload]]:
    """Build the ingestion queue with size from settings."""
    return InMemoryQueue[QueueMessage[ChainEventPayload]](maxsize=settings.ingestion.queue_size)


class Container(containers.DeclarativeContainer):
    """Application container. Wires settings, store, services, queue, consumer and web app."""

    config = providers.Callable(get_settings)

    event_bus = providers.Callable(get_event_bus)

    state_machine = providers.Singleton(_build_state_machine, config)

    transaction_repository = providers.Singleton(_build_repository, config, state_machine)

    ingestion_gateway = providers.Singleton(
        IngestionGateway,
        repository=transaction_repository,
        settings=config,
        event_bus=event_bus,
    )

    query_engine = providers.Singleton(
        QueryEngine,
        repository=transaction_repository,
        settings=config,
        event_bus=event_bus,
    )

    event_queue = providers.Singleton(_build_event_queue, config)

    chain_event_consumer = providers.Singleton(
        ChainEventConsumer,
        queue=event_queue,
        gateway=ingestion_gateway,
        event_bus=event_bus,
    )

    web_app = providers.Singleton(
        create_app,
        gateway=ingestion_gateway,
        query_engine=query_engine,
        event_queue=event_queue,
    )

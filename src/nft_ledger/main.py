# -*- coding: utf-8 -*-
"""
Entry point for the NFT transaction ledger service.

Orchestrates: logging, settings, container, chain-event consumer, HTTP API,
shutdown (SIGINT or CancelledError).
Events flow: POST /events -> IngestionGateway, or POST /events/batch -> queue
-> ChainEventConsumer -> IngestionGateway -> Record Store.

Run with: python -m nft_ledger.main

Notebook usage:
    from nft_ledger.main import run
    await run()  # Interrupt kernel to stop; system will shut down on CancelledError.
"""
from __future__ import annotations

import asyncio
import signal
from typing import Any, Optional

import structlog
from aiohttp import web

from nft_ledger.config import Settings, get_settings
from nft_ledger.DI import Container
from nft_ledger.exceptions import MissingRequiredConfigError
from nft_ledger.logging.config import configure_logging


def _setup_sigint(shutdown_event: asyncio.Event) -> None:
    try:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(
            signal.SIGINT,
            lambda: shutdown_event.set(),
        )
    except NotImplementedError:
        pass  # Windows has no add_signal_handler


def _check_settings(settings: Settings, logger: Any) -> None:
    ledger = settings.ledger
    if ledger.storage_backend == "sqlite" and not ledger.sqlite_path.strip():
        logger.error(
            "main_missing_sqlite_path",
            message="LEDGER__SQLITE_PATH is not set",
        )
        raise MissingRequiredConfigError("LEDGER__SQLITE_PATH")


async def _start_api(app: web.Application, settings: Settings, logger: Any) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.api.host, settings.api.port)
    await site.start()
    logger.info("main_api_started", host=settings.api.host, port=settings.api.port)
    return runner


async def run() -> None:
    configure_logging()
    logger = structlog.get_logger("main")
    settings = get_settings()
    _check_settings(settings, logger)

    container = Container()
    repository = container.transaction_repository()
    consumer = container.chain_event_consumer()
    query_engine = container.query_engine()
    event_queue = container.event_queue()
    shutdown_event = asyncio.Event()
    _setup_sigint(shutdown_event)

    logger.info(
        "main_ledger_started",
        storage_backend=settings.ledger.storage_backend,
        confirmation_threshold=settings.ledger.confirmation_threshold,
        api_enabled=settings.api.enabled,
    )

    runner: Optional[web.AppRunner] = None
    query_engine.start()
    await consumer.start()
    try:
        if settings.api.enabled:
            runner = await _start_api(container.web_app(), settings, logger)
        await shutdown_event.wait()
    finally:
        if runner is not None:
            await runner.cleanup()
        event_queue.shutdown()
        await event_queue.join()
        await consumer.stop()
        query_engine.stop()
        await repository.close()
        logger.info("main_shutdown_complete")


def main() -> None:
    asyncio.run(run())


__all__ = ["run", "main"]

if __name__ == "__main__":
    main()

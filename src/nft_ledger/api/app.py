# -*- coding: utf-8 -*-
"""aiohttp application factory and error middleware.

Ledger errors become JSON envelopes: {"success": false, "error": <code>, "message": ...}.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

import structlog
from aiohttp import web

from nft_ledger.api.keys import EVENT_QUEUE_KEY, GATEWAY_KEY, QUERY_ENGINE_KEY
from nft_ledger.api.routes import build_routes, error_response
from nft_ledger.consumers.chain_event_consumer import ChainEventPayload
from nft_ledger.exceptions import LedgerError
from nft_ledger.queue import IAsyncQueue, QueueMessage
from nft_ledger.services.ingestion import IngestionGateway
from nft_ledger.services.query import QueryEngine

_STATUS_BY_CODE: dict[str, int] = {
    "invalid_event": 400,
    "not_found": 404,
    "duplicate_key": 409,
    "unavailable": 503,
}

_logger = structlog.get_logger("api")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Map LedgerError subclasses to HTTP status codes."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except LedgerError as e:
        status = _STATUS_BY_CODE.get(e.code, 500)
        _logger.info(
            "api_request_failed",
            method=request.method,
            path=request.path,
            status=status,
            error_code=e.code,
        )
        return web.json_response({"success": False, **e.to_dict()}, status=status)
    except Exception:
        _logger.exception(
            "api_unhandled_error",
            method=request.method,
            path=request.path,
        )
        return error_response(500, "internal_error", "Internal server error")


def create_app(
    gateway: IngestionGateway,
    query_engine: QueryEngine,
    *,
    event_queue: Optional[IAsyncQueue[QueueMessage[ChainEventPayload]]] = None,
) -> web.Application:
    """Build the web application.

    Args:
        gateway: Ingestion gateway (POST /events, admin endpoints).
        query_engine: Read side (GET endpoints).
        event_queue: Optional; enables POST /events/batch (queued ingestion).
    """
    app = web.Application(middlewares=[error_middleware])
    app[GATEWAY_KEY] = gateway
    app[QUERY_ENGINE_KEY] = query_engine
    if event_queue is not None:
        app[EVENT_QUEUE_KEY] = event_queue
    app.add_routes(build_routes(with_queue=event_queue is not None))
    return app

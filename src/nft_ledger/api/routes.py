# -*- coding: utf-8 -*-
"""HTTP handlers. Responses use {"success": true, "data": ...} envelopes."""

from __future__ import annotations

import json
from typing import Any

import structlog
from aiohttp import web

from nft_ledger.api.keys import EVENT_QUEUE_KEY, GATEWAY_KEY, QUERY_ENGINE_KEY
from nft_ledger.exceptions import InvalidEventError, QueueFull, QueueShutdown
from nft_ledger.models.transaction_record import TransactionKind, TransactionRecord
from nft_ledger.queue import QueueMessage
from nft_ledger.services.confirmation.state_machine import TransitionOutcome, TransitionResult

_logger = structlog.get_logger("api")


def _ok(data: Any, *, status: int = 200) -> web.Response:
    return web.json_response({"success": True, "data": data}, status=status)


def error_response(status: int, code: str, message: str, **extra: Any) -> web.Response:
    body: dict[str, Any] = {"success": False, "error": code, "message": message}
    body.update(extra)
    return web.json_response(body, status=status)


def _records(records: list[TransactionRecord]) -> dict[str, Any]:
    return {"count": len(records), "transactions": [r.to_dict() for r in records]}


def _token_id(request: web.Request) -> int:
    raw = request.match_info["token_id"]
    try:
        value = int(raw)
    except ValueError:
        raise InvalidEventError(f"tokenId must be an integer, got {raw!r}", field="tokenId") from None
    if value < 0:
        raise InvalidEventError("tokenId must be >= 0", field="tokenId")
    return value


async def _json_body(request: web.Request) -> Any:
    try:
        return await request.json()
    except json.JSONDecodeError as e:
        raise InvalidEventError(f"request body is not valid JSON: {e.msg}") from e


def _transition_response(result: TransitionResult) -> web.Response:
    if result.outcome == TransitionOutcome.REJECTED:
        return error_response(
            409,
            "transition_rejected",
            f"Transaction is already {result.record.status.value}",
            transaction_hash=result.record.transaction_hash,
        )
    return _ok({"outcome": result.outcome.value, "transaction": result.record.to_dict()})


async def health(_: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def get_transaction(request: web.Request) -> web.Response:
    engine = request.app[QUERY_ENGINE_KEY]
    record = await engine.get_transaction(request.match_info["tx_hash"])
    return _ok(record.to_dict())


async def user_transactions(request: web.Request) -> web.Response:
    engine = request.app[QUERY_ENGINE_KEY]
    records = await engine.user_activity(request.match_info["address"])
    return _ok(_records(records))


async def token_transactions(request: web.Request) -> web.Response:
    engine = request.app[QUERY_ENGINE_KEY]
    kind_param = request.query.get("kind")
    kind = None
    if kind_param:
        try:
            kind = TransactionKind.parse(kind_param)
        except ValueError as e:
            raise InvalidEventError(str(e), field="kind") from e
    records = await engine.token_activity(_token_id(request), kind)
    return _ok(_records(records))


async def token_purchases(request: web.Request) -> web.Response:
    engine = request.app[QUERY_ENGINE_KEY]
    records = await engine.purchase_history(_token_id(request))
    return _ok(_records(records))


async def stats(request: web.Request) -> web.Response:
    engine = request.app[QUERY_ENGINE_KEY]
    snapshot = await engine.stats_snapshot()
    return _ok(snapshot.to_dict())


async def post_event(request: web.Request) -> web.Response:
    """Ingest one chain-watcher event synchronously. 201 on first sighting, else 200."""
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        raise InvalidEventError("event payload must be a JSON object")
    result = await request.app[GATEWAY_KEY].ingest_payload(payload)
    data = {
        "created": result.created,
        "duplicate": result.duplicate,
        "outcome": result.outcome.value if result.outcome else None,
        "transaction": result.record.to_dict(),
    }
    return _ok(data, status=201 if result.created else 200)


async def post_event_batch(request: web.Request) -> web.Response:
    """Queue a list of events for the background consumer. 202 when accepted."""
    payload = await _json_body(request)
    if not isinstance(payload, list) or not all(isinstance(p, dict) for p in payload):
        raise InvalidEventError("batch payload must be a JSON array of objects")
    queue = request.app[EVENT_QUEUE_KEY]
    queued = 0
    try:
        for item in payload:
            queue.put_nowait(QueueMessage.create(item, metadata={"source": "http_batch"}))
            queued += 1
    except (QueueFull, QueueShutdown) as e:
        _logger.warning(
            "api_event_batch_partially_queued",
            queued=queued,
            total=len(payload),
            reason=type(e).__name__,
        )
        return error_response(
            503,
            "unavailable",
            "Ingestion queue cannot accept more events",
            queued=queued,
        )
    return _ok({"queued": queued}, status=202)


async def admin_fail(request: web.Request) -> web.Response:
    result = await request.app[GATEWAY_KEY].mark_failed(request.match_info["tx_hash"])
    return _transition_response(result)


async def admin_confirm(request: web.Request) -> web.Response:
    result = await request.app[GATEWAY_KEY].force_confirm(request.match_info["tx_hash"])
    return _transition_response(result)


def build_routes(*, with_queue: bool) -> list[web.RouteDef]:
    route_defs = [
        web.get("/health", health),
        web.get("/stats", stats),
        web.get("/transactions/{tx_hash}", get_transaction),
        web.get("/users/{address}/transactions", user_transactions),
        web.get("/tokens/{token_id}/transactions", token_transactions),
        web.get("/tokens/{token_id}/purchases", token_purchases),
        web.post("/events", post_event),
        web.post("/admin/transactions/{tx_hash}/fail", admin_fail),
        web.post("/admin/transactions/{tx_hash}/confirm", admin_confirm),
    ]
    if with_queue:
        route_defs.append(web.post("/events/batch", post_event_batch))
    return route_defs

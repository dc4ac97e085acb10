"""Typed application keys for services shared by the handlers."""

from __future__ import annotations

from aiohttp import web

from nft_ledger.queue import IAsyncQueue
from nft_ledger.services.ingestion import IngestionGateway
from nft_ledger.services.query import QueryEngine

GATEWAY_KEY = web.AppKey("gateway", IngestionGateway)
QUERY_ENGINE_KEY = web.AppKey("query_engine", QueryEngine)
EVENT_QUEUE_KEY = web.AppKey("event_queue", IAsyncQueue)

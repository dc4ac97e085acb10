"""Read-only HTTP API plus event intake and admin endpoints (aiohttp.web)."""

from nft_ledger.api.app import create_app, error_middleware
from nft_ledger.api.keys import EVENT_QUEUE_KEY, GATEWAY_KEY, QUERY_ENGINE_KEY

__all__ = [
    "EVENT_QUEUE_KEY",
    "GATEWAY_KEY",
    "QUERY_ENGINE_KEY",
    "create_app",
    "error_middleware",
]

# -*- coding: utf-8 -*-
"""Async ingestion queue: watcher deliveries waiting to be applied to the ledger."""

from nft_ledger.queue.base import IAsyncQueue
from nft_ledger.queue.in_memory_queue import InMemoryQueue
from nft_ledger.queue.messages import QueueMessage

__all__ = [
    "IAsyncQueue",
    "InMemoryQueue",
    "QueueMessage",
]

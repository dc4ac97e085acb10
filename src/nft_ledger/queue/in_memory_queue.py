# -*- coding: utf-8 -*-
"""In-memory async queue implementation."""

from __future__ import annotations

import asyncio

from nft_ledger.exceptions import QueueFull, QueueShutdown
from nft_ledger.queue.base import IAsyncQueue


class InMemoryQueue[T](IAsyncQueue[T]):
    """IAsyncQueue backed by asyncio.Queue; asyncio errors are mapped to queue exceptions."""

    def __init__(self, maxsize: int = 0) -> None:
        """Initialize the queue.

        Args:
            maxsize: Maximum number of items. 0 means unbounded.
        """
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)

    def __len__(self) -> int:
        return self._queue.qsize()

    async def put(self, item: T) -> None:
        try:
            await self._queue.put(item)
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e

    def put_nowait(self, item: T) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e
        except asyncio.QueueFull as e:
            raise QueueFull from e

    async def get(self) -> T:
        try:
            return await self._queue.get()
        except asyncio.QueueShutDown as e:
            raise QueueShutdown from e

    def task_done(self) -> None:
        self._queue.task_done()

    def qsize(self) -> int:
        return self._queue.qsize()

    def shutdown(self, immediate: bool = False) -> None:
        self._queue.shutdown(immediate)

    async def join(self) -> None:
        await self._queue.join()

# -*- coding: utf-8 -*-
"""Async queue interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IAsyncQueue[T](ABC):
    """Abstract async queue between the event intake (HTTP/watcher) and the consumer.

    Implementations provide blocking and non-blocking put, blocking get,
    task_done/join semantics and shutdown. Use QueueFull / QueueShutdown from
    nft_ledger.exceptions where specified.
    """

    @abstractmethod
    async def put(self, item: T) -> None:
        """Put item into the queue. Blocks if full until space is available.

        Raises:
            QueueShutdown: If the queue has been shut down.
        """
        ...

    @abstractmethod
    def put_nowait(self, item: T) -> None:
        """Put item into the queue without blocking.

        Raises:
            QueueFull: If the queue has reached its maximum size.
            QueueShutdown: If the queue has been shut down.
        """
        ...

    @abstractmethod
    async def get(self) -> T:
        """Remove and return an item. Blocks until an item is available.

        Raises:
            QueueShutdown: If the queue has been shut down and is empty. Signals
                consumers to exit gracefully.
        """
        ...

    @abstractmethod
    def task_done(self) -> None:
        """Mark the last item retrieved by get() as processed."""
        ...

    @abstractmethod
    def shutdown(self, immediate: bool = False) -> None:
        """Shutdown the queue so no more items can be put and consumers can exit.

        Args:
            immediate: If True, drop queued items. If False, existing items may
                still be consumed until the queue is empty.
        """
        ...

    @abstractmethod
    async def join(self) -> None:
        """Wait until every item gotten from the queue has been marked with task_done()."""
        ...

    @abstractmethod
    def qsize(self) -> int:
        """Return the approximate number of items in the queue."""
        ...

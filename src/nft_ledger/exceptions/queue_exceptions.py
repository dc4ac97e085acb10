"""Errors raised by the ingestion queue."""

from __future__ import annotations


class QueueError(Exception):
    """Base class for ingestion queue errors."""


class QueueFull(QueueError):
    """A non-blocking put hit maxsize."""


class QueueShutdown(QueueError):
    """The queue was shut down; producers must stop and consumers exit."""

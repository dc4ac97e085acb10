"""Exceptions subpackage."""

from nft_ledger.exceptions.exceptions import (
    DuplicateKeyError,
    InvalidEventError,
    LedgerError,
    MissingRequiredConfigError,
    NotFoundError,
    UnavailableError,
)
from nft_ledger.exceptions.queue_exceptions import (
    QueueError,
    QueueFull,
    QueueShutdown,
)

__all__ = [
    "DuplicateKeyError",
    "InvalidEventError",
    "LedgerError",
    "MissingRequiredConfigError",
    "NotFoundError",
    "UnavailableError",
    "QueueError",
    "QueueFull",
    "QueueShutdown",
]

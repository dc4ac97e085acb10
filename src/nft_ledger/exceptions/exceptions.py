"""Ledger exceptions: the four error kinds surfaced to callers, plus config errors."""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base exception for transaction ledger errors.

    `code` is a stable machine-readable kind (used by the HTTP layer and logs).
    """

    code: str = "ledger_error"

    def __init__(
        self,
        message: str,
        *,
        transaction_hash: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.transaction_hash = transaction_hash
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Serializable error body."""
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.transaction_hash:
            body["transaction_hash"] = self.transaction_hash
        return body


class MissingRequiredConfigError(LedgerError):
    """Raised when a required configuration value is missing."""

    code = "missing_config"


class InvalidEventError(LedgerError):
    """Raised when an event is malformed or misses fields required for its kind. Never persisted."""

    code = "invalid_event"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        transaction_hash: str | None = None,
    ) -> None:
        super().__init__(message, transaction_hash=transaction_hash)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class DuplicateKeyError(LedgerError):
    """Raised when a known hash is re-ingested with different immutable fields."""

    code = "duplicate_key"

    def __init__(
        self,
        message: str,
        *,
        transaction_hash: str,
        mismatched_fields: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message, transaction_hash=transaction_hash)
        self.mismatched_fields = mismatched_fields

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["mismatched_fields"] = list(self.mismatched_fields)
        return body


class NotFoundError(LedgerError):
    """Raised when a hash is unknown to the store."""

    code = "not_found"

    def __init__(self, transaction_hash: str) -> None:
        super().__init__(
            f"Transaction {transaction_hash!r} not found",
            transaction_hash=transaction_hash,
        )


class UnavailableError(LedgerError):
    """Raised on transient storage failures. Safe for the caller to retry."""

    code = "unavailable"

# -*- coding: utf-8 -*-
"""SQLite transaction repository: durable single-file Record Store.

Every mutation is one BEGIN IMMEDIATE transaction (read row, apply the state
machine, write row, COMMIT) so the database write lock serializes per-hash
read-modify-write across connections and processes; a process lock guards the
shared connection. Blocking sqlite3 calls run in worker threads via
asyncio.to_thread. sqlite3 errors surface as UnavailableError.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, TypeVar

import structlog

from nft_ledger.exceptions import DuplicateKeyError, NotFoundError, UnavailableError
from nft_ledger.models.transaction_record import (
    TransactionKind,
    TransactionMetadata,
    TransactionRecord,
    TransactionStatus,
)
from nft_ledger.persistence.repositories.interfaces.transaction_repository import (
    ITransactionRepository,
    UpsertResult,
)
from nft_ledger.services.confirmation.state_machine import (
    ConfirmationStateMachine,
    TransitionResult,
)

T = TypeVar("T")

# block_number and token_id are uint256 on chain; sqlite3 INTEGER tops out at
# 2**63 - 1, so both are stored as decimal TEXT.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
  transaction_hash  TEXT PRIMARY KEY,
  block_number      TEXT NOT NULL,
  token_id          TEXT NOT NULL,
  contract_address  TEXT NOT NULL,
  kind              TEXT NOT NULL,
  price             TEXT,
  currency          TEXT NOT NULL,
  buyer             TEXT,
  seller            TEXT,
  creator           TEXT,
  gas_used          TEXT NOT NULL,
  gas_price         TEXT,
  platform_fee      TEXT NOT NULL,
  royalty_fee       TEXT NOT NULL,
  metadata_json     TEXT,
  status            TEXT NOT NULL,
  confirmations     INTEGER NOT NULL CHECK (confirmations >= 0),
  created_at        TEXT NOT NULL,
  updated_at        TEXT NOT NULL,
  confirmed_at      TEXT,
  failed_at         TEXT
);

CREATE INDEX IF NOT EXISTS idx_tx_buyer_created ON transactions(buyer, created_at);
CREATE INDEX IF NOT EXISTS idx_tx_seller_created ON transactions(seller, created_at);
CREATE INDEX IF NOT EXISTS idx_tx_creator_created ON transactions(creator, created_at);
CREATE INDEX IF NOT EXISTS idx_tx_token_kind ON transactions(token_id, kind);
CREATE INDEX IF NOT EXISTS idx_tx_kind_status_created ON transactions(kind, status, created_at);
"""

_COLUMNS = (
    "transaction_hash",
    "block_number",
    "token_id",
    "contract_address",
    "kind",
    "price",
    "currency",
    "buyer",
    "seller",
    "creator",
    "gas_used",
    "gas_price",
    "platform_fee",
    "royalty_fee",
    "metadata_json",
    "status",
    "confirmations",
    "created_at",
    "updated_at",
    "confirmed_at",
    "failed_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM transactions"
_INSERT = (
    f"INSERT INTO transactions({', '.join(_COLUMNS)}) "
    f"VALUES({', '.join('?' for _ in _COLUMNS)})"
)
_UPDATE_STATE = (
    "UPDATE transactions SET status=?, confirmations=?, updated_at=?, confirmed_at=?, failed_at=? "
    "WHERE transaction_hash=?"
)
_ORDER = "ORDER BY created_at DESC, transaction_hash DESC"

_SCHEMA_VERSION = 2
_INDEXES = (
    "idx_tx_buyer_created",
    "idx_tx_seller_created",
    "idx_tx_creator_created",
    "idx_tx_token_kind",
    "idx_tx_kind_status_created",
)
_TEXT_IDS = ("block_number", "token_id")
# Version 1 stored block_number and token_id as INTEGER; rebuild with TEXT ids.
_MIGRATE_V1 = (
    "ALTER TABLE transactions RENAME TO transactions_v1;\n"
    + "".join(f"DROP INDEX IF EXISTS {name};\n" for name in _INDEXES)
    + _SCHEMA
    + f"INSERT INTO transactions({', '.join(_COLUMNS)}) SELECT "
    + ", ".join(f"CAST({c} AS TEXT)" if c in _TEXT_IDS else c for c in _COLUMNS)
    + " FROM transactions_v1;\n"
    "DROP TABLE transactions_v1;\n"
)


def _dt_to_db(value: Optional[datetime]) -> Optional[str]:
    # Fixed width keeps lexicographic order equal to time order.
    if value is None:
        return None
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _dt_from_db(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _dec_to_db(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return format(value, "f")


def _record_params(record: TransactionRecord) -> tuple[Any, ...]:
    metadata_json = json.dumps(record.metadata.to_dict()) if record.metadata else None
    return (
        record.transaction_hash,
        str(record.block_number),
        str(record.token_id),
        record.contract_address,
        record.kind.value,
        _dec_to_db(record.price),
        record.currency,
        record.buyer,
        record.seller,
        record.creator,
        record.gas_used,
        record.gas_price,
        _dec_to_db(record.platform_fee),
        _dec_to_db(record.royalty_fee),
        metadata_json,
        record.status.value,
        record.confirmations,
        _dt_to_db(record.created_at),
        _dt_to_db(record.updated_at),
        _dt_to_db(record.confirmed_at),
        _dt_to_db(record.failed_at),
    )


def _row_to_record(row: sqlite3.Row) -> TransactionRecord:
    metadata_json = row["metadata_json"]
    created_at = datetime.fromisoformat(row["created_at"])
    updated_at = datetime.fromisoformat(row["updated_at"])
    return TransactionRecord(
        transaction_hash=row["transaction_hash"],
        block_number=int(row["block_number"]),
        token_id=int(row["token_id"]),
        contract_address=row["contract_address"],
        kind=TransactionKind(row["kind"]),
        gas_used=row["gas_used"],
        currency=row["currency"],
        status=TransactionStatus(row["status"]),
        confirmations=int(row["confirmations"]),
        created_at=created_at,
        updated_at=updated_at,
        price=Decimal(row["price"]) if row["price"] is not None else None,
        buyer=row["buyer"],
        seller=row["seller"],
        creator=row["creator"],
        gas_price=row["gas_price"],
        platform_fee=Decimal(row["platform_fee"]),
        royalty_fee=Decimal(row["royalty_fee"]),
        metadata=TransactionMetadata.from_dict(json.loads(metadata_json)) if metadata_json else None,
        confirmed_at=_dt_from_db(row["confirmed_at"]),
        failed_at=_dt_from_db(row["failed_at"]),
    )


class SqliteTransactionRepository(ITransactionRepository):
    """SQLite implementation of ITransactionRepository.

    One connection shared across worker threads (check_same_thread=False) and
    guarded by an RLock. Use path ":memory:" for an ephemeral database.
    """

    def __init__(
        self,
        path: str | Path,
        state_machine: ConfirmationStateMachine | None = None,
        *,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] | None = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        """Open (and migrate) the database.

        Args:
            path: Database file path, or ":memory:".
            state_machine: Transition rules (threshold). Defaults to threshold 3.
            timeout_seconds: sqlite3 busy timeout.
            clock: UTC time source for transition timestamps.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).

        Raises:
            UnavailableError: If the database cannot be opened or migrated.
        """
        self._path = str(path)
        self._state_machine = state_machine or ConfirmationStateMachine()
        self._timeout = timeout_seconds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._logger = get_logger(logger_name or self.__class__.__name__)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        try:
            self._migrate()
        except sqlite3.Error as e:
            raise UnavailableError(f"cannot open ledger database {self._path!r}: {e}", cause=e) from e

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self._path,
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout={int(self._timeout * 1000)}")
        if self._path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=FULL")
        self._conn = conn
        return conn

    def _migrate(self) -> None:
        with self._lock:
            conn = self._get_conn()
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version >= _SCHEMA_VERSION:
                return
            script = _SCHEMA if version < 1 else _MIGRATE_V1
            conn.executescript(
                f"BEGIN IMMEDIATE;\n{script}PRAGMA user_version={_SCHEMA_VERSION};\nCOMMIT;\n"
            )
            self._logger.info(
                "ledger_schema_migrated",
                path=self._path,
                from_version=version,
                version=_SCHEMA_VERSION,
            )

    @contextmanager
    def _txn(self) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE ... COMMIT under the process lock; ROLLBACK on any error."""
        with self._lock:
            conn = self._get_conn()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    async def _run(self, op: str, fn: Callable[[], T]) -> T:
        """Run a blocking sqlite call in a thread; translate storage errors."""
        try:
            return await asyncio.to_thread(fn)
        except sqlite3.Error as e:
            self._logger.error("ledger_storage_error", operation=op, error=str(e))
            raise UnavailableError(f"ledger storage failed during {op}: {e}", cause=e) from e

    def _fetch_one(self, conn: sqlite3.Connection, key: str) -> Optional[TransactionRecord]:
        row = conn.execute(f"{_SELECT} WHERE transaction_hash=?", (key,)).fetchone()
        return _row_to_record(row) if row is not None else None

    def _query(self, where: str, params: tuple[Any, ...]) -> list[TransactionRecord]:
        with self._lock:
            rows = self._get_conn().execute(f"{_SELECT} WHERE {where} {_ORDER}", params).fetchall()
        return [_row_to_record(r) for r in rows]

    def _transition(
        self,
        key: str,
        step: Callable[[TransactionRecord, datetime], TransitionResult],
    ) -> TransitionResult:
        with self._txn() as conn:
            record = self._fetch_one(conn, key)
            if record is None:
                raise NotFoundError(key)
            result = step(record, self._clock())
            if result.changed:
                after = result.record
                conn.execute(
                    _UPDATE_STATE,
                    (
                        after.status.value,
                        after.confirmations,
                        _dt_to_db(after.updated_at),
                        _dt_to_db(after.confirmed_at),
                        _dt_to_db(after.failed_at),
                        key,
                    ),
                )
            return result

    async def upsert(self, record: TransactionRecord) -> UpsertResult:
        key = record.transaction_hash.strip()
        if record.transaction_hash != key:
            record = replace(record, transaction_hash=key)

        def _upsert() -> UpsertResult:
            with self._txn() as conn:
                existing = self._fetch_one(conn, key)
                if existing is None:
                    conn.execute(_INSERT, _record_params(record))
                    return UpsertResult(record=record, created=True)
                mismatched = existing.structural_mismatches(record)
                if mismatched:
                    raise DuplicateKeyError(
                        f"Transaction {key!r} re-observed with different {', '.join(mismatched)}",
                        transaction_hash=key,
                        mismatched_fields=mismatched,
                    )
                return UpsertResult(record=existing, created=False)

        return await self._run("upsert", _upsert)

    async def get_by_hash(self, transaction_hash: str) -> TransactionRecord:
        record = await self.find_by_hash(transaction_hash)
        if record is None:
            raise NotFoundError(transaction_hash.strip())
        return record

    async def find_by_hash(self, transaction_hash: str) -> Optional[TransactionRecord]:
        key = transaction_hash.strip()

        def _find() -> Optional[TransactionRecord]:
            with self._lock:
                return self._fetch_one(self._get_conn(), key)

        return await self._run("find_by_hash", _find)

    async def list_by_party(self, address: str) -> list[TransactionRecord]:
        a = address.strip()
        return await self._run(
            "list_by_party",
            lambda: self._query("buyer=? OR seller=? OR creator=?", (a, a, a)),
        )

    async def list_by_token(
        self,
        token_id: int,
        kind: TransactionKind | None = None,
    ) -> list[TransactionRecord]:
        if kind is None:
            return await self._run(
                "list_by_token",
                lambda: self._query("token_id=?", (str(token_id),)),
            )
        return await self._run(
            "list_by_token",
            lambda: self._query("token_id=? AND kind=?", (str(token_id), kind.value)),
        )

    async def list_by_kind_status(
        self,
        kind: TransactionKind,
        status: TransactionStatus,
    ) -> list[TransactionRecord]:
        return await self._run(
            "list_by_kind_status",
            lambda: self._query("kind=? AND status=?", (kind.value, status.value)),
        )

    async def apply_confirmation_delta(self, transaction_hash: str, delta: int) -> TransitionResult:
        key = transaction_hash.strip()
        return await self._run(
            "apply_confirmation_delta",
            lambda: self._transition(key, lambda r, now: self._state_machine.confirm(r, delta, now=now)),
        )

    async def mark_failed(self, transaction_hash: str) -> TransitionResult:
        key = transaction_hash.strip()
        return await self._run(
            "mark_failed",
            lambda: self._transition(key, lambda r, now: self._state_machine.fail(r, now=now)),
        )

    async def force_confirm(self, transaction_hash: str) -> TransitionResult:
        key = transaction_hash.strip()
        return await self._run(
            "force_confirm",
            lambda: self._transition(key, lambda r, now: self._state_machine.force_confirm(r, now=now)),
        )

    async def count(self) -> int:
        def _count() -> int:
            with self._lock:
                return int(self._get_conn().execute("SELECT COUNT(*) FROM transactions").fetchone()[0])

        return await self._run("count", _count)

    async def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

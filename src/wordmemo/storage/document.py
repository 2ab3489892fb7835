"""Document store backend (SQLite).

Provides:
- Versioned schema creation (PRAGMA user_version)
- One transaction per operation, scoped to a single partition
- Generic key-value storage in the settings partition

Partitions:
- wordBanks   (id PK, unique index on name)
- examRecords (id PK, index on timestamp)
- mistakes     (id PK)
- settings     (key PK)
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

from wordmemo.storage.base import (
    InitializationError,
    PersistenceBackend,
    StoredValue,
    TransactionError,
)

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/wordmemo.db")

SCHEMA_VERSION = 1

PARTITIONS = ("wordBanks", "examRecords", "mistakes", "settings")

# Partition holding the generic key-value data
SETTINGS_PARTITION = "settings"


# IF NOT EXISTS keeps upgrades idempotent for partitions already present
SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS wordBanks (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        payload TEXT NOT NULL DEFAULT '[]'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS examRecords (
        id TEXT PRIMARY KEY,
        timestamp TEXT NOT NULL,
        payload TEXT NOT NULL DEFAULT '{}'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mistakes (
        id TEXT PRIMARY KEY,
        payload TEXT NOT NULL DEFAULT '{}'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_wordBanks_name ON wordBanks(name)",
    "CREATE INDEX IF NOT EXISTS idx_examRecords_timestamp ON examRecords(timestamp)",
)


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


class DocumentBackend(PersistenceBackend):
    """Transactional, schema-versioned store on top of SQLite."""

    name = "document"

    def __init__(self, db_path: Path | None = None, busy_timeout: float = 5.0):
        self.db_path = db_path or DEFAULT_DB_PATH
        self.busy_timeout = busy_timeout
        self._conn: sqlite3.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # -- opening -------------------------------------------------------------

    def _open(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row

        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version < SCHEMA_VERSION:
                self._upgrade(conn, version)
        except Exception:
            conn.close()
            raise

        return conn

    def _upgrade(self, conn: sqlite3.Connection, old_version: int) -> None:
        conn.execute("BEGIN IMMEDIATE")
        try:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.execute("COMMIT")
        except Exception:
            _rollback(conn)
            raise
        logger.info(
            "document.schema_upgraded",
            path=str(self.db_path),
            old_version=old_version,
            new_version=SCHEMA_VERSION,
        )

    async def init(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = await asyncio.to_thread(self._open)
        except (sqlite3.Error, OSError) as e:
            raise InitializationError(f"Could not open document store {self.db_path}: {e}") from e
        logger.info("document.opened", path=str(self.db_path))

    def close(self) -> None:
        """Close the handle. The backend must be re-initialized afterwards."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -- transactions --------------------------------------------------------

    @contextmanager
    def _transaction(self, partition: str, write: bool) -> Generator[sqlite3.Connection, None, None]:
        """Run a block in its own transaction on one partition."""
        if self._conn is None:
            raise TransactionError("Document store is not initialized")

        conn = self._conn
        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        except sqlite3.Error as e:
            raise TransactionError(f"Could not start transaction on {partition}: {e}") from e

        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            _rollback(conn)
            raise TransactionError(f"Transaction on {partition} failed: {e}") from e
        except Exception:
            _rollback(conn)
            raise

    def _put(self, key: str, payload: str) -> None:
        with self._transaction(SETTINGS_PARTITION, write=True) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, payload),
            )

    def _get(self, key: str) -> str | None:
        with self._transaction(SETTINGS_PARTITION, write=False) as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return None if row is None else row["value"]

    def _delete(self, key: str) -> None:
        with self._transaction(SETTINGS_PARTITION, write=True) as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def list_partitions(self) -> list[str]:
        """Names of the partitions present in the database."""
        with self._transaction("schema", write=False) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            ).fetchall()
        return [row["name"] for row in rows if row["name"] in PARTITIONS]

    # -- backend contract ----------------------------------------------------

    async def save(self, key: str, value: StoredValue) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise TransactionError(f"Value for '{key}' is not JSON-serializable: {e}") from e
        await asyncio.to_thread(self._put, key, payload)
        logger.debug("document.saved", key=key)

    async def load(self, key: str) -> StoredValue:
        payload = await asyncio.to_thread(self._get, key)
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise TransactionError(f"Stored payload for '{key}' is corrupt: {e}") from e

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)
        logger.debug("document.removed", key=key)

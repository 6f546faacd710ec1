"""
SQLite adapter

Manages SQLite connections in WAL mode so several processes (web workers,
maintenance scripts) can share one database file.

Note: money columns are TEXT holding Decimal strings, never REAL.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import StoreLimits

logger = logging.getLogger(__name__)


class TransactionCommitError(RuntimeError):
    """COMMIT itself failed

    The body of the transaction ran to completion; whether the database kept
    the changes is unknown to the caller and must be re-read.
    """

    pass


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
) -> aiosqlite.Connection:
    """Open an SQLite connection (WAL mode)

    Args:
        db_path: DB file path (":memory:" allowed)
        readonly: Open read-only

    Returns:
        aiosqlite connection
    """
    db_path_str = str(db_path)

    if db_path_str != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    if readonly:
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        conn = await aiosqlite.connect(db_path_str)

    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute(f"PRAGMA busy_timeout={StoreLimits.BUSY_TIMEOUT_MS}")
    await conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = aiosqlite.Row

    logger.info(
        "SQLite connection opened",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite adapter

    Owns one WAL-mode connection and provides a transaction context manager.
    Transactions on the same adapter are serialised with an asyncio.Lock,
    because every coroutine shares the single underlying connection.

    Args:
        db_path: DB file path
        readonly: Read-only (reporting consumers)

    Example:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction() as conn:
        await conn.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()
        self._lock_owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        """Connection state"""
        return self._conn is not None

    async def connect(self) -> None:
        """Open the connection"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly)

    async def close(self) -> None:
        """Close the connection"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """Execute SQL"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Row | None:
        """Fetch one row"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[aiosqlite.Row]:
        """Fetch all rows"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        """Commit"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """Rollback"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Transaction context manager

        Commits on success, rolls back on any exception.
        Raises TransactionCommitError if COMMIT itself fails.

        Example:
        ```python
        async with adapter.transaction() as conn:
            await conn.execute("INSERT INTO ...")
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        if self._holds_lock():
            raise RuntimeError("Nested transaction on the same adapter")

        async with self._tx_lock:
            self._lock_owner = asyncio.current_task()
            try:
                try:
                    # take the write lock up front so the conditional UPDATEs
                    # inside see the latest committed rows
                    await self._conn.execute("BEGIN IMMEDIATE")
                    yield self._conn
                except BaseException:
                    await self._conn.rollback()
                    raise

                try:
                    await self._conn.commit()
                except Exception as e:
                    await self._conn.rollback()
                    raise TransactionCommitError(str(e)) from e
            finally:
                self._lock_owner = None

    @asynccontextmanager
    async def consistent_read(self) -> AsyncIterator["SQLiteAdapter"]:
        """Read several tables without observing a half-applied transaction

        Coroutines share one connection, so a plain SELECT issued while
        another coroutine is inside transaction() would see its uncommitted
        rows. Holding the transaction lock for the duration of the reads
        rules that out.

        Re-entrant for the task that already holds the lock (a read issued
        from inside its own transaction sees its own writes). Opening
        transaction() inside this block raises RuntimeError.
        """
        if self._holds_lock():
            yield self
            return

        async with self._tx_lock:
            self._lock_owner = asyncio.current_task()
            try:
                yield self
            finally:
                self._lock_owner = None

    def _holds_lock(self) -> bool:
        return (
            self._lock_owner is not None
            and self._lock_owner is asyncio.current_task()
        )

    async def data_version(self) -> int:
        """PRAGMA data_version

        Changes whenever another connection commits to the file. Commits
        made through this connection leave it unchanged.
        """
        row = await self.fetchone("PRAGMA data_version")
        return int(row[0]) if row else 0

    async def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """Create tables and indexes (idempotent)

    Args:
        adapter: Connected SQLiteAdapter
    """
    # ledger_entries (income / expense records)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS ledger_entries (
            entry_id           TEXT PRIMARY KEY,
            amount             TEXT NOT NULL,
            kind               TEXT NOT NULL,
            description        TEXT NOT NULL DEFAULT '',
            entry_date         TEXT NOT NULL,
            linked_request_id  TEXT,
            created_by         TEXT,
            created_at         TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # project_requests (funding proposals)
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS project_requests (
            request_id      TEXT PRIMARY KEY,
            title           TEXT NOT NULL,
            estimated_cost  TEXT NOT NULL,
            description     TEXT NOT NULL DEFAULT '',
            request_date    TEXT NOT NULL,
            status          TEXT NOT NULL,

            requester_id    TEXT NOT NULL,
            requester_name  TEXT NOT NULL,

            created_at      TEXT NOT NULL,
            submitted_at    TEXT,
            approved_at     TEXT,
            approved_by     TEXT,
            completed_at    TEXT,

            version         INTEGER NOT NULL DEFAULT 1,
            updated_at      TEXT NOT NULL
        )
    """)

    # at most one linked entry per request
    await adapter.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_ledger_entries_linked_request
        ON ledger_entries(linked_request_id)
        WHERE linked_request_id IS NOT NULL
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entries_date
        ON ledger_entries(entry_date)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_project_requests_status
        ON project_requests(status)
    """)

    await adapter.execute("""
        CREATE INDEX IF NOT EXISTS ix_project_requests_requester
        ON project_requests(requester_id, created_at)
    """)

    # older records: lowercase statuses and 'approved' for ACTIVE.
    # Conditional writes and status filters compare the canonical spelling.
    cursor = await adapter.execute("""
        UPDATE project_requests
        SET status = CASE UPPER(TRIM(status))
            WHEN 'APPROVED' THEN 'ACTIVE'
            ELSE UPPER(TRIM(status))
        END
        WHERE status NOT IN (
            'DRAFT', 'PENDING', 'ACTIVE', 'PENDING_COMPLETION', 'COMPLETED', 'REJECTED'
        )
    """)
    if cursor.rowcount > 0:
        logger.info(f"Normalised {cursor.rowcount} legacy request statuses")

    await adapter.execute("""
        UPDATE ledger_entries
        SET kind = UPPER(TRIM(kind))
        WHERE UPPER(TRIM(kind)) IN ('INCOME', 'EXPENSE') AND kind NOT IN ('INCOME', 'EXPENSE')
    """)

    await adapter.commit()

    logger.info("Schema initialised")

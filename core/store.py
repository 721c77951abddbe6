"""
DuckDB record store for operations data.

Holds the four record tables (manufacturing, testing, field, sales).
Records are insert-only: the store assigns `id` from a per-table sequence
and `created_at` from the database clock, and never updates or deletes.

Access goes through a small pool of DuckDB cursors. Each operation checks
one cursor out, runs a single statement in a worker thread and returns the
cursor, so callers never hold a connection across calls.
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from core.config import DatabaseConfig
from core.exceptions import QueryTimeoutError, StoreError
from core.models import Domain, parse_timestamp, record_from_row
from core.observability import get_logger
from core.validators import require_fields

logger = get_logger(__name__)

MEMORY_DATABASE = ":memory:"


def resolve_database_path(url: str) -> str:
    """
    Turn a DATABASE_URL into a DuckDB database path.

    Accepted forms:
        duckdb:///data/ops.duckdb   -> data/ops.duckdb
        duckdb:////var/ops.duckdb   -> /var/ops.duckdb
        duckdb:///:memory:          -> :memory:
        data/ops.duckdb, :memory:   -> unchanged
    """
    if not url:
        raise StoreError("DATABASE_URL is empty")

    if url.startswith("duckdb://"):
        path = url[len("duckdb://"):]
        if path.startswith("/"):
            path = path[1:]
        return path or MEMORY_DATABASE

    if "://" in url:
        scheme = url.split("://", 1)[0]
        raise StoreError("Unsupported database URL", f"scheme '{scheme}' is not duckdb")

    return url


def _schema_statements(domain: Domain) -> List[str]:
    """DDL for one record table (created_at is stored as naive UTC)."""
    columns = ",\n            ".join(
        f"{spec.name} {spec.sql_type} NOT NULL" for spec in domain.fields
    )
    return [
        f"CREATE SEQUENCE IF NOT EXISTS {domain.table}_id_seq START 1",
        f"""
        CREATE TABLE IF NOT EXISTS {domain.table} (
            id BIGINT PRIMARY KEY DEFAULT nextval('{domain.table}_id_seq'),
            {columns},
            created_at TIMESTAMP NOT NULL DEFAULT current_timestamp
        )
        """,
        f"CREATE INDEX IF NOT EXISTS idx_{domain.table}_created_at ON {domain.table}(created_at)",
    ]


class RecordStore:
    """
    Async-compatible DuckDB store for operations records.

    Usage:
        store = RecordStore(config.database)
        await store.connect()
        record = await store.insert(Domain.SALES, {...})
        latest = await store.list_recent(Domain.SALES)
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.db_path = resolve_database_path(config.url)
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._pool: Optional[asyncio.Queue] = None
        self._cursors: List[duckdb.DuckDBPyConnection] = []
        self._lock = asyncio.Lock()

        # Stats for monitoring
        self._total_queries = 0

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the database, create the schema and fill the pool."""
        async with self._lock:
            if self._connection is not None:
                return

            try:
                if self.db_path != MEMORY_DATABASE:
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                connection = duckdb.connect(self.db_path)
                connection.execute("SET TimeZone = 'UTC'")
                for domain in Domain:
                    for statement in _schema_statements(domain):
                        connection.execute(statement)
            except duckdb.Error as e:
                raise StoreError("Failed to open database", str(e))

            pool: asyncio.Queue = asyncio.Queue()
            for _ in range(self.config.pool_size):
                cursor = connection.cursor()
                cursor.execute("SET TimeZone = 'UTC'")
                self._cursors.append(cursor)
                pool.put_nowait(cursor)

            self._connection = connection
            self._pool = pool
            logger.info(
                f"DuckDB connected: {self.db_path}",
                extra={"pool_size": self.config.pool_size}
            )

    async def close(self) -> None:
        """Close pooled cursors and the database connection."""
        async with self._lock:
            for cursor in self._cursors:
                cursor.close()
            self._cursors = []
            self._pool = None

            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("DuckDB connection closed")

    @asynccontextmanager
    async def connection(self):
        """Check a pooled cursor out for the duration of one operation."""
        if self._pool is None:
            raise StoreError("Store is not connected")
        pool = self._pool
        cursor = await pool.get()
        try:
            yield cursor
        except QueryTimeoutError:
            # The worker thread may still be running on the interrupted cursor
            cursor = self._replace_cursor(cursor)
            raise
        finally:
            pool.put_nowait(cursor)

    def _replace_cursor(self, stale: duckdb.DuckDBPyConnection) -> duckdb.DuckDBPyConnection:
        """Swap a pooled cursor for a fresh one on the same database."""
        if self._connection is None:
            return stale
        cursor = self._connection.cursor()
        cursor.execute("SET TimeZone = 'UTC'")
        self._cursors = [c for c in self._cursors if c is not stale] + [cursor]
        logger.warning("Replaced pooled cursor after query timeout")
        return cursor

    async def _run(self, query: str, params: Sequence[Any] = (), table: str = None):
        """
        Execute one statement and return (column names, rows).

        Blocking DuckDB work is offloaded to a thread so the event loop
        keeps serving other requests.
        """
        async with self.connection() as cursor:
            self._total_queries += 1

            def _execute():
                result = cursor.execute(query, list(params))
                columns = [d[0] for d in result.description] if result.description else []
                return columns, result.fetchall()

            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(_execute),
                    timeout=self.config.query_timeout
                )
            except asyncio.TimeoutError:
                cursor.interrupt()
                raise QueryTimeoutError(query, self.config.query_timeout, table=table)
            except duckdb.Error as e:
                logger.error(f"Query failed on {table or 'database'}: {e}")
                raise StoreError("Database error", str(e), table=table)

    # ─── Record Operations ───────────────────────────────────────────────────

    async def insert(self, domain: Domain, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert one record and return it as stored.

        Raises:
            ValidationError: If a required field is missing or mistyped
            StoreError: If the insert fails
        """
        values = require_fields(domain, fields)
        names = list(values)
        placeholders = ", ".join("?" for _ in names)
        query = (
            f"INSERT INTO {domain.table} ({', '.join(names)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )

        columns, rows = await self._run(query, [values[n] for n in names], table=domain.table)
        record = record_from_row(domain, columns, rows[0])
        logger.debug(f"Inserted {domain.table} #{record['id']}")
        return record

    async def list_recent(self, domain: Domain, limit: int = None) -> List[Dict[str, Any]]:
        """
        List the most recent records of a domain, newest first.

        The limit is capped at the configured list limit (100).
        """
        cap = self.config.list_limit
        limit = cap if limit is None else max(0, min(limit, cap))
        query = (
            f"SELECT * FROM {domain.table} "
            f"ORDER BY created_at DESC, id DESC LIMIT {int(limit)}"
        )
        columns, rows = await self._run(query, table=domain.table)
        return [record_from_row(domain, columns, row) for row in rows]

    async def now(self) -> datetime:
        """Current database time (UTC)."""
        _, rows = await self._run("SELECT current_timestamp::TIMESTAMP")
        return parse_timestamp(rows[0][0])

    async def get_stats(self) -> Dict[str, Any]:
        """Row counts per table."""
        counts = {}
        for domain in Domain:
            _, rows = await self._run(f"SELECT COUNT(*) FROM {domain.table}", table=domain.table)
            counts[domain.value] = rows[0][0]
        return {
            "tables": counts,
            "total_queries": self._total_queries,
            "db_path": self.db_path,
        }

"""
Pooled, retrying statement execution on top of asyncpg.

The executor owns the connection pool. FastAPI opens it in the lifespan hook
and closes it on shutdown (see ``api/main.py``); everything else receives the
instance by injection.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

from core.exceptions import ConnectionException, PoolExhaustedException, RecipeAPIException
from .errors import is_transient_error, map_database_error

logger = logging.getLogger(__name__)

_RETURNING = re.compile(r"\bRETURNING\b", re.IGNORECASE)


@dataclass
class QueryResult:
    """Rows (as dicts) plus the affected-row count reported by the server."""

    rows: List[Dict[str, Any]]
    row_count: int
    command: str

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self, column: str, default: Any = None) -> Any:
        row = self.first()
        return row[column] if row is not None else default


@dataclass
class QueryStats:
    total: int = 0
    failed: int = 0
    retried: int = 0
    slow: int = 0
    total_duration_ms: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        stats = asdict(self)
        stats["total_duration_ms"] = round(self.total_duration_ms, 2)
        return stats


def returns_rows(sql: str) -> bool:
    head = sql.lstrip().split(None, 1)[0].upper() if sql.strip() else ""
    return head in ("SELECT", "WITH", "VALUES") or _RETURNING.search(sql) is not None


def parse_row_count(status: Optional[str]) -> int:
    """Affected rows from a command tag such as ``DELETE 3`` or ``INSERT 0 2``."""
    if not status:
        return 0
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


def _command_of(sql: str) -> str:
    stripped = sql.strip()
    return stripped.split(None, 1)[0].upper() if stripped else ""


def _preview(sql: str, limit: int = 120) -> str:
    flat = " ".join(sql.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


async def _init_connection(conn) -> None:
    """Decode json/jsonb columns (json_agg results) into Python objects."""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name, encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
        )


class PooledExecutor:
    """Owns the asyncpg pool and runs parameterized statements with retry."""

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 2,
        max_size: int = 20,
        idle_timeout: float = 30.0,
        max_uses: int = 7500,
        connect_timeout: float = 10.0,
        query_timeout: float = 30.0,
        statement_timeout_ms: int = 60000,
        application_name: str = "fodmap-recipe-api",
        max_retries: int = 3,
        retry_initial_delay: float = 1.0,
        slow_query_threshold_ms: float = 1000.0,
        log_queries: bool = False,
    ):
        if min_size < 0 or max_size < 1 or min_size > max_size:
            raise ValueError(f"Invalid pool bounds: min_size={min_size}, max_size={max_size}")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.idle_timeout = idle_timeout
        self.max_uses = max_uses
        self.connect_timeout = connect_timeout
        self.query_timeout = query_timeout
        self.statement_timeout_ms = statement_timeout_ms
        self.application_name = application_name
        self.max_retries = max_retries
        self.retry_initial_delay = retry_initial_delay
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self.log_queries = log_queries

        self.stats = QueryStats()
        self._pool: Optional[asyncpg.Pool] = None
        self._waiting = 0

    @classmethod
    def from_settings(cls, settings) -> "PooledExecutor":
        return cls(
            settings.database_url,
            min_size=settings.db_pool_min,
            max_size=settings.db_pool_max,
            idle_timeout=settings.db_idle_timeout,
            max_uses=settings.db_max_uses,
            connect_timeout=settings.db_connection_timeout,
            query_timeout=settings.db_query_timeout,
            statement_timeout_ms=settings.db_statement_timeout,
            application_name=settings.app_name,
            max_retries=settings.db_max_retries,
            retry_initial_delay=settings.db_retry_initial_delay,
            slow_query_threshold_ms=settings.db_slow_query_threshold_ms,
            log_queries=settings.log_sql_queries,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call open() on startup.")
        return self._pool

    async def open(self) -> None:
        if self._pool is not None:
            return
        logger.info(
            f"Opening PostgreSQL pool (min={self.min_size}, max={self.max_size}, "
            f"connect_timeout={self.connect_timeout}s)"
        )
        self._pool = await asyncpg.create_pool(
            dsn=self.dsn,
            min_size=self.min_size,
            max_size=self.max_size,
            max_queries=self.max_uses,
            max_inactive_connection_lifetime=self.idle_timeout,
            timeout=self.connect_timeout,
            command_timeout=self.query_timeout,
            server_settings={
                "application_name": self.application_name,
                "statement_timeout": str(self.statement_timeout_ms),
            },
            init=_init_connection,
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        logger.info("Closing PostgreSQL pool")
        pool, self._pool = self._pool, None
        await pool.close()

    async def shutdown(self) -> None:
        await self.close()

    async def acquire(self):
        """Borrow a connection, waiting at most ``connect_timeout`` seconds."""
        pool = self.pool
        self._waiting += 1
        try:
            return await pool.acquire(timeout=self.connect_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"No pooled connection available after {self.connect_timeout}s")
            raise PoolExhaustedException(
                details=[f"waited {self.connect_timeout}s for one of {self.max_size} connections"]
            ) from e
        finally:
            self._waiting -= 1

    async def release(self, conn) -> None:
        await self.pool.release(conn)

    async def run(self, conn, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """Single attempt on a given connection, with telemetry and no retry."""
        start = time.perf_counter()
        self.stats.total += 1
        try:
            if returns_rows(sql):
                records = await conn.fetch(sql, *params, timeout=self.query_timeout)
                rows = [dict(record) for record in records]
                result = QueryResult(rows=rows, row_count=len(rows), command=_command_of(sql))
            else:
                status = await conn.execute(sql, *params, timeout=self.query_timeout)
                result = QueryResult(rows=[], row_count=parse_row_count(status), command=_command_of(sql))
        except Exception:
            self.stats.failed += 1
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            self.stats.total_duration_ms += duration_ms

        if duration_ms >= self.slow_query_threshold_ms:
            self.stats.slow += 1
            logger.warning(
                f"Slow query ({duration_ms:.1f}ms, {result.row_count} rows): {_preview(sql)}"
            )
        elif self.log_queries:
            logger.info(f"Query ({duration_ms:.1f}ms, {result.row_count} rows): {_preview(sql)}")
        return result

    async def query(
        self, sql: str, params: Sequence[Any] = (), max_retries: Optional[int] = None
    ) -> QueryResult:
        """Run one statement on a pooled connection.

        Transient failures (dropped connections, server restarts) are retried
        with exponential backoff, re-issuing the same statement and
        parameters. Everything else fails immediately as a
        RecipeAPIException.
        """
        attempts = self.max_retries if max_retries is None else max_retries
        if attempts < 1:
            raise ValueError("max_retries must be at least 1")
        delay = self.retry_initial_delay
        for attempt in range(1, attempts + 1):
            try:
                conn = await self.acquire()
                try:
                    return await self.run(conn, sql, params)
                finally:
                    await self.release(conn)
            except RecipeAPIException:
                raise
            except Exception as e:
                if not is_transient_error(e):
                    logger.error(f"Query failed: {type(e).__name__}: {str(e)}")
                    raise map_database_error(e) from e
                if attempt >= attempts:
                    logger.error(
                        f"Query still failing after {attempts} attempts: {type(e).__name__}: {str(e)}"
                    )
                    raise ConnectionException(details=[str(e)]) from e
                self.stats.retried += 1
                logger.warning(
                    f"Transient database error on attempt {attempt}/{attempts}: {str(e)}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)
                delay *= 2  # Exponential backoff

    def pool_stats(self) -> Dict[str, Any]:
        if self._pool is None:
            return {"open": False, "min_size": self.min_size, "max_size": self.max_size}
        size = self._pool.get_size()
        idle = self._pool.get_idle_size()
        return {
            "open": True,
            "size": size,
            "idle": idle,
            "in_use": size - idle,
            "min_size": self._pool.get_min_size(),
            "max_size": self._pool.get_max_size(),
            "waiting": self._waiting,
        }

    async def health_check(self) -> Dict[str, Any]:
        """Probe the database with ``SELECT 1``. Never raises."""
        start = time.perf_counter()
        healthy = False
        error = None
        if self._pool is None:
            error = "Connection pool is not open"
        else:
            try:
                result = await self.query("SELECT 1 AS health_check", max_retries=1)
                healthy = result.scalar("health_check") == 1
            except RecipeAPIException as e:
                error = e.message
        return {
            "healthy": healthy,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "pool": self.pool_stats(),
            "queries": self.stats.as_dict(),
            "error": error,
        }

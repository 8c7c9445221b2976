"""
Tests for PooledExecutor: pool lifecycle, retry policy, error mapping and telemetry
"""

import asyncio
import socket

import pytest
from unittest.mock import AsyncMock, patch

from conftest import FakeDriverError, FakePool
from core.exceptions import (
    ConnectionException,
    ConstraintViolationException,
    DatabaseException,
    PoolExhaustedException,
)
from db.executor import PooledExecutor, parse_row_count, returns_rows

pytestmark = pytest.mark.asyncio


class TestHelpers:
    def test_returns_rows(self):
        assert returns_rows("SELECT 1")
        assert returns_rows("  with x as (select 1) select * from x")
        assert returns_rows("INSERT INTO tags (name) VALUES ($1) RETURNING id")
        assert not returns_rows("UPDATE recipes SET title = $1 WHERE id = $2")
        assert not returns_rows("BEGIN")

    def test_parse_row_count(self):
        assert parse_row_count("DELETE 3") == 3
        assert parse_row_count("INSERT 0 2") == 2
        assert parse_row_count("BEGIN") == 0
        assert parse_row_count(None) == 0


class TestConstruction:
    def test_invalid_pool_bounds(self):
        with pytest.raises(ValueError):
            PooledExecutor("postgresql://x", min_size=5, max_size=2)

    def test_invalid_retry_count(self):
        with pytest.raises(ValueError):
            PooledExecutor("postgresql://x", max_retries=0)

    def test_pool_before_open(self):
        executor = PooledExecutor("postgresql://x")
        assert not executor.is_open
        with pytest.raises(RuntimeError):
            executor.pool


class TestLifecycle:
    """open()/close() around asyncpg.create_pool"""

    async def test_open_passes_pool_settings(self, fake_conn):
        pool = FakePool(fake_conn)
        executor = PooledExecutor(
            "postgresql://u:p@db/recipes",
            min_size=1,
            max_size=7,
            idle_timeout=15.0,
            max_uses=500,
            connect_timeout=3.0,
            statement_timeout_ms=5000,
            application_name="recipes-test",
        )
        with patch("db.executor.asyncpg.create_pool", new=AsyncMock(return_value=pool)) as create_pool:
            await executor.open()
            await executor.open()

        create_pool.assert_awaited_once()
        kwargs = create_pool.await_args.kwargs
        assert kwargs["min_size"] == 1
        assert kwargs["max_size"] == 7
        assert kwargs["max_queries"] == 500
        assert kwargs["max_inactive_connection_lifetime"] == 15.0
        assert kwargs["timeout"] == 3.0
        assert kwargs["server_settings"] == {
            "application_name": "recipes-test",
            "statement_timeout": "5000",
        }
        assert executor.is_open

        await executor.close()
        assert pool.closed
        assert not executor.is_open
        # Closing twice is a no-op
        await executor.shutdown()


class TestQuery:
    """Single statements on a pooled connection"""

    async def test_select_returns_rows(self, executor, fake_conn, fake_pool):
        fake_conn.on("FROM tags", rows=[{"id": 1, "name": "quick"}])
        result = await executor.query("SELECT id, name FROM tags WHERE id = $1", (1,))

        assert result.rows == [{"id": 1, "name": "quick"}]
        assert result.row_count == 1
        assert result.first()["name"] == "quick"
        assert fake_conn.statements[0][1] == (1,)
        assert fake_pool.acquired == fake_pool.released == 1

    async def test_command_reports_row_count(self, executor, fake_conn):
        fake_conn.on("DELETE FROM recipe_tags", status="DELETE 4")
        result = await executor.query("DELETE FROM recipe_tags WHERE recipe_id = $1", (9,))
        assert result.rows == []
        assert result.row_count == 4
        assert result.command == "DELETE"

    async def test_scalar_default_when_empty(self, executor):
        result = await executor.query("SELECT COUNT(*) AS total_count FROM recipes WHERE false")
        assert result.scalar("total_count", 0) == 0


class TestRetry:
    """Transient failures retry with exponential backoff"""

    async def test_transient_error_retried_then_succeeds(self, executor, fake_conn, fake_pool):
        fake_conn.on("SELECT 1", error=ConnectionResetError("connection reset by peer"), times=2)
        fake_conn.on("SELECT 1", rows=[{"value": 1}])

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.query("SELECT 1 AS value")

        assert result.scalar("value") == 1
        assert mock_sleep.await_count == 2
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]
        assert executor.stats.retried == 2
        # Every attempt gave its connection back
        assert fake_pool.acquired == fake_pool.released == 3

    async def test_same_statement_and_params_reissued(self, executor, fake_conn):
        fake_conn.on("FROM recipes", error=FakeDriverError("terminating connection", "57P01"), times=1)
        fake_conn.on("FROM recipes", rows=[{"id": 3}])

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await executor.query("SELECT id FROM recipes WHERE id = $1", (3,))

        assert fake_conn.statements[0] == fake_conn.statements[1]

    async def test_retries_exhausted_raise_connection_exception(self, executor, fake_conn):
        fake_conn.on("SELECT", error=socket.gaierror("name resolution failed"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ConnectionException) as exc_info:
                await executor.query("SELECT 1")

        assert exc_info.value.status_code == 503
        assert mock_sleep.await_count == executor.max_retries - 1
        assert len(fake_conn.statements) == executor.max_retries

    async def test_non_transient_error_not_retried(self, executor, fake_conn):
        fake_conn.on("INSERT", error=FakeDriverError("duplicate key", "23505", "tags_name_key"))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ConstraintViolationException) as exc_info:
                await executor.query("INSERT INTO tags (name) VALUES ($1)", ("quick",))

        mock_sleep.assert_not_awaited()
        assert exc_info.value.code == "DUPLICATE_RESOURCE"
        assert exc_info.value.status_code == 409
        assert exc_info.value.details == ["constraint: tags_name_key"]

    async def test_syntax_error_becomes_database_exception(self, executor, fake_conn):
        fake_conn.on("SELEC", error=FakeDriverError('syntax error at or near "SELEC"', "42601"))
        with pytest.raises(DatabaseException) as exc_info:
            await executor.query("SELEC 1")
        assert exc_info.value.code == "DATABASE_ERROR"
        assert executor.stats.failed == 1

    async def test_per_call_retry_override(self, executor, fake_conn):
        fake_conn.on("SELECT", error=ConnectionRefusedError("refused"))
        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ConnectionException):
                await executor.query("SELECT 1", max_retries=1)
        mock_sleep.assert_not_awaited()

    async def test_explicit_zero_retries_rejected(self, executor, fake_conn):
        with pytest.raises(ValueError):
            await executor.query("SELECT 1", max_retries=0)
        assert fake_conn.statements == []


class TestPoolExhaustion:
    async def test_acquire_timeout(self, executor, fake_pool):
        fake_pool.acquire_errors.append(asyncio.TimeoutError())

        with pytest.raises(PoolExhaustedException) as exc_info:
            await executor.query("SELECT 1")

        assert exc_info.value.code == "POOL_EXHAUSTED"
        assert exc_info.value.status_code == 503
        assert executor.pool_stats()["waiting"] == 0


class TestTelemetry:
    async def test_slow_query_logged(self, executor, fake_conn, caplog):
        executor.slow_query_threshold_ms = 0
        with caplog.at_level("WARNING", logger="db.executor"):
            await executor.query("SELECT 1")
        assert executor.stats.slow == 1
        assert any("Slow query" in record.message for record in caplog.records)

    async def test_stats_accumulate(self, executor):
        await executor.query("SELECT 1")
        await executor.query("SELECT 2")
        stats = executor.stats.as_dict()
        assert stats["total"] == 2
        assert stats["failed"] == 0

    def test_pool_stats(self, executor):
        stats = executor.pool_stats()
        assert stats["open"] is True
        assert stats["max_size"] == 4
        assert stats["in_use"] == 0

    def test_pool_stats_when_closed(self):
        stats = PooledExecutor("postgresql://x", min_size=1, max_size=3).pool_stats()
        assert stats == {"open": False, "min_size": 1, "max_size": 3}


class TestHealthCheck:
    """health_check reports instead of raising"""

    async def test_healthy(self, executor, fake_conn):
        fake_conn.on("health_check", rows=[{"health_check": 1}])
        health = await executor.health_check()
        assert health["healthy"] is True
        assert health["error"] is None
        assert health["pool"]["open"] is True
        assert health["latency_ms"] >= 0

    async def test_unhealthy_does_not_raise(self, executor, fake_conn):
        fake_conn.on("health_check", error=ConnectionResetError("gone"))
        health = await executor.health_check()
        assert health["healthy"] is False
        assert health["error"] == "Database is unavailable"

    async def test_closed_pool(self):
        health = await PooledExecutor("postgresql://x").health_check()
        assert health["healthy"] is False
        assert "not open" in health["error"]

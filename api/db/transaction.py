"""BEGIN/COMMIT/ROLLBACK scopes bound to a single pooled connection."""

import enum
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from core.exceptions import ConfigurationError, RecipeAPIException
from .errors import map_database_error
from .executor import PooledExecutor, QueryResult
from .query_builder import require_field

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionState(str, enum.Enum):
    IDLE = "idle"
    BEGAN = "began"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    RELEASED = "released"


class TransactionHandle:
    """The only way a unit of work should talk to the database.

    Statements sent through the executor instead would run on another
    connection, outside this transaction.
    """

    def __init__(self, executor: PooledExecutor, conn):
        self._executor = executor
        self._conn = conn
        self.closed = False

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        if self.closed:
            raise ConfigurationError("Transaction handle used after its transaction ended")
        try:
            return await self._executor.run(self._conn, sql, params)
        except RecipeAPIException:
            raise
        except Exception as e:
            raise map_database_error(e) from e

    @asynccontextmanager
    async def savepoint(self, name: str):
        """Isolate a group of statements; on error only they are rolled back."""
        require_field(name)
        await self.query(f"SAVEPOINT {name}")
        try:
            yield self
        except BaseException:
            await self.query(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        await self.query(f"RELEASE SAVEPOINT {name}")


class TransactionCoordinator:
    """Runs a unit of work inside one transaction on one connection."""

    def __init__(self, executor: PooledExecutor):
        self.executor = executor
        self.state = TransactionState.IDLE
        self.history = [TransactionState.IDLE]

    def _enter(self, state: TransactionState) -> None:
        self.state = state
        self.history.append(state)

    async def with_transaction(self, unit_of_work: Callable[[TransactionHandle], Awaitable[T]]) -> T:
        """Commit when ``unit_of_work`` returns, roll back and re-raise when it fails.

        The connection goes back to the pool on every path.
        """
        try:
            conn = await self.executor.acquire()
        except RecipeAPIException:
            raise
        except Exception as e:
            logger.error(f"Could not acquire a connection for a transaction: {e}")
            raise map_database_error(e) from e
        handle: Optional[TransactionHandle] = None
        try:
            await self._execute(conn, "BEGIN")
            self._enter(TransactionState.BEGAN)
            handle = TransactionHandle(self.executor, conn)

            try:
                result = await unit_of_work(handle)
            except BaseException:
                await self._rollback(conn)
                raise

            try:
                await self._execute(conn, "COMMIT")
            except BaseException:
                await self._rollback(conn)
                raise
            self._enter(TransactionState.COMMITTED)
            return result
        finally:
            if handle is not None:
                handle.closed = True
            await self.executor.release(conn)
            self._enter(TransactionState.RELEASED)

    async def _execute(self, conn, statement: str) -> None:
        try:
            await self.executor.run(conn, statement)
        except RecipeAPIException:
            raise
        except Exception as e:
            raise map_database_error(e) from e

    async def _rollback(self, conn) -> None:
        try:
            await self.executor.run(conn, "ROLLBACK")
        except Exception as e:
            # The original failure is what the caller needs to see.
            logger.error(f"Rollback failed: {type(e).__name__}: {str(e)}")
        self._enter(TransactionState.ROLLED_BACK)

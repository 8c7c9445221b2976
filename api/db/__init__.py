from .db_core import Database
from .executor import PooledExecutor, QueryResult
from .transaction import TransactionCoordinator, TransactionHandle, TransactionState

__all__ = [
    "Database",
    "PooledExecutor",
    "QueryResult",
    "TransactionCoordinator",
    "TransactionHandle",
    "TransactionState",
]

from fastapi import Request

from core.exceptions import ConnectionException
from db.db_core import Database
from db.executor import PooledExecutor


def get_executor(request: Request) -> PooledExecutor:
    """FastAPI dependency for the executor opened in the lifespan hook"""
    executor = getattr(request.app.state, "executor", None)
    if executor is None:
        raise ConnectionException("Database connection pool is not initialized")
    return executor


def get_db(request: Request) -> Database:
    """FastAPI dependency for database access"""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise ConnectionException("Database connection pool is not initialized")
    return db

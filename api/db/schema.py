"""Apply ``schema-deploy/schema.sql`` one statement at a time."""

import logging
import os
from typing import List

import sqlparse

from .executor import PooledExecutor

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "..", "..", "schema-deploy", "schema.sql"
)


def load_statements(schema_path: str = SCHEMA_PATH) -> List[str]:
    """Split the schema file into executable statements, dropping comments."""
    with open(schema_path, "r") as f:
        schema_sql = f.read()
    statements = []
    for statement in sqlparse.split(schema_sql):
        cleaned = sqlparse.format(statement, strip_comments=True).strip()
        if cleaned:
            statements.append(cleaned)
    return statements


async def apply_schema(executor: PooledExecutor, schema_path: str = SCHEMA_PATH) -> int:
    """Create tables and indexes that do not exist yet; returns the statement count."""
    statements = load_statements(schema_path)
    logger.info(f"Found {len(statements)} SQL statements to execute")
    for i, statement in enumerate(statements):
        logger.debug(f"Executing statement {i + 1}/{len(statements)}")
        await executor.query(statement)
    return len(statements)

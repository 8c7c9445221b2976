"""
Tests for schema loading and application
"""

import pytest
from unittest.mock import AsyncMock

from db.schema import SCHEMA_PATH, apply_schema, load_statements


class TestLoadStatements:
    def test_schema_file_splits_into_statements(self):
        statements = load_statements()
        tables = [s for s in statements if s.upper().startswith("CREATE TABLE")]
        assert len(tables) == 6
        assert all(not s.startswith("--") for s in statements)

    def test_comments_and_blank_statements_dropped(self, tmp_path):
        schema = tmp_path / "schema.sql"
        schema.write_text(
            "-- categories\nCREATE TABLE a (id INT);\n\n/* note */\nCREATE INDEX i ON a(id);\n\n-- trailing\n"
        )
        statements = load_statements(str(schema))
        assert len(statements) == 2
        assert statements[0].startswith("CREATE TABLE a")
        assert statements[1].startswith("CREATE INDEX i")


@pytest.mark.asyncio
async def test_apply_schema_runs_each_statement():
    executor = AsyncMock()
    count = await apply_schema(executor, SCHEMA_PATH)
    assert count == executor.query.await_count
    assert count >= 6

"""
Tests for driver error classification and mapping
"""

import errno
import socket

import pytest

from conftest import FakeDriverError
from core.exceptions import (
    ConnectionException,
    ConstraintViolationException,
    DatabaseException,
    NotFoundException,
)
from db.errors import is_transient_error, map_database_error


class TestTransientClassification:
    @pytest.mark.parametrize("sqlstate", ["08006", "08001", "57P01", "57P03"])
    def test_connection_sqlstates(self, sqlstate):
        assert is_transient_error(FakeDriverError("lost", sqlstate))

    def test_socket_errors(self):
        assert is_transient_error(socket.gaierror("no such host"))
        assert is_transient_error(ConnectionResetError())
        assert is_transient_error(OSError(errno.EHOSTUNREACH, "no route to host"))

    @pytest.mark.parametrize("sqlstate", ["23505", "42601", "40001", "22P02"])
    def test_statement_errors_not_transient(self, sqlstate):
        assert not is_transient_error(FakeDriverError("bad", sqlstate))

    def test_plain_exception_not_transient(self):
        assert not is_transient_error(ValueError("nope"))


class TestMapDatabaseError:
    """Driver failures become RecipeAPIException subclasses"""

    @pytest.mark.parametrize(
        "sqlstate,code,status_code",
        [
            ("23505", "DUPLICATE_RESOURCE", 409),
            ("23503", "INVALID_REFERENCE", 400),
            ("23502", "MISSING_REQUIRED_FIELD", 400),
            ("23514", "INVALID_FIELD_VALUE", 400),
        ],
    )
    def test_constraint_violations(self, sqlstate, code, status_code):
        mapped = map_database_error(FakeDriverError("raw server text", sqlstate, "some_constraint"))
        assert isinstance(mapped, ConstraintViolationException)
        assert mapped.code == code
        assert mapped.status_code == status_code
        assert mapped.constraint == "some_constraint"
        assert "raw server text" not in mapped.details

    def test_transient_becomes_unavailable(self):
        mapped = map_database_error(ConnectionRefusedError("refused"))
        assert isinstance(mapped, ConnectionException)
        assert mapped.status_code == 503

    def test_other_errors(self):
        mapped = map_database_error(FakeDriverError("division by zero", "22012"))
        assert type(mapped) is DatabaseException
        assert mapped.details == ["division by zero"]

    def test_api_exceptions_pass_through(self):
        original = NotFoundException("gone")
        assert map_database_error(original) is original

"""Tests for the PyMySQL adapter, using fake connections."""

from __future__ import annotations

import pymysql
import pytest
from pymysql.constants import FIELD_TYPE

from query_stats.adapters import mysql as mysql_module
from query_stats.adapters.mysql import MySQLAdapter, describe_columns, type_name
from query_stats.core.dsn import resolve_endpoint
from query_stats.core.errors import ConfigError, DatabaseConnectionError, QueryError


class _FakeCursor:
    def __init__(self, conn) -> None:
        self.conn = conn
        self.description = conn.description
        self.closed = False

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def execute(self, sql: str, args=None) -> None:
        self.conn.executed.append((sql, args))
        if self.conn.error is not None:
            raise self.conn.error

    def fetchall(self):
        return list(self.conn.rows)

    def __iter__(self):
        for row in self.conn.rows:
            if row is self.conn.poison:
                raise pymysql.err.OperationalError(2013, "Lost connection")
            yield row

    def close(self) -> None:
        self.closed = True


class _FakeConnection:
    def __init__(self, rows=(), description=None, error=None, poison=None) -> None:
        self.rows = list(rows)
        self.description = description
        self.error = error
        self.poison = poison
        self.executed: list = []
        self.cursors: list[_FakeCursor] = []
        self.cursor_classes: list = []

    def cursor(self, cursor_class=None) -> _FakeCursor:
        self.cursor_classes.append(cursor_class)
        cur = _FakeCursor(self)
        self.cursors.append(cur)
        return cur


DESCRIPTION = (
    ("id", FIELD_TYPE.LONGLONG, None, 20, 20, 0, False),
    ("email", FIELD_TYPE.VAR_STRING, None, 255, 255, 0, True),
    ("created", 18, None, 19, 19, 0, True),
    ("odd", 99, None, 1, 1, 0, True),
)


def test_describe_columns_maps_types_and_flags() -> None:
    cols = describe_columns(DESCRIPTION)

    assert [c.type_name for c in cols] == ["BIGINT", "VARCHAR", "DATETIME", "TYPE(99)"]
    assert [c.nullable for c in cols] == [False, True, True, True]
    assert [c.string_like for c in cols] == [False, True, False, False]


def test_describe_columns_without_result_set() -> None:
    assert describe_columns(None) == []


def test_type_name_covers_blob_family() -> None:
    assert type_name(FIELD_TYPE.MEDIUM_BLOB) == "MEDIUMBLOB"
    assert type_name(FIELD_TYPE.STRING) == "CHAR"


def test_connect_passes_target_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def _connect(**kwargs):  # type: ignore[no-untyped-def]
        seen.update(kwargs)
        return "conn"

    monkeypatch.setattr(mysql_module.pymysql, "connect", _connect)
    target = resolve_endpoint("mysql://bob:pw@db:3307/?connect_timeout=5&charset=utf8mb4&bogus=1")

    assert MySQLAdapter().connect(target) == "conn"
    assert seen["host"] == "db"
    assert seen["port"] == 3307
    assert seen["user"] == "bob"
    assert seen["password"] == "pw"
    assert seen["database"] is None
    assert seen["use_unicode"] is False
    assert seen["connect_timeout"] == 5
    assert seen["charset"] == "utf8mb4"
    assert "bogus" not in seen
    # no result decoders: values stay raw bytes
    assert not any(isinstance(key, int) for key in seen["conv"])


def test_bad_option_value_is_a_config_error() -> None:
    target = resolve_endpoint("mysql://bob@db/?read_timeout=soon")

    with pytest.raises(ConfigError):
        MySQLAdapter().connect_options(target)


def test_connect_failure_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _connect(**kwargs):  # type: ignore[no-untyped-def]
        raise pymysql.err.OperationalError(1045, "Access denied")

    monkeypatch.setattr(mysql_module.pymysql, "connect", _connect)

    with pytest.raises(DatabaseConnectionError, match="connect:"):
        MySQLAdapter().connect(resolve_endpoint("mysql://bob@db/"))


def test_set_session_var_binds_parameter() -> None:
    conn = _FakeConnection()

    MySQLAdapter().set_session_var(conn, "long_query_time", 2.5)

    assert conn.executed == [("SET SESSION `long_query_time` = %s", (2.5,))]


def test_set_session_var_failure_names_variable() -> None:
    conn = _FakeConnection(error=pymysql.err.OperationalError(1193, "Unknown system variable"))

    with pytest.raises(DatabaseConnectionError) as info:
        MySQLAdapter().set_session_var(conn, "nope", 1)

    assert info.value.variable == "nope"


def test_session_status_returns_pairs() -> None:
    conn = _FakeConnection(rows=[(b"Sort_rows", b"3"), (b"Uptime", b"99")])

    assert MySQLAdapter().session_status(conn) == [(b"Sort_rows", b"3"), (b"Uptime", b"99")]
    assert conn.executed[0][0] == "SHOW SESSION STATUS"


def test_session_status_failure_is_a_query_error() -> None:
    conn = _FakeConnection(error=pymysql.err.ProgrammingError(1064, "bad"))

    with pytest.raises(QueryError, match="show session status"):
        MySQLAdapter().session_status(conn)


def test_execute_streaming_uses_unbuffered_cursor() -> None:
    rows = [(b"1", b"a@b.c", None, b"x")]
    conn = _FakeConnection(rows=rows, description=DESCRIPTION)

    with MySQLAdapter().execute_streaming(conn, "select 1") as result:
        assert [c.name for c in result.columns] == ["id", "email", "created", "odd"]
        assert list(result) == rows

    assert conn.cursor_classes == [pymysql.cursors.SSCursor]
    assert conn.cursors[0].closed is True


def test_execute_streaming_failure_closes_cursor() -> None:
    conn = _FakeConnection(error=pymysql.err.ProgrammingError(1064, "syntax"))

    with pytest.raises(QueryError, match="query:"):
        MySQLAdapter().execute_streaming(conn, "selec 1")

    assert conn.cursors[0].closed is True


def test_mid_stream_error_is_a_query_error() -> None:
    poison = (b"2", None, None, None)
    conn = _FakeConnection(rows=[(b"1", None, None, None), poison], description=DESCRIPTION, poison=poison)

    with pytest.raises(QueryError, match="Lost connection"):
        with MySQLAdapter().execute_streaming(conn, "select 1") as result:
            list(result)

    assert conn.cursors[0].closed is True

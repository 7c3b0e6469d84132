"""MySQL adapter implementation.

This adapter:
- Uses PyMySQL to connect
- Streams results through an unbuffered SSCursor
- Disables result decoders and unicode decoding so every value arrives as the
  raw text-protocol bytes the server sent
- Reads session counters with SHOW SESSION STATUS
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Optional, Sequence

import pymysql
import pymysql.cursors
from pymysql import converters
from pymysql.constants import FIELD_TYPE

from query_stats.core.dsn import ConnectionTarget
from query_stats.core.errors import ConfigError, DatabaseConnectionError, QueryError
from query_stats.core.types import ColumnMeta
from query_stats.core.util import quote_ident

LOG = logging.getLogger(__name__)

# Binlog-only temporal types, not exported by pymysql.constants.
TIMESTAMP2 = 17
DATETIME2 = 18
TIME2 = 19

TYPE_NAMES: dict[int, str] = {
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.LONG: "INT",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.NULL: "NULL",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    TIMESTAMP2: "TIMESTAMP",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.TIME: "TIME",
    TIME2: "TIME",
    FIELD_TYPE.DATETIME: "DATETIME",
    DATETIME2: "DATETIME",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.VARCHAR: "VARCHAR",
    FIELD_TYPE.VAR_STRING: "VARCHAR",
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.ENUM: "ENUM",
    FIELD_TYPE.SET: "SET",
    FIELD_TYPE.TINY_BLOB: "TINYBLOB",
    FIELD_TYPE.MEDIUM_BLOB: "MEDIUMBLOB",
    FIELD_TYPE.LONG_BLOB: "LONGBLOB",
    FIELD_TYPE.BLOB: "BLOB",
    FIELD_TYPE.STRING: "CHAR",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
}

STRING_TYPES = frozenset(
    {
        FIELD_TYPE.VARCHAR,
        FIELD_TYPE.VAR_STRING,
        FIELD_TYPE.STRING,
        FIELD_TYPE.BLOB,
        FIELD_TYPE.TINY_BLOB,
        FIELD_TYPE.MEDIUM_BLOB,
        FIELD_TYPE.LONG_BLOB,
        FIELD_TYPE.ENUM,
        FIELD_TYPE.SET,
    }
)

OPTION_TYPES: dict[str, Callable[[str], Any]] = {
    "charset": str,
    "connect_timeout": int,
    "read_timeout": int,
    "write_timeout": int,
    "unix_socket": str,
    "init_command": str,
    "ssl_ca": str,
    "ssl_cert": str,
    "ssl_key": str,
}


def type_name(type_code: int) -> str:
    return TYPE_NAMES.get(type_code, f"TYPE({type_code})")


def describe_columns(description: Optional[Sequence[Sequence[Any]]]) -> list[ColumnMeta]:
    """Build column metadata from a DB-API cursor description."""
    columns: list[ColumnMeta] = []
    for item in description or ():
        name, type_code, null_ok = item[0], int(item[1]), item[6]
        columns.append(
            ColumnMeta(
                name=str(name),
                type_code=type_code,
                type_name=type_name(type_code),
                nullable=bool(null_ok),
                string_like=type_code in STRING_TYPES,
            )
        )
    return columns


class MySQLStreamingResult:
    """Rows of an unbuffered cursor; closing drains whatever is left."""

    def __init__(self, cursor) -> None:
        self._cursor = cursor
        self.columns = describe_columns(cursor.description)

    def __enter__(self) -> "MySQLStreamingResult":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._cursor.close()
        except pymysql.MySQLError as err:
            if exc is None:
                raise QueryError(f"query: {err}") from err
            LOG.warning("failed to close cursor after error: %s", err)

    def __iter__(self) -> Iterator[Sequence[Any]]:
        try:
            for row in self._cursor:
                yield row
        except pymysql.MySQLError as exc:
            raise QueryError(f"query: {exc}") from exc


class MySQLAdapter:
    """MySQL adapter."""

    name = "mysql"

    def connect(self, target: ConnectionTarget):
        kwargs: dict[str, Any] = {
            "host": target.host,
            "port": target.port,
            "user": target.username,
            "password": target.password,
            "database": target.database or None,
            "use_unicode": False,
            "conv": dict(converters.encoders),
        }
        kwargs.update(self.connect_options(target))
        LOG.debug("connecting to %s", target)
        try:
            return pymysql.connect(**kwargs)
        except pymysql.MySQLError as exc:
            raise DatabaseConnectionError(f"connect: {exc}") from exc

    def connect_options(self, target: ConnectionTarget) -> dict[str, Any]:
        """Map descriptor options onto PyMySQL connect arguments."""
        out: dict[str, Any] = {}
        for key, values in target.options.items():
            cast = OPTION_TYPES.get(key)
            if cast is None:
                LOG.warning("ignoring unsupported connection option %r", key)
                continue
            try:
                out[key] = cast(values[-1])
            except ValueError as exc:
                raise ConfigError(f"option {key}: {exc}") from exc
        return out

    def close(self, conn) -> None:
        try:
            conn.close()
        except pymysql.MySQLError as exc:
            raise DatabaseConnectionError(f"close: {exc}") from exc

    def set_session_var(self, conn, name: str, value: Any) -> None:
        try:
            with conn.cursor() as cur:
                cur.execute(f"SET SESSION {quote_ident(name)} = %s", (value,))
        except pymysql.MySQLError as exc:
            raise DatabaseConnectionError(f"set-var {name}: {exc}", variable=name) from exc

    def session_status(self, conn) -> list[tuple[Any, Any]]:
        try:
            with conn.cursor() as cur:
                cur.execute("SHOW SESSION STATUS")
                return [(row[0], row[1]) for row in cur.fetchall()]
        except pymysql.MySQLError as exc:
            raise QueryError(f"show session status: {exc}") from exc

    def execute_streaming(self, conn, sql: str) -> MySQLStreamingResult:
        cur = conn.cursor(pymysql.cursors.SSCursor)
        try:
            cur.execute(sql)
        except pymysql.MySQLError as exc:
            try:
                cur.close()
            except pymysql.MySQLError as err:
                LOG.warning("failed to close cursor after error: %s", err)
            raise QueryError(f"query: {exc}") from exc
        return MySQLStreamingResult(cur)

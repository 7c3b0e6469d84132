from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import pytest

from query_stats.core.errors import DatabaseConnectionError, QueryError
from query_stats.core.types import ColumnMeta

DEFAULT_COLUMNS = (
    ColumnMeta("id", 3, "INT", nullable=False, string_like=False),
    ColumnMeta("name", 253, "VARCHAR", nullable=True, string_like=True),
)


class FakeResult:
    def __init__(self, columns, rows, fail_at: Optional[int] = None) -> None:
        self.columns = list(columns)
        self._rows = rows
        self._fail_at = fail_at
        self.closed = False

    def __enter__(self) -> "FakeResult":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    def __iter__(self):
        for idx, row in enumerate(self._rows):
            if idx == self._fail_at:
                raise QueryError("query: lost connection")
            yield row


class FakeAdapter:
    """In-memory adapter recording every call."""

    name = "fake"

    def __init__(
        self,
        columns: Sequence[ColumnMeta] = DEFAULT_COLUMNS,
        rows: Sequence[Sequence[Any]] = (),
        statuses: Sequence[Sequence[tuple[str, str]]] = ((), ()),
        fail_connect: bool = False,
        fail_var: Optional[str] = None,
        fail_query: bool = False,
        fail_at: Optional[int] = None,
    ) -> None:
        self.columns = columns
        self.rows = list(rows)
        self.statuses = list(statuses)
        self.fail_connect = fail_connect
        self.fail_var = fail_var
        self.fail_query = fail_query
        self.fail_at = fail_at
        self.connected_to = None
        self.closed = False
        self.session_vars: list[tuple[str, Any]] = []
        self.result: Optional[FakeResult] = None

    def connect(self, target):
        if self.fail_connect:
            raise DatabaseConnectionError("connect: access denied")
        self.connected_to = target
        return object()

    def close(self, conn) -> None:
        self.closed = True

    def set_session_var(self, conn, name: str, value: Any) -> None:
        if name == self.fail_var:
            raise DatabaseConnectionError(f"set-var {name}: unknown variable", variable=name)
        self.session_vars.append((name, value))

    def session_status(self, conn):
        return self.statuses.pop(0) if self.statuses else ()

    def execute_streaming(self, conn, sql: str) -> FakeResult:
        if self.fail_query:
            raise QueryError("query: syntax error")
        self.result = FakeResult(self.columns, self.rows, self.fail_at)
        return self.result


@pytest.fixture
def make_adapter() -> Callable[..., FakeAdapter]:
    return FakeAdapter

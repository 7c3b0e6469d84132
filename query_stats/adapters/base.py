"""Adapter protocol for database-specific connections and introspection."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Optional, Protocol, Sequence

from query_stats.core.dsn import ConnectionTarget
from query_stats.core.types import ColumnMeta


class StreamingResult(Protocol):
    """Unbuffered result set; rows are yielded as they arrive."""

    columns: Sequence[ColumnMeta]

    def __enter__(self) -> "StreamingResult":
        ...

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        ...

    def __iter__(self) -> Iterator[Sequence[Any]]:
        ...


class DatabaseAdapter(Protocol):
    """Database adapter protocol."""

    name: str

    def connect(self, target: ConnectionTarget):
        ...

    def close(self, conn) -> None:
        ...

    def set_session_var(self, conn, name: str, value: Any) -> None:
        ...

    def session_status(self, conn) -> Iterable[tuple[Any, Any]]:
        ...

    def execute_streaming(self, conn, sql: str) -> StreamingResult:
        ...

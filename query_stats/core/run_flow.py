"""End-to-end run flow: connect -> set vars -> snapshot -> stream -> snapshot -> diff.

This module computes a structured result dict. Rendering is handled by formatters.
"""

from __future__ import annotations

import enum
import logging
import time
from typing import Any, Callable, Optional, Sequence

from query_stats.adapters.base import DatabaseAdapter
from query_stats.core.dsn import ConnectionTarget
from query_stats.core.errors import QueryStatsError
from query_stats.core.stats import (
    ColumnStatsAggregator,
    RowSizeAggregator,
    column_display,
    row_summary,
)
from query_stats.core.status import STATUS_GROUPS, diff_status, snapshot
from query_stats.core.types import ColumnStat, RowSizeStat, StatusGroup
from query_stats.core.util import infer_value, parse_set_var

LOG = logging.getLogger(__name__)

Renderer = Callable[[dict[str, Any]], Any]


class RunState(str, enum.Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    VARIABLES_APPLIED = "variables_applied"
    BASELINE_CAPTURED = "baseline_captured"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    REPORTED = "reported"
    CLOSED = "closed"
    ABORTED = "aborted"


class RunPipeline:
    """One query run over one exclusively owned connection.

    Every run builds fresh aggregators and snapshots; nothing is shared
    between instances. The connection is released on every exit path.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        target: ConnectionTarget,
        set_vars: Sequence[str] = (),
        groups: Sequence[StatusGroup] = STATUS_GROUPS,
    ) -> None:
        self.adapter = adapter
        self.target = target
        self.set_vars = list(set_vars)
        self.groups = groups
        self.state = RunState.IDLE

    def run(self, query: str, render: Optional[Renderer] = None) -> dict[str, Any]:
        """Execute `query` and return the result dict.

        Args:
            query: SQL text to execute in streaming mode.
            render: Optional callable handed the finished result.

        Returns:
            A dict with meta, execution time, session status changes, the
            row size summary and per-column statistics.

        Raises:
            DatabaseConnectionError: connect, session variable or close failed.
            VarParseError: a session variable token is malformed.
            QueryError: the query or a status snapshot failed.
        """
        try:
            conn = self.adapter.connect(self.target)
        except BaseException:
            self._transition(RunState.ABORTED)
            raise
        self._transition(RunState.CONNECTED)

        try:
            self._apply_session_vars(conn)
            self._transition(RunState.VARIABLES_APPLIED)

            before = snapshot(self.adapter, conn)
            self._transition(RunState.BASELINE_CAPTURED)

            elapsed, columns, rows = self._stream(conn, query)
            self._transition(RunState.FINALIZED)

            after = snapshot(self.adapter, conn)
            result = build_result(
                self.target,
                query,
                elapsed,
                columns,
                rows,
                diff_status(before, after, self.groups),
            )
            if render is not None:
                render(result)
            self._transition(RunState.REPORTED)
        except BaseException:
            self._transition(RunState.ABORTED)
            self._close_after_error(conn)
            raise

        try:
            self.adapter.close(conn)
        except BaseException:
            self._transition(RunState.ABORTED)
            raise
        self._transition(RunState.CLOSED)
        return result

    def _apply_session_vars(self, conn) -> None:
        for token in self.set_vars:
            name, raw = parse_set_var(token)
            value = infer_value(raw)
            LOG.debug("SET SESSION %s = %r", name, value)
            self.adapter.set_session_var(conn, name, value)

    def _stream(self, conn, query: str) -> tuple[float, list[ColumnStat], RowSizeStat]:
        columns: Optional[ColumnStatsAggregator] = None
        rows = RowSizeAggregator()
        started = time.perf_counter()
        with self.adapter.execute_streaming(conn, query) as result:
            self._transition(RunState.STREAMING)
            for row in result:
                if columns is None:
                    columns = ColumnStatsAggregator.from_columns(result.columns)
                rows.observe(columns.observe(row))
            # no rows: still report every column, with zero counts
            if columns is None:
                columns = ColumnStatsAggregator.from_columns(result.columns)
        elapsed = time.perf_counter() - started
        LOG.debug("streamed %d rows in %.6fs", rows.stat.rows, elapsed)
        return elapsed, columns.finalize(), rows.finalize()

    def _close_after_error(self, conn) -> None:
        try:
            self.adapter.close(conn)
        except QueryStatsError as exc:
            LOG.warning("failed to close connection after error: %s", exc)

    def _transition(self, state: RunState) -> None:
        LOG.debug("run state %s -> %s", self.state.value, state.value)
        self.state = state


def build_result(
    target: ConnectionTarget,
    query: str,
    elapsed: float,
    columns: Sequence[ColumnStat],
    rows: RowSizeStat,
    changes: Sequence[tuple[str, Sequence[tuple[str, int]]]],
) -> dict[str, Any]:
    """Assemble the structured result consumed by the formatters."""
    return {
        "meta": {"endpoint": target.redacted(), "query": query},
        "execution": {"elapsed_s": elapsed},
        "status_changes": [
            {
                "title": title,
                "counters": [{"name": name, "delta": delta} for name, delta in entries],
            }
            for title, entries in changes
        ],
        "summary": row_summary(rows),
        "columns": [column_display(c) for c in columns],
    }

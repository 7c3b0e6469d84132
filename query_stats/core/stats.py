"""Streaming per-column and per-row size statistics.

Both aggregators keep O(1) state per column and advance together, one row at
a time, in arrival order.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from query_stats.core.types import ColumnMeta, ColumnStat, RowSizeStat


def value_length(value: Any) -> int:
    """Byte length of a non-null result value."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    return len(str(value).encode("utf-8"))


class ColumnStatsAggregator:
    """Per-column length, null and empty-value counters."""

    __slots__ = ("_stats",)

    def __init__(self, stats: list[ColumnStat]) -> None:
        self._stats = stats

    @classmethod
    def from_columns(cls, columns: Sequence[ColumnMeta]) -> "ColumnStatsAggregator":
        return cls([ColumnStat.from_meta(c) for c in columns])

    def observe(self, row: Sequence[Any]) -> int:
        """Fold one row into the column stats and return its size in bytes.

        Null values count toward `null_count` and add nothing to the row size.
        """
        row_size = 0
        for stat, value in zip(self._stats, row):
            if value is None:
                stat.null_count += 1
                continue
            length = value_length(value)
            if length == 0:
                stat.empty_count += 1
            if stat.min_len is None or length < stat.min_len:
                stat.min_len = length
            if length > stat.max_len:
                stat.max_len = length
            stat.sum_len += length
            stat.count += 1
            row_size += length
        return row_size

    def finalize(self) -> list[ColumnStat]:
        return self._stats


class RowSizeAggregator:
    __slots__ = ("stat",)

    def __init__(self) -> None:
        self.stat = RowSizeStat()

    def observe(self, row_size: int) -> None:
        s = self.stat
        s.rows += 1
        s.total += row_size
        if s.min_size is None or row_size < s.min_size:
            s.min_size = row_size
        if row_size > s.max_size:
            s.max_size = row_size

    def finalize(self) -> RowSizeStat:
        return self.stat


def column_display(stat: ColumnStat) -> dict[str, Any]:
    """Display values for one column; None marks a placeholder.

    Lengths are undefined without non-null values, empty counts only apply to
    string-like types and null counts only to nullable columns.
    """
    seen = stat.count > 0
    return {
        "name": stat.name,
        "type": stat.type_name,
        "min_len": stat.min_len if seen else None,
        "max_len": stat.max_len if seen else None,
        "avg_len": stat.avg_len if seen else None,
        "total_len": stat.sum_len if seen else None,
        "empty": stat.empty_count if stat.string_like else None,
        "nulls": stat.null_count if stat.nullable else None,
    }


def row_summary(stat: RowSizeStat) -> dict[str, int]:
    """Row count and size figures; all zero for an empty result."""
    min_size: Optional[int] = stat.min_size
    return {
        "rows": stat.rows,
        "total_bytes": stat.total,
        "min_row_bytes": min_size if min_size is not None else 0,
        "avg_row_bytes": stat.avg_size,
        "max_row_bytes": stat.max_size,
    }

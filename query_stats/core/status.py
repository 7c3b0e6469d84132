"""Session status snapshots and before/after counter diffs."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Sequence

from query_stats.adapters.base import DatabaseAdapter
from query_stats.core.types import StatusGroup

STATUS_GROUPS: tuple[StatusGroup, ...] = (
    StatusGroup(
        "Rows Examined (Handler)",
        (
            "Handler_read_first",
            "Handler_read_key",
            "Handler_read_last",
            "Handler_read_next",
            "Handler_read_prev",
            "Handler_read_rnd",
            "Handler_read_rnd_next",
        ),
    ),
    StatusGroup(
        "Temp Tables",
        ("Created_tmp_disk_tables", "Created_tmp_files", "Created_tmp_tables"),
    ),
    StatusGroup("Sort", ("Sort_merge_passes", "Sort_range", "Sort_rows", "Sort_scan")),
    StatusGroup(
        "Select",
        (
            "Select_full_join",
            "Select_full_range_join",
            "Select_range",
            "Select_range_check",
            "Select_scan",
        ),
    ),
)

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def parse_counter(value: Any) -> int:
    """Leading integer of a status value; anything else reads as 0.

    Non-numeric values are not reported, so a genuine parse problem shows up
    as a zero counter.
    """
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", "replace")
    m = _LEADING_INT.match(str(value)) if value is not None else None
    return int(m.group(1)) if m else 0


def snapshot(adapter: DatabaseAdapter, conn) -> dict[str, int]:
    """Capture the session status counters of `conn`."""
    return {
        str(name.decode() if isinstance(name, bytes) else name): parse_counter(value)
        for name, value in adapter.session_status(conn)
    }


def diff_status(
    before: Mapping[str, int],
    after: Mapping[str, int],
    groups: Iterable[StatusGroup] = STATUS_GROUPS,
) -> list[tuple[str, list[tuple[str, int]]]]:
    """Non-zero `after - before` deltas per group, in declaration order.

    Groups where every delta is zero are left out.
    """
    out: list[tuple[str, list[tuple[str, int]]]] = []
    for group in groups:
        entries: Sequence[tuple[str, int]] = [
            (name, after.get(name, 0) - before.get(name, 0)) for name in group.names
        ]
        changed = [(name, delta) for name, delta in entries if delta != 0]
        if changed:
            out.append((group.title, changed))
    return out

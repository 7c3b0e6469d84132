"""Markdown formatter suitable for tickets and PR comments."""

from __future__ import annotations

from typing import Any, Optional

from query_stats.core.util import format_bytes, format_duration


def _md_table(rows: list[list[str]]) -> str:
    header = "| " + " | ".join(rows[0]) + " |"
    sep = "|" + "|".join(["---"] * len(rows[0])) + "|"
    body = "\n".join(["| " + " | ".join(r) + " |" for r in rows[1:]])
    return "\n".join([header, sep, body]) if body else "\n".join([header, sep])


def _cell(value: Optional[int], as_bytes: bool = True) -> str:
    if value is None:
        return "-"
    return format_bytes(value) if as_bytes else str(value)


def render(result: dict[str, Any]) -> str:
    """Render a query statistics result as Markdown."""
    meta = result.get("meta", {})
    execution = result.get("execution", {})

    lines: list[str] = []
    lines.append(f"## query-stats: `{meta.get('endpoint')}`")
    lines.append(f"**Execution time:** {format_duration(execution.get('elapsed_s', 0.0))}")
    lines.append("")

    changes = result.get("status_changes") or []
    if changes:
        lines.append("### Session status changes")
        rows = [["Group", "Counter", "Delta"]]
        for group in changes:
            for counter in group.get("counters", []):
                rows.append([group["title"], counter["name"], f"{counter['delta']:+d}"])
        lines.append(_md_table(rows))
        lines.append("")

    s = result.get("summary", {})
    lines.append("### Result summary")
    lines.append(
        _md_table(
            [
                ["Metric", "Value"],
                ["Rows returned", str(s.get("rows", 0))],
                ["Total data size", format_bytes(s.get("total_bytes", 0))],
                ["Min row size", format_bytes(s.get("min_row_bytes", 0))],
                ["Avg row size", format_bytes(s.get("avg_row_bytes", 0))],
                ["Max row size", format_bytes(s.get("max_row_bytes", 0))],
            ]
        )
    )
    lines.append("")

    columns = result.get("columns") or []
    if columns:
        lines.append("### Column statistics")
        rows = [["Column", "Type", "MinLen", "MaxLen", "AvgLen", "Total", "Empty", "Null"]]
        for c in columns:
            rows.append(
                [
                    f"`{c['name']}`",
                    c["type"],
                    _cell(c.get("min_len")),
                    _cell(c.get("max_len")),
                    _cell(c.get("avg_len")),
                    _cell(c.get("total_len")),
                    _cell(c.get("empty"), as_bytes=False),
                    _cell(c.get("nulls"), as_bytes=False),
                ]
            )
        lines.append(_md_table(rows))
        lines.append("")

    return "\n".join(lines).strip()

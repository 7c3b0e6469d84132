"""Rich formatter for interactive CLI output."""

from __future__ import annotations

from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from query_stats.core.util import format_bytes, format_duration

console = Console()

PLACEHOLDER = "-"


def _bytes_or_dash(value: Optional[int]) -> str:
    return PLACEHOLDER if value is None else format_bytes(value)


def _int_or_dash(value: Optional[int]) -> str:
    return PLACEHOLDER if value is None else str(value)


def render(result: dict[str, Any]) -> None:
    """
    Render a query statistics result using Rich formatted tables and panels.

    Args:
        result (dict[str, Any]): The dict built by `run_flow.build_result`:
            - meta (dict): endpoint (redacted) and query text
            - execution (dict): elapsed_s
            - status_changes (list): groups of non-zero counter deltas
            - summary (dict): rows and total/min/avg/max row bytes
            - columns (list): per-column display values, None as placeholder

    Displays:
        - Header panel with endpoint and execution time
        - Session status changes, one table per group (only when non-empty)
        - Result summary table
        - Column statistics table (only when the result has columns)
    """
    meta = result.get("meta", {})
    execution = result.get("execution", {})

    console.print(
        Panel.fit(
            "\n".join(
                [
                    f"[bold]{escape(str(meta.get('endpoint')))}[/bold]",
                    f"Execution time: {format_duration(execution.get('elapsed_s', 0.0))}",
                ]
            ),
            title="Query Execution",
        )
    )

    for group in result.get("status_changes") or []:
        t = Table(title=f"Session Status Changes: {group['title']}")
        t.add_column("Counter")
        t.add_column("Delta", justify="right")
        for counter in group.get("counters", []):
            t.add_row(escape(counter["name"]), f"{counter['delta']:+d}")
        console.print(t)

    s = result.get("summary", {})
    summary = Table(title="Result Summary")
    summary.add_column("Metric")
    summary.add_column("Value", justify="right")
    summary.add_row("Rows returned", str(s.get("rows", 0)))
    summary.add_row("Total data size", format_bytes(s.get("total_bytes", 0)))
    summary.add_row("Min row size", format_bytes(s.get("min_row_bytes", 0)))
    summary.add_row("Avg row size", format_bytes(s.get("avg_row_bytes", 0)))
    summary.add_row("Max row size", format_bytes(s.get("max_row_bytes", 0)))
    console.print(summary)

    columns = result.get("columns") or []
    if columns:
        cols = Table(title="Column Statistics")
        cols.add_column("Column")
        cols.add_column("Type")
        for header in ("MinLen", "MaxLen", "AvgLen", "Total", "Empty", "Null"):
            cols.add_column(header, justify="right")
        for c in columns:
            cols.add_row(
                escape(c["name"]),
                c["type"],
                _bytes_or_dash(c.get("min_len")),
                _bytes_or_dash(c.get("max_len")),
                _bytes_or_dash(c.get("avg_len")),
                _bytes_or_dash(c.get("total_len")),
                _int_or_dash(c.get("empty")),
                _int_or_dash(c.get("nulls")),
            )
        console.print(cols)

from __future__ import annotations

import logging
import sys
from typing import IO, Any, Callable

import typer
from rich.console import Console
from rich.logging import RichHandler

from query_stats.adapters.mysql import MySQLAdapter
from query_stats.core.dsn import ConnectionTarget, parse_endpoint_option, prompt_for_password
from query_stats.core.errors import QueryStatsError
from query_stats.core.run_flow import RunPipeline
from query_stats.formatters import json_fmt, markdown_fmt, rich_fmt

VERSION = "0.1.0"

app = typer.Typer(add_completion=False)
err_console = Console(stderr=True)

LOG = logging.getLogger("query_stats")


# ----------------------------
# helpers
# ----------------------------

def configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    LOG.handlers[:] = [handler]
    LOG.setLevel(logging.DEBUG if verbose else logging.WARNING)
    LOG.propagate = False


def read_query(stream: IO[str] | None = None) -> str:
    """Read the query text, prompting on stderr when stdin is a terminal."""
    stream = stream or sys.stdin
    if stream.isatty():
        err_console.print("Enter query (Ctrl+D to run, Ctrl+C to abort):")
        try:
            text = stream.read()
        except KeyboardInterrupt:
            err_console.print("^C")
            raise typer.Exit(code=130)
    else:
        text = stream.read()
    return text.strip()


def _printer(render: Callable[[dict[str, Any]], str]) -> Callable[[dict[str, Any]], None]:
    def _print(result: dict[str, Any]) -> None:
        typer.echo(render(result))

    return _print


RENDERERS: dict[str, Callable[[dict[str, Any]], None]] = {
    "rich": rich_fmt.render,
    "json": _printer(json_fmt.render),
    "markdown": _printer(markdown_fmt.render),
}


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"query-stats {VERSION}")
        raise typer.Exit()


# ----------------------------
# CLI
# ----------------------------

@app.command()
def main(
    dsn: ConnectionTarget = typer.Argument(
        ...,
        parser=parse_endpoint_option,
        envvar="QUERY_STATS_DSN",
        metavar="DSN",
        help="Syntax is mysql://[user[:password]@]host[:port]/[database][?options]",
    ),
    set_var: list[str] | None = typer.Option(
        None, "--set-var", help="Set a MySQL session variable (name=value)"),
    query: str | None = typer.Option(
        None, "--query", "-e", help="Query to run (default: read from stdin)"),
    fmt: str = typer.Option("rich", "--format",
                            help="Output format: rich|json|markdown"),
    ask_pass: bool = typer.Option(
        False, "--ask-pass", "-p", help="Prompt for the password"),
    verbose: bool = typer.Option(False, "--verbose", "-v",
                                 help="Log connection and run details"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit"),
):
    """Run one query and report result set and session statistics."""
    if fmt not in RENDERERS:
        raise typer.BadParameter(
            f"expected one of {', '.join(RENDERERS)}", param_hint="--format")

    configure_logging(verbose)

    if ask_pass:
        dsn = dsn.with_password(prompt_for_password())

    text = query.strip() if query is not None else read_query()
    if not text:
        typer.echo("error: empty query", err=True)
        raise typer.Exit(code=1)

    pipeline = RunPipeline(MySQLAdapter(), dsn, set_var or [])
    try:
        pipeline.run(text, render=RENDERERS[fmt])
    except QueryStatsError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

"""Tests for the command line entry point."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from query_stats import cli as cli_module
from query_stats.cli import app, read_query

runner = CliRunner()

DSN = "mysql://bob:pw@db.example/app"


@pytest.fixture
def adapter(make_adapter, monkeypatch: pytest.MonkeyPatch):
    fake = make_adapter(
        rows=[(b"1", b"alice"), (b"2", None)],
        statuses=[[("Sort_scan", "0")], [("Sort_scan", "1")]],
    )
    monkeypatch.setattr(cli_module, "MySQLAdapter", lambda: fake)
    return fake


def test_json_output(adapter) -> None:
    result = runner.invoke(app, [DSN, "--format", "json", "--set-var", "timeout=30"], input="select * from t\n")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["summary"]["rows"] == 2
    assert data["meta"]["query"] == "select * from t"
    assert data["status_changes"] == [{"title": "Sort", "counters": [{"name": "Sort_scan", "delta": 1}]}]
    assert adapter.session_vars == [("timeout", 30)]
    assert adapter.closed is True


def test_markdown_output_uses_placeholders(adapter) -> None:
    result = runner.invoke(app, [DSN, "--format", "markdown", "--query", "select 1"])

    assert result.exit_code == 0, result.output
    assert "### Column statistics" in result.stdout
    assert "| `id` | INT |" in result.stdout


def test_rich_output(adapter) -> None:
    result = runner.invoke(app, [DSN], input="select 1")

    assert result.exit_code == 0, result.output
    assert "Result Summary" in result.stdout


def test_dsn_from_environment(adapter, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUERY_STATS_DSN", DSN)

    result = runner.invoke(app, ["--format", "json", "--query", "select 1"])

    assert result.exit_code == 0, result.output
    assert adapter.connected_to.host == "db.example"


def test_invalid_dsn_is_a_usage_error(adapter) -> None:
    result = runner.invoke(app, ["postgres://db/app", "--query", "select 1"])

    assert result.exit_code == 2
    assert adapter.connected_to is None


def test_unknown_format_is_a_usage_error(adapter) -> None:
    result = runner.invoke(app, [DSN, "--format", "xml", "--query", "select 1"])

    assert result.exit_code == 2


def test_empty_query_fails(adapter) -> None:
    result = runner.invoke(app, [DSN], input="   \n")

    assert result.exit_code == 1
    assert "empty query" in result.output
    assert adapter.connected_to is None


def test_run_errors_exit_non_zero(make_adapter, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = make_adapter(fail_query=True)
    monkeypatch.setattr(cli_module, "MySQLAdapter", lambda: fake)

    result = runner.invoke(app, [DSN, "--query", "selec 1"])

    assert result.exit_code == 1
    assert "error: query: syntax error" in result.output


def test_bad_set_var_exits_non_zero(adapter) -> None:
    result = runner.invoke(app, [DSN, "--query", "select 1", "--set-var", "=1"])

    assert result.exit_code == 1
    assert "expected name=value" in result.output


def test_ask_pass_replaces_password(adapter, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "prompt_for_password", lambda: "typed")

    result = runner.invoke(app, [DSN, "-p", "--format", "json", "--query", "select 1"])

    assert result.exit_code == 0, result.output
    assert adapter.connected_to.password == "typed"


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "query-stats" in result.stdout


class _Stream:
    def __init__(self, text: str, tty: bool) -> None:
        self.text = text
        self.tty = tty

    def isatty(self) -> bool:
        return self.tty

    def read(self) -> str:
        if self.text is None:
            raise KeyboardInterrupt
        return self.text


def test_read_query_trims_piped_input() -> None:
    assert read_query(_Stream("  select 1;\n", tty=False)) == "select 1;"


def test_read_query_interrupt_exits_130() -> None:
    import typer

    with pytest.raises(typer.Exit) as info:
        read_query(_Stream(None, tty=True))

    assert info.value.exit_code == 130

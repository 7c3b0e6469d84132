"""Small shared helpers."""

from __future__ import annotations

import re
from typing import Union

from query_stats.core.errors import VarParseError

SessionValue = Union[bool, int, float, str]

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def parse_set_var(token: str) -> tuple[str, str]:
    """
    Split a `--set-var` token on its first `=`.

    Args:
        token: A `name=value` string as given on the command line.

    Returns:
        tuple[str, str]: The variable name and its raw value.

    Raises:
        VarParseError: If the token has no `=`, or `=` is its first or last
            character.

    Examples:
        >>> parse_set_var("sort_buffer_size=262144")
        ('sort_buffer_size', '262144')
        >>> parse_set_var("sql_mode=a=b")
        ('sql_mode', 'a=b')
    """
    idx = token.find("=")
    if idx < 1 or idx == len(token) - 1:
        raise VarParseError(token)
    return token[:idx], token[idx + 1:]


def infer_value(text: str) -> SessionValue:
    """Type a session variable value: bool, then int, then float, else str."""
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    if _INT_RE.fullmatch(text):
        n = int(text)
        # wider than int64 falls through to float
        if _INT64_MIN <= n <= _INT64_MAX:
            return n
    if "_" not in text and text.strip() == text:
        try:
            return float(text)
        except ValueError:
            pass
    return text


def quote_ident(ident: str) -> str:
    return "`" + ident.replace("`", "``") + "`"


def format_bytes(n: int) -> str:
    """Render a byte count with binary units."""
    kb = 1024
    mb = 1024 * kb
    gb = 1024 * mb
    if n < kb:
        return f"{n} B"
    if n < mb:
        return f"{n / kb:.1f} KB"
    if n < gb:
        return f"{n / mb:.1f} MB"
    return f"{n / gb:.2f} GB"


def format_duration(seconds: float) -> str:
    """Render an elapsed time in µs, ms or s."""
    if seconds < 1e-3:
        return f"{seconds * 1e6:.2f} µs"
    if seconds < 1:
        return f"{seconds * 1e3:.2f} ms"
    return f"{seconds:.3f} s"

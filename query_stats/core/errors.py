"""Error taxonomy shared by the resolver, adapters and run flow."""

from __future__ import annotations

from typing import Optional


class QueryStatsError(RuntimeError):
    """Base class for every error surfaced to the command line."""


class ConfigError(QueryStatsError, ValueError):
    """Raised when the database endpoint is missing or malformed."""


class InvalidSchemeError(ConfigError):
    def __init__(self, scheme: str = "") -> None:
        detail = f" '{scheme}'" if scheme else ""
        super().__init__(f"invalid or missing scheme{detail}")
        self.scheme = scheme


class InvalidHostnameError(ConfigError):
    def __init__(self) -> None:
        super().__init__("invalid or missing hostname")


class DefaultsFileError(QueryStatsError, OSError):
    """Raised when the defaults file cannot be read or parsed."""

    def __init__(self, path: str, reason: object) -> None:
        super().__init__(f"defaults file: {path}: {reason}")
        self.path = path


class VarParseError(QueryStatsError, ValueError):
    """Raised for a session variable token that is not `name=value`."""

    def __init__(self, token: str) -> None:
        super().__init__(f"--set-var: expected name=value, got {token!r}")
        self.token = token


class DatabaseConnectionError(QueryStatsError):
    """Raised when connecting, applying a session variable or closing fails."""

    def __init__(self, message: str, variable: Optional[str] = None) -> None:
        super().__init__(message)
        self.variable = variable


class QueryError(QueryStatsError):
    """Raised when the query or a status snapshot fails to execute."""

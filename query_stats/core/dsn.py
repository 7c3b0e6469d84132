"""Resolve a `mysql://` endpoint descriptor into a connection target.

The descriptor may point at a defaults file (`?defaultsFile=~/.my.cnf`) whose
section fills in whatever the URL leaves out. Fields present in the URL always
win; the file only fills gaps. A missing username falls back to the current
OS account.
"""

from __future__ import annotations

import configparser
import dataclasses
import getpass
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit

import typer

from query_stats.core.errors import (
    ConfigError,
    DefaultsFileError,
    InvalidHostnameError,
    InvalidSchemeError,
    QueryStatsError,
)

LOG = logging.getLogger(__name__)

SCHEME = "mysql"
DEFAULT_PORT = 3306
DEFAULT_GROUP = "client"
DEFAULT_PROMPT = "Enter password"

_DEFAULTS_FILE_OPTION = "defaultsFile"
_DEFAULTS_GROUP_OPTION = "defaultsGroup"
_INLINE_COMMENT_RE = re.compile(r"\s+[#;].*$")


@dataclass(frozen=True, repr=False)
class ConnectionTarget:
    """Fully resolved endpoint.

    `address` is the `host[:port]` part of the URL exactly as resolved; the
    port accessor falls back to 3306 when it is missing or unparsable.
    """

    address: str
    user: str = ""
    secret: Optional[str] = None
    path: str = "/"
    query: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    scheme: str = SCHEME

    @property
    def host(self) -> str:
        return _split_address(self.address)[0]

    @property
    def port(self) -> int:
        text = _split_address(self.address)[1]
        if text.isascii() and text.isdigit():
            return int(text)
        return DEFAULT_PORT

    @property
    def addr(self) -> str:
        return self.address

    @property
    def username(self) -> str:
        return self.user

    @property
    def password(self) -> str:
        return self.secret or ""

    @property
    def database(self) -> str:
        return self.path[1:] if self.path else ""

    @property
    def options(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in self.query.items()}

    def with_password(self, password: str) -> "ConnectionTarget":
        return dataclasses.replace(self, secret=password)

    def url(self) -> str:
        return self._format(self.secret)

    def redacted(self) -> str:
        return self._format("xxxxx" if self.secret is not None else None)

    def _format(self, secret: Optional[str]) -> str:
        userinfo = ""
        if self.user or secret is not None:
            userinfo = quote(self.user, safe="")
            if secret is not None:
                userinfo += ":" + quote(secret, safe="")
            userinfo += "@"
        out = f"{self.scheme}://{userinfo}{self.address}{quote(self.path, safe='/')}"
        if self.query:
            out += "?" + urlencode(sorted(self.query.items()), doseq=True)
        return out

    def __str__(self) -> str:
        return self.redacted()

    def __repr__(self) -> str:
        return f"ConnectionTarget({self.redacted()!r})"


@dataclass(frozen=True)
class ConfigFragment:
    """Connection fields from one source; empty string means absent."""

    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""
    database: str = ""

    def merged_with(self, fallback: "ConfigFragment") -> "ConfigFragment":
        """Return a copy where every empty field is taken from `fallback`."""
        updates = {
            f.name: getattr(fallback, f.name)
            for f in dataclasses.fields(self)
            if not getattr(self, f.name)
        }
        return dataclasses.replace(self, **updates)


def resolve_endpoint(descriptor: str) -> ConnectionTarget:
    """Parse `descriptor` and apply defaults-file and OS identity fallbacks.

    Raises:
        ConfigError: wrong scheme, missing host or unknown OS user.
        DefaultsFileError: the defaults file cannot be read.
    """
    if not descriptor:
        raise ConfigError("database endpoint is required")
    try:
        parts = urlsplit(descriptor)
    except ValueError as exc:
        raise ConfigError(f"invalid endpoint: {exc}") from exc

    if parts.scheme != SCHEME:
        raise InvalidSchemeError(parts.scheme)

    userinfo, has_userinfo, address = parts.netloc.rpartition("@")
    user, secret = "", None
    if has_userinfo:
        raw_user, has_secret, raw_secret = userinfo.partition(":")
        user = unquote(raw_user)
        secret = unquote(raw_secret) if has_secret else None

    path = unquote(parts.path)
    if not path.startswith("/"):
        path = "/"

    query = {
        key: tuple(values)
        for key, values in parse_qs(parts.query, keep_blank_values=True).items()
    }

    if _DEFAULTS_FILE_OPTION in query:
        url_fragment = ConfigFragment(
            host=_split_address(address)[0],
            port=_split_address(address)[1],
            user=user,
            password=secret or "",
            database=path[1:],
        )
        group = query.get(_DEFAULTS_GROUP_OPTION, (DEFAULT_GROUP,))[0]
        file_fragment = load_defaults_file(query[_DEFAULTS_FILE_OPTION][0], group)
        merged = url_fragment.merged_with(file_fragment)

        user, secret = merged.user, merged.password
        address = _join_address(merged.host, merged.port)
        path = "/" + merged.database
        query = {
            key: values
            for key, values in query.items()
            if key not in (_DEFAULTS_FILE_OPTION, _DEFAULTS_GROUP_OPTION)
        }

    if not user:
        user = _current_os_user()

    target = ConnectionTarget(
        address=address, user=user, secret=secret, path=path, query=query
    )
    if not target.host:
        raise InvalidHostnameError()
    LOG.debug("resolved endpoint %s", target)
    return target


def load_defaults_file(path: str, group: str = DEFAULT_GROUP) -> ConfigFragment:
    """Read connection fields from `group` in an ini-style defaults file.

    A missing group yields an empty fragment; a missing or malformed file
    raises DefaultsFileError.
    """
    parser = configparser.ConfigParser(
        allow_no_value=True, interpolation=None, strict=False
    )
    try:
        with open(os.path.expanduser(path), encoding="utf-8") as handle:
            parser.read_file(handle, source=path)
    except (OSError, configparser.Error) as exc:
        raise DefaultsFileError(path, exc) from exc

    if not parser.has_section(group):
        LOG.debug("defaults file %s has no [%s] section", path, group)
        return ConfigFragment()

    section = parser[group]
    return ConfigFragment(
        **{
            f.name: _unquote_value(section.get(f.name))
            for f in dataclasses.fields(ConfigFragment)
        }
    )


def prompt_for_password(prompt: str = DEFAULT_PROMPT) -> str:
    """Read a password from the terminal with echo disabled."""
    return typer.prompt(prompt, default="", hide_input=True, show_default=False)


def parse_endpoint_option(value: object) -> ConnectionTarget:
    """Argument parser for the CLI: descriptor string in, target out."""
    if isinstance(value, ConnectionTarget):
        return value
    try:
        return resolve_endpoint(str(value))
    except QueryStatsError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _split_address(address: str) -> tuple[str, str]:
    if address.startswith("["):
        end = address.find("]")
        if end != -1:
            rest = address[end + 1:]
            return address[1:end], rest[1:] if rest.startswith(":") else ""
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, ""
    return host, port


def _join_address(host: str, port: str) -> str:
    if ":" in host:
        host = f"[{host}]"
    # no port means no suffix; the 3306 default lives in ConnectionTarget.port
    return f"{host}:{port}" if port else host


def _unquote_value(value: Optional[str]) -> str:
    """Strip quotes or a trailing `# ...` / `; ...` comment from an option value."""
    value = (value or "").strip()
    if value[:1] in ("\"", "'"):
        end = value.find(value[0], 1)
        if end != -1:
            return value[1:end]
    return _INLINE_COMMENT_RE.sub("", value)


def _current_os_user() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError, ImportError) as exc:
        raise ConfigError(f"username is required: {exc}") from exc

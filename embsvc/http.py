"""HTTP vocabulary shared by clients and servers: methods, header access and header builders."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import Enum

INFO = range(100, 200)
OK = range(200, 300)
REDIRECT = range(300, 400)
CLIENT_ERROR = range(400, 500)
SERVER_ERROR = range(500, 600)

_U64 = re.compile(r"\+?[0-9]+")
_U64_MAX = (1 << 64) - 1

Header = tuple[str, str]


class Method(Enum):
    """HTTP request methods, valued by their wire token."""

    DELETE = "DELETE"
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    COPY = "COPY"
    LOCK = "LOCK"
    MKCOL = "MKCOL"
    MOVE = "MOVE"
    PROPFIND = "PROPFIND"
    PROPPATCH = "PROPPATCH"
    SEARCH = "SEARCH"
    UNLOCK = "UNLOCK"
    BIND = "BIND"
    REBIND = "REBIND"
    UNBIND = "UNBIND"
    ACL = "ACL"
    REPORT = "REPORT"
    MKACTIVITY = "MKACTIVITY"
    CHECKOUT = "CHECKOUT"
    MERGE = "MERGE"
    M_SEARCH = "M-SEARCH"
    NOTIFY = "NOTIFY"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    PATCH = "PATCH"
    PURGE = "PURGE"
    MKCALENDAR = "MKCALENDAR"
    LINK = "LINK"
    UNLINK = "UNLINK"


class ConnectionStateError(RuntimeError):
    """A connection was used in a phase that does not allow the operation."""


class Headers(ABC):
    """Read access to message headers, with shortcuts for common ones."""

    @abstractmethod
    def header(self, name: str) -> str | None:
        """The value of header ``name``, or None when absent."""

    def content_type(self) -> str | None:
        return self.header("Content-Type")

    def content_len(self) -> int | None:
        """The Content-Length as a number, or None if absent or malformed."""
        value = self.header("Content-Length")
        if value is None or not _U64.fullmatch(value):
            return None
        length = int(value)
        return length if length <= _U64_MAX else None

    def content_encoding(self) -> str | None:
        return self.header("Content-Encoding")

    def transfer_encoding(self) -> str | None:
        return self.header("Transfer-Encoding")

    def host(self) -> str | None:
        return self.header("Host")

    def connection(self) -> str | None:
        return self.header("Connection")

    def cache_control(self) -> str | None:
        return self.header("Cache-Control")

    def upgrade(self) -> str | None:
        return self.header("Upgrade")


class Status(ABC):
    """The status line of a response."""

    @abstractmethod
    def status(self) -> int:
        """The numeric status code."""

    @abstractmethod
    def status_message(self) -> str | None:
        """The reason phrase, if any."""


class Query(ABC):
    """The request line of a request."""

    @abstractmethod
    def uri(self) -> str:
        """The request target."""

    @abstractmethod
    def method(self) -> Method:
        """The request method."""


def content_type(ctype: str) -> Header:
    return ("Content-Type", ctype)


def content_len(length: int) -> Header:
    if length < 0 or length > _U64_MAX:
        raise ValueError("content length out of range")
    return ("Content-Length", str(length))


def content_encoding(encoding: str) -> Header:
    return ("Content-Encoding", encoding)


def transfer_encoding(encoding: str) -> Header:
    return ("Transfer-Encoding", encoding)


def transfer_encoding_chunked() -> Header:
    return transfer_encoding("Chunked")


def host(host: str) -> Header:
    return ("Host", host)


def connection(connection: str) -> Header:
    return ("Connection", connection)


def connection_upgrade() -> Header:
    return connection("Upgrade")


def connection_keepalive() -> Header:
    return connection("Keep-Alive")


def connection_close() -> Header:
    return connection("Close")


def cache_control(cache: str) -> Header:
    return ("Cache-Control", cache)


def cache_control_no_cache() -> Header:
    return cache_control("No-Cache")


def location(location: str) -> Header:
    return ("Location", location)


def upgrade(upgrade: str) -> Header:
    return ("Upgrade", upgrade)


def upgrade_websocket() -> Header:
    return upgrade("websocket")
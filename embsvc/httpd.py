"""A small routed HTTP service layer: bodies, requests, responses, routing and middleware.

Includes middleware that attaches shared application state and cookie-based
sessions to requests.
"""

from __future__ import annotations

import io
import logging
import os
import re
import threading
import time
import traceback
from abc import ABC, abstractmethod
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO

from .http import Method

__all__ = [
    "Body",
    "RequestDelegate",
    "Request",
    "SessionState",
    "Response",
    "Handler",
    "Middleware",
    "Registry",
    "RegistryBuilder",
    "MiddlewareRegistry",
    "app_middleware",
    "Sessions",
    "sessions_middleware",
]

_log = logging.getLogger(__name__)

_USIZE = re.compile(r"\+?[0-9]+")
_USIZE_MAX = (1 << 64) - 1
_READ_CHUNK = 4096

SESSION_TIMEOUT_SECONDS = 20 * 60
SESSION_ID_BYTES = 16

StateMap = MutableMapping[str, Any]
HandlerFn = Callable[["Request"], "Response"]
MiddlewareFn = Callable[["Request", HandlerFn], "Response"]


@dataclass
class Body:
    """A response body: in-memory bytes or a stream with an optional known length."""

    data: bytes = b""
    reader: BinaryIO | None = None
    length: int | None = None

    @classmethod
    def from_value(cls, value: Any) -> Body:
        """Build a body from None, bytes, text, an open binary file or a Body."""
        if isinstance(value, Body):
            return value
        if value is None:
            return cls()
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(data=bytes(value))
        if isinstance(value, str):
            return cls(data=value.encode("utf-8"))
        if isinstance(value, io.IOBase):
            return cls.from_file(value)
        raise TypeError(f"cannot make a body from {type(value).__name__}")

    @classmethod
    def from_file(cls, file: BinaryIO) -> Body:
        """A streamed body; its length is taken from the file when available."""
        try:
            length: int | None = os.fstat(file.fileno()).st_size
        except (OSError, AttributeError, ValueError):
            length = None
        return cls(reader=file, length=length)

    def size(self) -> int | None:
        """The body length, or None when it is a stream of unknown length."""
        if self.reader is None:
            return len(self.data)
        return self.length

    def is_empty(self) -> bool:
        """True only when the length is known to be zero."""
        return self.size() == 0


class RequestDelegate(ABC):
    """The server-side source of a request's headers, query and body."""

    @abstractmethod
    def header(self, name: str) -> str | None:
        """The value of header ``name``, or None."""

    @abstractmethod
    def query_string(self) -> str | None:
        """The query part of the request URI, or None."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read at most ``size`` body bytes; empty at end of body."""


class Request:
    """An incoming request with attributes, an optional session and app state."""

    def __init__(
        self,
        delegate: RequestDelegate,
        attrs: StateMap | None = None,
        session: StateMap | None = None,
        app: StateMap | None = None,
    ) -> None:
        self._delegate = delegate
        self.attrs: StateMap = {} if attrs is None else attrs
        self.session = session
        self._app = app

    @property
    def app(self) -> StateMap:
        """The application state; raises LookupError when none is attached."""
        if self._app is None:
            raise LookupError("no application state attached to the request")
        return self._app

    def _with(self, session: StateMap | None, app: StateMap | None) -> Request:
        return Request(self._delegate, self.attrs, session, app)

    def header(self, name: str) -> str | None:
        return self._delegate.header(name)

    def content_type(self) -> str | None:
        return self.header("content-type")

    def content_len(self) -> int | None:
        """The content length, or None if absent or malformed."""
        value = self.header("content-length")
        if value is None or not _USIZE.fullmatch(value):
            return None
        length = int(value)
        return length if length <= _USIZE_MAX else None

    def query_string(self) -> str | None:
        return self._delegate.query_string()

    def read(self, size: int) -> bytes:
        return self._delegate.read(size)

    def as_bytes(self) -> bytes:
        """Read the rest of the body."""
        chunks = []
        while chunk := self.read(_READ_CHUNK):
            chunks.append(chunk)
        return b"".join(chunks)

    def as_string(self) -> str:
        """Read the rest of the body as UTF-8 text."""
        return self.as_bytes().decode("utf-8")


@dataclass(frozen=True)
class SessionState:
    """A session change requested by a response: new session data, or invalidation."""

    data: StateMap | None = None

    @classmethod
    def new(cls, data: StateMap) -> SessionState:
        return cls(data)

    @classmethod
    def invalidate(cls) -> SessionState:
        return cls(None)

    @property
    def is_invalidate(self) -> bool:
        return self.data is None


@dataclass
class Response:
    """A response; the ``with_*`` methods return modified copies."""

    status: int = 200
    status_message: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: Body = field(default_factory=Body)
    new_session_state: SessionState | None = None

    @classmethod
    def ok(cls) -> Response:
        return cls()

    @classmethod
    def redirect(cls, location: str) -> Response:
        return cls.new(301).with_header("location", location)

    @classmethod
    def new(cls, status_code: int) -> Response:
        return cls(status=status_code)

    @classmethod
    def from_value(cls, value: Any) -> Response:
        """Build from None, a status code, a body-like value or a Response."""
        if isinstance(value, Response):
            return value
        if value is None:
            return cls.ok()
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.new(value)
        return cls.ok().with_body(Body.from_value(value))

    @classmethod
    def from_error(cls, error: BaseException) -> Response:
        """A 500 response describing ``error``."""
        details = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return (
            cls.new(500)
            .with_status_message(str(error))
            .with_body(Body.from_value(details))
        )

    def with_status(self, status: int) -> Response:
        return replace(self, status=status, headers=dict(self.headers))

    def with_status_message(self, message: str) -> Response:
        return replace(self, status_message=str(message), headers=dict(self.headers))

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers={**self.headers, name: str(value)})

    def with_content_encoding(self, value: str) -> Response:
        return self.with_header("content-encoding", value)

    def with_content_type(self, value: str) -> Response:
        return self.with_header("content-type", value)

    def with_content_len(self, value: int) -> Response:
        if value < 0:
            raise ValueError("content length must not be negative")
        return self.with_header("content-length", str(value))

    def with_body(self, body: Body) -> Response:
        return replace(self, body=body, headers=dict(self.headers))

    def with_new_session_state(self, new_session_state: SessionState) -> Response:
        return replace(
            self, new_session_state=new_session_state, headers=dict(self.headers)
        )


@dataclass
class Handler:
    """A request handler bound to a URI and a method."""

    uri: str
    method: Method
    handler: HandlerFn

    def __post_init__(self) -> None:
        self.uri = str(self.uri)


@dataclass
class Middleware:
    """A function wrapped around handlers, registered under a URI."""

    uri: str
    handler: MiddlewareFn

    def __post_init__(self) -> None:
        self.uri = str(self.uri)


class Registry(ABC):
    """Collects handlers and middleware."""

    @abstractmethod
    def handler(self, handler: Handler) -> Registry:
        """Add a handler and return the registry."""

    @abstractmethod
    def middleware(self, middleware: Middleware) -> Registry:
        """Add a middleware and return the registry."""

    def at(self, uri: Any) -> RegistryBuilder:
        """Start registering something under ``uri``."""
        return RegistryBuilder(str(uri), self)

    def register(self, register: Callable[[Registry], Registry]) -> Registry:
        """Let ``register`` add to this registry and return its result."""
        return register(self)


@dataclass
class RegistryBuilder:
    """Registers handlers or middleware under one URI."""

    uri: str
    registry: Registry

    def get(self, f: HandlerFn) -> Registry:
        return self.handler(Method.GET, f)

    def post(self, f: HandlerFn) -> Registry:
        return self.handler(Method.POST, f)

    def put(self, f: HandlerFn) -> Registry:
        return self.handler(Method.PUT, f)

    def delete(self, f: HandlerFn) -> Registry:
        return self.handler(Method.DELETE, f)

    def head(self, f: HandlerFn) -> Registry:
        return self.handler(Method.HEAD, f)

    def middleware(self, m: MiddlewareFn) -> Registry:
        return self.registry.middleware(Middleware(self.uri, m))

    def handler(self, method: Method, f: HandlerFn) -> Registry:
        return self.registry.handler(Handler(self.uri, method, f))


def _apply(middleware: Middleware, handler: HandlerFn) -> HandlerFn:
    def wrapped(request: Request) -> Response:
        return middleware.handler(request, handler)

    return wrapped


class MiddlewareRegistry(Registry):
    """A registry that wraps every handler in every registered middleware."""

    def __init__(self) -> None:
        self.handlers: list[Handler] = []
        self.middlewares: list[Middleware] = []

    def handler(self, handler: Handler) -> MiddlewareRegistry:
        self.handlers.append(handler)
        return self

    def middleware(self, middleware: Middleware) -> MiddlewareRegistry:
        self.middlewares.append(middleware)
        return self

    def apply_middleware(self) -> list[Handler]:
        """The handlers, each wrapped so the last middleware added runs first."""
        result = []
        for handler in self.handlers:
            fn = handler.handler
            for middleware in self.middlewares:
                fn = _apply(middleware, fn)
            result.append(Handler(handler.uri, handler.method, fn))
        return result


def app_middleware(app: StateMap) -> MiddlewareFn:
    """Middleware that attaches the shared ``app`` state to every request."""

    def middleware(request: Request, handler: HandlerFn) -> Response:
        return handler(request._with(request.session, app))

    return middleware


@dataclass
class _SessionData:
    last_accessed: float
    session_timeout: float
    used: int
    data: StateMap


class Sessions:
    """Cookie-based session store with a size limit and idle expiry."""

    def __init__(
        self,
        max_sessions: int,
        get_random: Callable[[], bytes],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max_sessions
        self._get_random = get_random
        self._clock = clock
        self._data: dict[str, _SessionData] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._data)

    def _handle(self, request: Request, handler: HandlerFn) -> Response:
        session_id = self._get_session_id(request)
        session = None
        if session_id is not None:
            with self._lock:
                session = self._get(session_id)

        response = handler(request._with(session, request._app))

        with self._lock:
            return self._update(session_id, response)

    def _invalidate(self, session_id: str) -> bool:
        _log.info("Invalidating session %s", session_id)
        return self._data.pop(session_id, None) is not None

    @classmethod
    def _get_session_id(cls, request: Request) -> str | None:
        cookies = request.header("cookie")
        return None if cookies is None else cls._parse_session_cookie(cookies)

    def _get(self, session_id: str) -> StateMap | None:
        session_data = self._data.get(session_id)
        if session_data is None:
            return None
        now = self._clock()
        if (
            session_data.used > 0
            or session_data.last_accessed + session_data.session_timeout > now
        ):
            session_data.last_accessed = now
            session_data.used += 1
            return session_data.data
        self._invalidate(session_id)
        return None

    def _update(self, session_id: str | None, resp: Response) -> Response:
        state = resp.new_session_state
        if state is None:
            if session_id is not None:
                session_data = self._data.get(session_id)
                if session_data is not None:
                    session_data.last_accessed = self._clock()
                    session_data.used -= 1
            return resp

        if state.is_invalidate:
            if session_id is not None:
                self._invalidate(session_id)
            return replace(resp, new_session_state=None, headers=dict(resp.headers))

        new_sess = session_id is None or self._data.pop(session_id, None) is None
        if new_sess:
            self._cleanup()

        if new_sess and len(self._data) == self.max_sessions:
            _log.warning(
                "Cannot create a new session - max session limit (%d) exceeded",
                self.max_sessions,
            )
            return Response.new(429)

        new_session_id = self._generate_session_id()
        _log.info("New session %s created", new_session_id)
        self._data[new_session_id] = _SessionData(
            last_accessed=self._clock(),
            session_timeout=SESSION_TIMEOUT_SECONDS,
            used=0,
            data=state.data,
        )
        return replace(
            resp,
            new_session_state=None,
            headers={**resp.headers, "set-cookie": f"SESSIONID={new_session_id}"},
        )

    def _cleanup(self) -> None:
        _log.info("Performing sessions cleanup")
        now = self._clock()
        self._data = {
            key: sd
            for key, sd in self._data.items()
            if sd.last_accessed + sd.session_timeout > now
        }

    def _generate_session_id(self) -> str:
        raw = bytes(self._get_random())
        if len(raw) != SESSION_ID_BYTES:
            raise ValueError(f"session id source must give {SESSION_ID_BYTES} bytes")
        return raw.hex()

    @staticmethod
    def _parse_session_cookie(cookies: str) -> str | None:
        for cookie in cookies.split(";"):
            name, *rest = cookie.split("=")
            if name == "SESSIONID" and rest:
                return rest[0]
        return None


def sessions_middleware(sessions: Sessions) -> MiddlewareFn:
    """Middleware that attaches session state to requests and applies session changes."""

    def middleware(request: Request, handler: HandlerFn) -> Response:
        return sessions._handle(request, handler)

    return middleware
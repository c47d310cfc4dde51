"""HTTP server connections, the request/response flow over them, handlers and middleware."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from .executor import Blocker
from .http import ConnectionStateError, Header, Headers, Method, Query
from .io import AsyncRead, AsyncWrite, BlockingIo, Read, UnblockingIo, Write

__all__ = [
    "Connection",
    "Request",
    "Response",
    "HandlerError",
    "Handler",
    "FnHandler",
    "Middleware",
    "CompositeHandler",
    "AsyncConnection",
    "AsyncRequest",
    "AsyncResponse",
    "AsyncHandler",
    "AsyncMiddleware",
    "AsyncCompositeHandler",
    "BlockingConnection",
    "TrivialUnblockingConnection",
]

_MAX_MESSAGE_BYTES = 64
_TOO_BIG = "(Error string too big)"


class Connection(Query, Headers, Read, Write):
    """A blocking server connection that moves from request to response phase."""

    @abstractmethod
    def split(self) -> tuple[Any, Read]:
        """The request head and a reader for the request body."""

    @abstractmethod
    def initiate_response(
        self, status: int, message: str | None, headers: Sequence[Header]
    ) -> None:
        """Send the response head; the connection enters the response phase."""

    @abstractmethod
    def is_response_initiated(self) -> bool:
        """Whether the response head has been sent."""

    @abstractmethod
    def raw_connection(self) -> Any:
        """The underlying byte stream, readable and writable."""


class Request(Read, Headers, Query):
    """An incoming request whose body can be read before responding."""

    def __init__(self, connection: Connection) -> None:
        if connection.is_response_initiated():
            raise ConnectionStateError("connection is not in request phase")
        self._connection = connection

    def split(self) -> tuple[Any, Read]:
        return self._connection.split()

    def into_response(
        self, status: int, message: str | None = None, headers: Sequence[Header] = ()
    ) -> Response:
        """Send the response head and return the response for writing the body."""
        self._connection.initiate_response(status, message, headers)
        return Response(self._connection)

    def into_status_response(self, status: int) -> Response:
        return self.into_response(status, None, ())

    def into_ok_response(self) -> Response:
        return self.into_response(200, "OK", ())

    def read(self, size: int) -> bytes:
        return self._connection.read(size)

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    def uri(self) -> str:
        return self._connection.uri()

    def method(self) -> Method:
        return self._connection.method()

    def release(self) -> Connection:
        """The wrapped connection."""
        return self._connection


class Response(Write):
    """A response whose body is being written."""

    def __init__(self, connection: Connection) -> None:
        if not connection.is_response_initiated():
            raise ConnectionStateError("connection is not in response phase")
        self._connection = connection

    def write(self, data: bytes) -> int:
        return self._connection.write(data)

    def flush(self) -> None:
        self._connection.flush()

    def release(self) -> Connection:
        return self._connection


class HandlerError(Exception):
    """A failure reported by a handler; its message holds at most 64 bytes."""

    def __init__(self, message: str) -> None:
        if len(message.encode()) > _MAX_MESSAGE_BYTES:
            raise ValueError(f"message must be at most {_MAX_MESSAGE_BYTES} bytes")
        super().__init__(message)
        self.message = message

    @classmethod
    def from_error(cls, error: object) -> HandlerError:
        """Describe any error, replacing descriptions that are too long."""
        text = repr(error)
        if len(text.encode()) > _MAX_MESSAGE_BYTES:
            text = _TOO_BIG
        return cls(text)

    def __str__(self) -> str:
        return self.message


class Handler:
    """Handles requests arriving on blocking connections; failures raise HandlerError."""

    @abstractmethod
    def handle(self, connection: Connection) -> None:
        """Serve the request on ``connection``."""


class FnHandler(Handler):
    """A handler made from a function that takes the request."""

    def __init__(self, f: Callable[[Request], None]) -> None:
        self._f = f

    def handle(self, connection: Connection) -> None:
        self._f(Request(connection))


class Middleware:
    """Wraps a handler with behaviour of its own."""

    @abstractmethod
    def handle(self, connection: Connection, handler: Handler) -> None:
        """Serve the request, delegating to ``handler`` as it sees fit."""

    def compose(self, handler: Handler) -> CompositeHandler:
        """A handler that runs this middleware in front of ``handler``."""
        return CompositeHandler(self, handler)


class CompositeHandler(Handler):
    """A middleware placed in front of a handler."""

    def __init__(self, middleware: Middleware, handler: Handler) -> None:
        self.middleware = middleware
        self.handler = handler

    def handle(self, connection: Connection) -> None:
        self.middleware.handle(connection, self.handler)


class AsyncConnection(Query, Headers, AsyncRead, AsyncWrite):
    """An asynchronous server connection."""

    @abstractmethod
    def split(self) -> tuple[Any, AsyncRead]:
        """The request head and a reader for the request body."""

    @abstractmethod
    async def initiate_response(
        self, status: int, message: str | None, headers: Sequence[Header]
    ) -> None:
        """Send the response head; the connection enters the response phase."""

    @abstractmethod
    def is_response_initiated(self) -> bool:
        """Whether the response head has been sent."""

    @abstractmethod
    def raw_connection(self) -> Any:
        """The underlying asynchronous byte stream."""


class AsyncRequest(AsyncRead, Headers, Query):
    """An incoming request on an asynchronous connection."""

    def __init__(self, connection: AsyncConnection) -> None:
        if connection.is_response_initiated():
            raise ConnectionStateError("connection is not in request phase")
        self._connection = connection

    def split(self) -> tuple[Any, AsyncRead]:
        return self._connection.split()

    async def into_response(
        self, status: int, message: str | None = None, headers: Sequence[Header] = ()
    ) -> AsyncResponse:
        await self._connection.initiate_response(status, message, headers)
        return AsyncResponse(self._connection)

    async def into_status_response(self, status: int) -> AsyncResponse:
        return await self.into_response(status, None, ())

    async def into_ok_response(self) -> AsyncResponse:
        return await self.into_response(200, "OK", ())

    async def read(self, size: int) -> bytes:
        return await self._connection.read(size)

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    def uri(self) -> str:
        return self._connection.uri()

    def method(self) -> Method:
        return self._connection.method()

    def release(self) -> AsyncConnection:
        return self._connection


class AsyncResponse(AsyncWrite):
    """A response being written on an asynchronous connection."""

    def __init__(self, connection: AsyncConnection) -> None:
        if not connection.is_response_initiated():
            raise ConnectionStateError("connection is not in response phase")
        self._connection = connection

    async def write(self, data: bytes) -> int:
        return await self._connection.write(data)

    async def flush(self) -> None:
        await self._connection.flush()

    def release(self) -> AsyncConnection:
        return self._connection


class AsyncHandler:
    """Handles requests arriving on asynchronous connections."""

    @abstractmethod
    async def handle(self, connection: AsyncConnection) -> None:
        """Serve the request on ``connection``."""


class AsyncMiddleware:
    """Wraps an asynchronous handler with behaviour of its own."""

    @abstractmethod
    async def handle(self, connection: AsyncConnection, handler: AsyncHandler) -> None:
        """Serve the request, delegating to ``handler`` as it sees fit."""

    def compose(self, handler: AsyncHandler) -> AsyncCompositeHandler:
        """A handler that runs this middleware in front of ``handler``."""
        return AsyncCompositeHandler(self, handler)


class AsyncCompositeHandler(AsyncHandler):
    """An asynchronous middleware placed in front of a handler."""

    def __init__(self, middleware: AsyncMiddleware, handler: AsyncHandler) -> None:
        self.middleware = middleware
        self.handler = handler

    async def handle(self, connection: AsyncConnection) -> None:
        await self.middleware.handle(connection, self.handler)


class BlockingConnection(Connection):
    """A blocking connection over an asynchronous one, driven by a blocker."""

    def __init__(self, blocker: Blocker, connection: AsyncConnection) -> None:
        self._blocker = blocker
        self._connection = connection

    def uri(self) -> str:
        return self._connection.uri()

    def method(self) -> Method:
        return self._connection.method()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    def read(self, size: int) -> bytes:
        return self._blocker.block_on(self._connection.read(size))

    def write(self, data: bytes) -> int:
        return self._blocker.block_on(self._connection.write(data))

    def flush(self) -> None:
        self._blocker.block_on(self._connection.flush())

    def split(self) -> tuple[Any, Read]:
        headers, read = self._connection.split()
        return headers, BlockingIo(self._blocker, read)

    def initiate_response(
        self, status: int, message: str | None, headers: Sequence[Header]
    ) -> None:
        self._blocker.block_on(
            self._connection.initiate_response(status, message, headers)
        )

    def is_response_initiated(self) -> bool:
        return self._connection.is_response_initiated()

    def raw_connection(self) -> BlockingIo:
        return BlockingIo(self._blocker, self._connection.raw_connection())


class TrivialUnblockingConnection(AsyncConnection):
    """An asynchronous connection that calls a blocking one directly."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def uri(self) -> str:
        return self._connection.uri()

    def method(self) -> Method:
        return self._connection.method()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    async def read(self, size: int) -> bytes:
        return self._connection.read(size)

    async def write(self, data: bytes) -> int:
        return self._connection.write(data)

    async def flush(self) -> None:
        self._connection.flush()

    def split(self) -> tuple[Any, AsyncRead]:
        headers, read = self._connection.split()
        return headers, UnblockingIo(read)

    async def initiate_response(
        self, status: int, message: str | None, headers: Sequence[Header]
    ) -> None:
        self._connection.initiate_response(status, message, headers)

    def is_response_initiated(self) -> bool:
        return self._connection.is_response_initiated()

    def raw_connection(self) -> UnblockingIo:
        return UnblockingIo(self._connection.raw_connection())
"""HTTP client connections and the request/response flow over them."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Any

from .executor import Blocker
from .http import ConnectionStateError, Header, Headers, Method, Status
from .io import AsyncRead, AsyncWrite, BlockingIo, Read, UnblockingIo, Write

__all__ = [
    "Connection",
    "Client",
    "Request",
    "Response",
    "AsyncConnection",
    "AsyncClient",
    "AsyncRequest",
    "AsyncResponse",
    "BlockingConnection",
    "TrivialUnblockingConnection",
]


class Connection(Status, Headers, Read, Write):
    """A blocking client connection that moves from request to response phase."""

    @abstractmethod
    def initiate_request(
        self, method: Method, uri: str, headers: Sequence[Header]
    ) -> None:
        """Start a request; the connection enters the request phase."""

    @abstractmethod
    def is_request_initiated(self) -> bool:
        """Whether the connection is in the request phase."""

    @abstractmethod
    def initiate_response(self) -> None:
        """Finish the request and read the response head."""

    @abstractmethod
    def is_response_initiated(self) -> bool:
        """Whether the connection is in the response phase."""

    @abstractmethod
    def split(self) -> tuple[Any, Read]:
        """The response headers and a reader for the response body."""

    @abstractmethod
    def raw_connection(self) -> Any:
        """The underlying byte stream, readable and writable."""


class Client:
    """Issues requests over a connection that is in its initial phase."""

    def __init__(self, connection: Connection) -> None:
        if connection.is_request_initiated() or connection.is_response_initiated():
            raise ConnectionStateError("connection is not in initial phase")
        self._connection = connection

    def get(self, uri: str) -> Request:
        return self.request(Method.GET, uri, ())

    def post(self, uri: str, headers: Sequence[Header] = ()) -> Request:
        return self.request(Method.POST, uri, headers)

    def put(self, uri: str, headers: Sequence[Header] = ()) -> Request:
        return self.request(Method.PUT, uri, headers)

    def delete(self, uri: str) -> Request:
        return self.request(Method.DELETE, uri, ())

    def request(
        self, method: Method, uri: str, headers: Sequence[Header] = ()
    ) -> Request:
        """Start a request and return it for writing the body."""
        self._connection.initiate_request(method, uri, headers)
        return Request(self._connection)

    def raw_connection(self) -> Any:
        return self._connection.raw_connection()

    def release(self) -> Connection:
        """The wrapped connection."""
        return self._connection


class Request(Write):
    """A request whose body is being written."""

    def __init__(self, connection: Connection) -> None:
        if not connection.is_request_initiated():
            raise ConnectionStateError("connection is not in request phase")
        self._connection = connection

    def submit(self) -> Response:
        """Finish the request and return the response."""
        self._connection.initiate_response()
        return Response(self._connection)

    def write(self, data: bytes) -> int:
        return self._connection.write(data)

    def flush(self) -> None:
        self._connection.flush()

    def release(self) -> Connection:
        return self._connection


class Response(Status, Headers, Read):
    """A received response whose body can be read."""

    def __init__(self, connection: Connection) -> None:
        if not connection.is_response_initiated():
            raise ConnectionStateError("connection is not in response phase")
        self._connection = connection

    def split(self) -> tuple[Any, Read]:
        return self._connection.split()

    def status(self) -> int:
        return self._connection.status()

    def status_message(self) -> str | None:
        return self._connection.status_message()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    def read(self, size: int) -> bytes:
        return self._connection.read(size)

    def release(self) -> Connection:
        return self._connection


class AsyncConnection(Status, Headers, AsyncRead, AsyncWrite):
    """An asynchronous client connection."""

    @abstractmethod
    async def initiate_request(
        self, method: Method, uri: str, headers: Sequence[Header]
    ) -> None:
        """Start a request; the connection enters the request phase."""

    @abstractmethod
    def is_request_initiated(self) -> bool:
        """Whether the connection is in the request phase."""

    @abstractmethod
    async def initiate_response(self) -> None:
        """Finish the request and read the response head."""

    @abstractmethod
    def is_response_initiated(self) -> bool:
        """Whether the connection is in the response phase."""

    @abstractmethod
    def split(self) -> tuple[Any, AsyncRead]:
        """The response headers and a reader for the response body."""

    @abstractmethod
    def raw_connection(self) -> Any:
        """The underlying asynchronous byte stream."""


class AsyncClient:
    """Issues requests over an asynchronous connection in its initial phase."""

    def __init__(self, connection: AsyncConnection) -> None:
        if connection.is_request_initiated() or connection.is_response_initiated():
            raise ConnectionStateError("connection is not in initial phase")
        self._connection = connection

    async def get(self, uri: str) -> AsyncRequest:
        return await self.request(Method.GET, uri, ())

    async def post(self, uri: str, headers: Sequence[Header] = ()) -> AsyncRequest:
        return await self.request(Method.POST, uri, headers)

    async def put(self, uri: str, headers: Sequence[Header] = ()) -> AsyncRequest:
        return await self.request(Method.PUT, uri, headers)

    async def delete(self, uri: str) -> AsyncRequest:
        return await self.request(Method.DELETE, uri, ())

    async def request(
        self, method: Method, uri: str, headers: Sequence[Header] = ()
    ) -> AsyncRequest:
        await self._connection.initiate_request(method, uri, headers)
        return AsyncRequest(self._connection)

    def raw_connection(self) -> Any:
        return self._connection.raw_connection()

    def release(self) -> AsyncConnection:
        return self._connection


class AsyncRequest(AsyncWrite):
    """An asynchronous request whose body is being written."""

    def __init__(self, connection: AsyncConnection) -> None:
        if not connection.is_request_initiated():
            raise ConnectionStateError("connection is not in request phase")
        self._connection = connection

    async def submit(self) -> AsyncResponse:
        await self._connection.initiate_response()
        return AsyncResponse(self._connection)

    async def write(self, data: bytes) -> int:
        return await self._connection.write(data)

    async def flush(self) -> None:
        await self._connection.flush()

    def release(self) -> AsyncConnection:
        return self._connection


class AsyncResponse(Status, Headers, AsyncRead):
    """An asynchronously received response."""

    def __init__(self, connection: AsyncConnection) -> None:
        if not connection.is_response_initiated():
            raise ConnectionStateError("connection is not in response phase")
        self._connection = connection

    def split(self) -> tuple[Any, AsyncRead]:
        return self._connection.split()

    def status(self) -> int:
        return self._connection.status()

    def status_message(self) -> str | None:
        return self._connection.status_message()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    async def read(self, size: int) -> bytes:
        return await self._connection.read(size)

    def release(self) -> AsyncConnection:
        return self._connection


class BlockingConnection(Connection):
    """A blocking connection over an asynchronous one, driven by a blocker."""

    def __init__(self, blocker: Blocker, connection: AsyncConnection) -> None:
        self._blocker = blocker
        self._connection = connection

    def status(self) -> int:
        return self._connection.status()

    def status_message(self) -> str | None:
        return self._connection.status_message()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    def read(self, size: int) -> bytes:
        return self._blocker.block_on(self._connection.read(size))

    def write(self, data: bytes) -> int:
        return self._blocker.block_on(self._connection.write(data))

    def flush(self) -> None:
        self._blocker.block_on(self._connection.flush())

    def initiate_request(
        self, method: Method, uri: str, headers: Sequence[Header]
    ) -> None:
        self._blocker.block_on(self._connection.initiate_request(method, uri, headers))

    def is_request_initiated(self) -> bool:
        return self._connection.is_request_initiated()

    def initiate_response(self) -> None:
        self._blocker.block_on(self._connection.initiate_response())

    def is_response_initiated(self) -> bool:
        return self._connection.is_response_initiated()

    def split(self) -> tuple[Any, Read]:
        headers, read = self._connection.split()
        return headers, BlockingIo(self._blocker, read)

    def raw_connection(self) -> BlockingIo:
        return BlockingIo(self._blocker, self._connection.raw_connection())


class TrivialUnblockingConnection(AsyncConnection):
    """An asynchronous connection that calls a blocking one directly."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def status(self) -> int:
        return self._connection.status()

    def status_message(self) -> str | None:
        return self._connection.status_message()

    def header(self, name: str) -> str | None:
        return self._connection.header(name)

    async def read(self, size: int) -> bytes:
        return self._connection.read(size)

    async def write(self, data: bytes) -> int:
        return self._connection.write(data)

    async def flush(self) -> None:
        self._connection.flush()

    async def initiate_request(
        self, method: Method, uri: str, headers: Sequence[Header]
    ) -> None:
        self._connection.initiate_request(method, uri, headers)

    def is_request_initiated(self) -> bool:
        return self._connection.is_request_initiated()

    async def initiate_response(self) -> None:
        self._connection.initiate_response()

    def is_response_initiated(self) -> bool:
        return self._connection.is_response_initiated()

    def split(self) -> tuple[Any, AsyncRead]:
        headers, read = self._connection.split()
        return headers, UnblockingIo(read)

    def raw_connection(self) -> UnblockingIo:
        return UnblockingIo(self._connection.raw_connection())
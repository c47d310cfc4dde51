"""Byte stream interfaces and adapters between blocking and async streams."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .executor import Blocking, TrivialUnblocking


class Read(ABC):
    """A blocking byte source."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; an empty result means end of stream."""


class Write(ABC):
    """A blocking byte sink."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write some of ``data`` and return how many bytes were written."""

    @abstractmethod
    def flush(self) -> None:
        """Push buffered bytes to their destination."""


class AsyncRead(ABC):
    """An asynchronous byte source."""

    @abstractmethod
    async def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; an empty result means end of stream."""


class AsyncWrite(ABC):
    """An asynchronous byte sink."""

    @abstractmethod
    async def write(self, data: bytes) -> int:
        """Write some of ``data`` and return how many bytes were written."""

    @abstractmethod
    async def flush(self) -> None:
        """Push buffered bytes to their destination."""


class BlockingIo(Blocking, Read, Write):
    """Blocking stream over an asynchronous one, driven by a blocker."""

    def read(self, size: int) -> bytes:
        return self.blocker.block_on(self.api.read(size))

    def write(self, data: bytes) -> int:
        return self.blocker.block_on(self.api.write(data))

    def flush(self) -> None:
        self.blocker.block_on(self.api.flush())


class UnblockingIo(TrivialUnblocking, AsyncRead, AsyncWrite):
    """Asynchronous stream that calls a blocking one directly."""

    async def read(self, size: int) -> bytes:
        return self.api.read(size)

    async def write(self, data: bytes) -> int:
        return self.api.write(data)

    async def flush(self) -> None:
        self.api.flush()
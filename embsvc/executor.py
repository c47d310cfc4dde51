"""Bridges between blocking and asynchronous code."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
B = TypeVar("B")
U = TypeVar("U")
A = TypeVar("A")


async def _await(awaitable: Awaitable[T]) -> T:
    return await awaitable


class Blocker(ABC):
    """Runs an awaitable to completion from blocking code."""

    @abstractmethod
    def block_on(self, future: Awaitable[T]) -> T:
        """Wait for ``future`` and return its result."""


class AsyncioBlocker(Blocker):
    """A blocker backed by a private asyncio event loop."""

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None

    def block_on(self, future: Awaitable[T]) -> T:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(_await(future))

    def close(self) -> None:
        """Close the underlying event loop, if one was created."""
        if self._loop is not None:
            self._loop.close()
            self._loop = None

    def __enter__(self) -> AsyncioBlocker:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class Unblocker(ABC):
    """Turns a blocking call into an awaitable."""

    @abstractmethod
    def unblock(self, f: Callable[[], T]) -> Awaitable[T]:
        """Return an awaitable that yields the result of calling ``f``."""


class ThreadUnblocker(Unblocker):
    """Runs blocking calls in a worker thread."""

    def unblock(self, f: Callable[[], T]) -> Awaitable[T]:
        return asyncio.to_thread(f)


@dataclass
class Blocking(Generic[B, A]):
    """An asynchronous API paired with a blocker that drives it."""

    blocker: B
    api: A


@dataclass
class TrivialUnblocking(Generic[A]):
    """A blocking API exposed through an asynchronous interface."""

    api: A


@dataclass
class Unblocking(Generic[U, A]):
    """A blocking API paired with an unblocker that offloads it."""

    unblocker: U
    api: A
"""Event bus and postbox interfaces, blocking and asynchronous."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from datetime import timedelta
from typing import Any, Generic, TypeVar

P = TypeVar("P")


class Spin(ABC):
    """Something that processes pending events when spun."""

    @abstractmethod
    def spin(self, duration: timedelta | None) -> None:
        """Process events for ``duration``, or until none remain when None."""


class Postbox(ABC, Generic[P]):
    """A place to post payloads to."""

    @abstractmethod
    def post(self, payload: P, wait: timedelta | None) -> bool:
        """Post ``payload``, waiting at most ``wait``; False if it was not accepted."""


class EventBus(ABC, Generic[P]):
    """A bus that delivers payloads to subscribed callbacks."""

    @abstractmethod
    def subscribe(self, callback: Callable[[P], None]) -> Any:
        """Register ``callback``; the returned subscription keeps it active."""


class PostboxProvider(ABC, Generic[P]):
    """A source of postboxes."""

    @abstractmethod
    def postbox(self) -> Postbox[P]:
        """Create a postbox."""


class Sender(ABC, Generic[P]):
    """Asynchronous sending end of a channel."""

    @abstractmethod
    async def send(self, value: P) -> None:
        """Send ``value``."""


class Receiver(ABC, Generic[P]):
    """Asynchronous receiving end of a channel; iterate it with ``async for``."""

    @abstractmethod
    async def recv(self) -> P:
        """Wait for and return the next value."""

    async def __aiter__(self) -> AsyncIterator[P]:
        while True:
            yield await self.recv()


class AsyncEventBus(ABC, Generic[P]):
    """An event bus whose subscriptions are receivers."""

    @abstractmethod
    def subscribe(self) -> Receiver[P]:
        """Create a subscription."""


class AsyncPostboxProvider(ABC, Generic[P]):
    """A source of asynchronous postboxes."""

    @abstractmethod
    def postbox(self) -> Sender[P]:
        """Create a sender."""
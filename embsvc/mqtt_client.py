"""MQTT client interfaces, events and messages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Union

from .executor import Blocking

MessageId = int


class QoS(IntEnum):
    """Quality of service."""

    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class EventType(Enum):
    """Kinds of client events."""

    BEFORE_CONNECT = "BeforeConnect"
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    SUBSCRIBED = "Subscribed"
    UNSUBSCRIBED = "Unsubscribed"
    PUBLISHED = "Published"
    RECEIVED = "Received"
    DELETED = "Deleted"


_NO_PAYLOAD = {EventType.BEFORE_CONNECT, EventType.DISCONNECTED}
_MESSAGE_ID = {
    EventType.SUBSCRIBED,
    EventType.UNSUBSCRIBED,
    EventType.PUBLISHED,
    EventType.DELETED,
}


@dataclass(frozen=True)
class Event:
    """A client event.

    ``value`` is the session flag for CONNECTED, the message id for the
    acknowledgement kinds, the message for RECEIVED and None otherwise.
    """

    kind: EventType
    value: Any = None

    def __post_init__(self) -> None:
        if self.kind in _NO_PAYLOAD and self.value is not None:
            raise ValueError(f"{self.kind.value} events carry no value")
        if self.kind is EventType.CONNECTED and not isinstance(self.value, bool):
            raise ValueError("Connected events carry a bool session flag")
        if self.kind in _MESSAGE_ID and (
            not isinstance(self.value, int) or isinstance(self.value, bool)
        ):
            raise ValueError(f"{self.kind.value} events carry a message id")

    def transform_received(self, f: Callable[[Any], Any]) -> Event:
        """A copy in which a received message is replaced by ``f(message)``."""
        if self.kind is EventType.RECEIVED:
            return Event(EventType.RECEIVED, f(self.value))
        return Event(self.kind, self.value)

    def __str__(self) -> str:
        if self.kind in _NO_PAYLOAD:
            return self.kind.value
        if self.kind is EventType.CONNECTED:
            return f"Connected(session: {str(self.value).lower()})"
        return f"{self.kind.value}({self.value})"


@dataclass(frozen=True)
class Complete:
    """The message arrived in one piece."""


@dataclass(frozen=True)
class InitialChunkData:
    """The first chunk of a message split across several events."""

    total_data_size: int


@dataclass(frozen=True)
class SubsequentChunkData:
    """A later chunk of a message split across several events."""

    current_data_offset: int
    total_data_size: int


Details = Union[Complete, InitialChunkData, SubsequentChunkData]


class Message(ABC):
    """A received MQTT message."""

    @abstractmethod
    def id(self) -> MessageId:
        """The message id."""

    @abstractmethod
    def topic(self) -> str | None:
        """The topic, absent on subsequent chunks."""

    @abstractmethod
    def data(self) -> bytes:
        """The payload bytes of this message or chunk."""

    @abstractmethod
    def details(self) -> Details:
        """Whether the message is complete or a chunk of a larger one."""


class MessageImpl(Message):
    """An owned copy of a message."""

    __slots__ = ("_id", "_topic", "_data", "_details")

    def __init__(
        self,
        id: MessageId,
        topic: str | None,
        data: bytes,
        details: Details = Complete(),
    ) -> None:
        self._id = id
        self._topic = topic
        self._data = bytes(data)
        self._details = details

    @classmethod
    def from_message(cls, message: Message) -> MessageImpl:
        """Copy any message."""
        return cls(message.id(), message.topic(), message.data(), message.details())

    def id(self) -> MessageId:
        return self._id

    def topic(self) -> str | None:
        return self._topic

    def data(self) -> bytes:
        return self._data

    def details(self) -> Details:
        return self._details

    def _key(self) -> tuple:
        return (self._id, self._topic, self._data, self._details)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageImpl):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (
            f"MessageImpl(id={self._id!r}, topic={self._topic!r}, "
            f"data={self._data!r}, details={self._details!r})"
        )


class Client(ABC):
    """Subscription management."""

    @abstractmethod
    def subscribe(self, topic: str, qos: QoS) -> MessageId:
        """Subscribe to ``topic``."""

    @abstractmethod
    def unsubscribe(self, topic: str) -> MessageId:
        """Unsubscribe from ``topic``."""


class Publish(ABC):
    """Publishing that waits for the message to be sent."""

    @abstractmethod
    def publish(self, topic: str, qos: QoS, retain: bool, payload: bytes) -> MessageId:
        """Publish ``payload`` to ``topic``."""


class Enqueue(ABC):
    """Publishing that only queues the message."""

    @abstractmethod
    def enqueue(self, topic: str, qos: QoS, retain: bool, payload: bytes) -> MessageId:
        """Queue ``payload`` for publishing to ``topic``."""


class Connection(ABC):
    """A stream of client events; iterating it yields events until it ends."""

    @abstractmethod
    def next(self) -> Event | None:
        """The next event, or None when the connection is closed."""

    def __iter__(self) -> Iterator[Event]:
        while (event := self.next()) is not None:
            yield event


class AsyncClient(ABC):
    """Asynchronous subscription management."""

    @abstractmethod
    async def subscribe(self, topic: str, qos: QoS) -> MessageId:
        """Subscribe to ``topic``."""

    @abstractmethod
    async def unsubscribe(self, topic: str) -> MessageId:
        """Unsubscribe from ``topic``."""


class AsyncPublish(ABC):
    """Asynchronous publishing."""

    @abstractmethod
    async def publish(
        self, topic: str, qos: QoS, retain: bool, payload: bytes
    ) -> MessageId:
        """Publish ``payload`` to ``topic``."""


class AsyncConnection(ABC):
    """An asynchronous stream of client events."""

    @abstractmethod
    async def next(self) -> Event | None:
        """The next event, or None when the connection is closed."""

    async def __aiter__(self) -> AsyncIterator[Event]:
        while (event := await self.next()) is not None:
            yield event


class BlockingClient(Blocking, Client, Publish, Connection):
    """Blocking client over an asynchronous one, driven by a blocker."""

    def subscribe(self, topic: str, qos: QoS) -> MessageId:
        return self.blocker.block_on(self.api.subscribe(topic, qos))

    def unsubscribe(self, topic: str) -> MessageId:
        return self.blocker.block_on(self.api.unsubscribe(topic))

    def publish(self, topic: str, qos: QoS, retain: bool, payload: bytes) -> MessageId:
        return self.blocker.block_on(self.api.publish(topic, qos, retain, payload))

    def next(self) -> Event | None:
        return self.blocker.block_on(self.api.next())
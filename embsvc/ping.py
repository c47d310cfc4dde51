"""ICMP echo (ping) interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from ipaddress import IPv4Address

from .executor import Blocking


@dataclass(frozen=True)
class Configuration:
    """Parameters of a ping session."""

    count: int = 5
    interval: timedelta = timedelta(seconds=1)
    timeout: timedelta = timedelta(seconds=1)
    data_size: int = 56
    tos: int = 0


@dataclass(frozen=True)
class Info:
    """Details of one echo reply."""

    addr: IPv4Address
    seqno: int
    ttl: int
    elapsed_time: timedelta
    recv_len: int


@dataclass(frozen=True)
class Reply:
    """Outcome of one echo request; ``info`` is None on timeout."""

    info: Info | None = None

    @property
    def timed_out(self) -> bool:
        return self.info is None


@dataclass(frozen=True)
class Summary:
    """Totals for a ping session."""

    transmitted: int = 0
    received: int = 0
    time: timedelta = timedelta(0)


ReplyCallback = Callable[[Summary, Reply], None]


class Ping(ABC):
    """Blocking ping."""

    @abstractmethod
    def ping(self, ip: IPv4Address, conf: Configuration) -> Summary:
        """Ping ``ip`` and return the session summary."""

    @abstractmethod
    def ping_details(
        self, ip: IPv4Address, conf: Configuration, reply_callback: ReplyCallback
    ) -> Summary:
        """Ping ``ip``, reporting each reply to ``reply_callback``."""


class AsyncPing(ABC):
    """Asynchronous ping."""

    @abstractmethod
    async def ping(self, ip: IPv4Address, conf: Configuration) -> Summary:
        """Ping ``ip`` and return the session summary."""

    @abstractmethod
    async def ping_details(
        self, ip: IPv4Address, conf: Configuration, reply_callback: ReplyCallback
    ) -> Summary:
        """Ping ``ip``, reporting each reply to ``reply_callback``."""


class BlockingPing(Blocking, Ping):
    """Blocking ping over an asynchronous one, driven by a blocker."""

    def ping(self, ip: IPv4Address, conf: Configuration) -> Summary:
        return self.blocker.block_on(self.api.ping(ip, conf))

    def ping_details(
        self, ip: IPv4Address, conf: Configuration, reply_callback: ReplyCallback
    ) -> Summary:
        return self.blocker.block_on(self.api.ping_details(ip, conf, reply_callback))
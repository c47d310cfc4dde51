"""Ethernet interface control."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Eth(ABC):
    """An Ethernet driver that can be started and stopped.

    Used as a context manager, it is started on entry and stopped on exit.
    """

    @abstractmethod
    def start(self) -> None:
        """Start the interface."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the interface."""

    @abstractmethod
    def is_started(self) -> bool:
        """Whether the interface has been started."""

    @abstractmethod
    def is_up(self) -> bool:
        """Whether the link is up."""

    def __enter__(self) -> Eth:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()
"""Over-the-air firmware update interfaces, blocking and asynchronous."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, NoReturn

from .executor import Blocker, Blocking
from .io import AsyncRead, AsyncWrite, Read, Write

__all__ = [
    "Slot",
    "FirmwareInfo",
    "UpdateProgress",
    "LoadResult",
    "SlotState",
    "FirmwareInfoLoader",
    "Ota",
    "OtaUpdate",
    "AsyncOta",
    "AsyncOtaUpdate",
    "BlockingOta",
    "BlockingOtaUpdate",
]

LABEL_MAX = 32
VERSION_MAX = 32
RELEASED_MAX = 32
DESCRIPTION_MAX = 32
SIGNATURE_MAX = 32
DOWNLOAD_ID_MAX = 128

_COPY_CHUNK = 64
_UNBOUNDED = (1 << 64) - 1

ProgressFn = Callable[[int, int], None]


def _check_text(name: str, value: str | None, limit: int) -> None:
    if value is not None and len(value.encode("utf-8")) > limit:
        raise ValueError(f"{name} must be at most {limit} bytes")


class LoadResult(Enum):
    """Outcome of feeding data to a firmware info loader."""

    RELOAD_MORE = "ReloadMore"
    LOAD_MORE = "LoadMore"
    LOADED = "Loaded"


class SlotState(Enum):
    """Validity state of a firmware slot."""

    FACTORY = "Factory"
    VALID = "Valid"
    INVALID = "Invalid"
    UNVERIFIED = "Unverified"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class FirmwareInfo:
    """Identification of a firmware image."""

    version: str
    released: str
    description: str | None = None
    signature: bytes | None = None
    download_id: str | None = None

    def __post_init__(self) -> None:
        _check_text("version", self.version, VERSION_MAX)
        _check_text("released", self.released, RELEASED_MAX)
        _check_text("description", self.description, DESCRIPTION_MAX)
        _check_text("download_id", self.download_id, DOWNLOAD_ID_MAX)
        if self.signature is not None:
            object.__setattr__(self, "signature", bytes(self.signature))
            if len(self.signature) > SIGNATURE_MAX:
                raise ValueError(f"signature must be at most {SIGNATURE_MAX} bytes")


@dataclass(frozen=True)
class Slot:
    """A firmware slot and what it holds."""

    label: str
    state: SlotState
    firmware: FirmwareInfo | None = None

    def __post_init__(self) -> None:
        _check_text("label", self.label, LABEL_MAX)


@dataclass(frozen=True)
class UpdateProgress:
    """Progress of an ongoing update operation."""

    progress: int
    operation: str


class FirmwareInfoLoader:
    """Extracts firmware information from the leading bytes of an image."""

    @abstractmethod
    def load(self, data: bytes) -> LoadResult:
        """Feed more image bytes."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether enough bytes were seen to produce the information."""

    @abstractmethod
    def get_info(self) -> FirmwareInfo:
        """The firmware information gathered so far."""


def _write_all(sink: Write, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = sink.write(bytes(view))
        if written <= 0:
            raise OSError("write accepted no bytes")
        view = view[written:]


async def _write_all_async(sink: AsyncWrite, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = await sink.write(bytes(view))
        if written <= 0:
            raise OSError("write accepted no bytes")
        view = view[written:]


class OtaUpdate(Write):
    """A firmware image being written to the update slot."""

    @abstractmethod
    def complete(self) -> None:
        """Finish the update and make the new image bootable."""

    @abstractmethod
    def abort(self) -> None:
        """Discard what was written."""

    def update(self, read: Read, progress: ProgressFn) -> None:
        """Copy all of ``read`` into the update and complete it.

        ``progress`` is called with the bytes copied so far after each chunk.
        If copying fails the update is aborted and the error re-raised.
        """
        try:
            copied = 0
            while chunk := read.read(_COPY_CHUNK):
                _write_all(self, chunk)
                copied += len(chunk)
                progress(copied, _UNBOUNDED)
        except BaseException:
            self.abort()
            raise
        self.complete()


class Ota:
    """Blocking access to the firmware slots of a device."""

    @abstractmethod
    def get_boot_slot(self) -> Slot:
        """The slot the device boots from."""

    @abstractmethod
    def get_running_slot(self) -> Slot:
        """The slot currently running."""

    @abstractmethod
    def get_update_slot(self) -> Slot:
        """The slot the next update goes to."""

    @abstractmethod
    def is_factory_reset_supported(self) -> bool:
        """Whether a factory reset is possible."""

    @abstractmethod
    def factory_reset(self) -> None:
        """Return to the factory image."""

    @abstractmethod
    def initiate_update(self) -> OtaUpdate:
        """Start writing a new image."""

    @abstractmethod
    def mark_running_slot_valid(self) -> None:
        """Confirm the running image."""

    @abstractmethod
    def mark_running_slot_invalid_and_reboot(self) -> NoReturn:
        """Reject the running image and reboot; raises if the reboot fails."""


class AsyncOtaUpdate(AsyncWrite):
    """A firmware image being written asynchronously."""

    @abstractmethod
    async def complete(self) -> None:
        """Finish the update and make the new image bootable."""

    @abstractmethod
    async def abort(self) -> None:
        """Discard what was written."""

    async def update(self, read: AsyncRead, progress: ProgressFn) -> None:
        """Copy all of ``read`` into the update and complete it."""
        try:
            copied = 0
            while chunk := await read.read(_COPY_CHUNK):
                await _write_all_async(self, chunk)
                copied += len(chunk)
                progress(copied, _UNBOUNDED)
        except BaseException:
            await self.abort()
            raise
        await self.complete()


class AsyncOta:
    """Asynchronous access to the firmware slots of a device."""

    @abstractmethod
    async def get_boot_slot(self) -> Slot:
        """The slot the device boots from."""

    @abstractmethod
    async def get_running_slot(self) -> Slot:
        """The slot currently running."""

    @abstractmethod
    async def get_update_slot(self) -> Slot:
        """The slot the next update goes to."""

    @abstractmethod
    def is_factory_reset_supported(self) -> bool:
        """Whether a factory reset is possible."""

    @abstractmethod
    async def factory_reset(self) -> None:
        """Return to the factory image."""

    @abstractmethod
    async def initiate_update(self) -> AsyncOtaUpdate:
        """Start writing a new image."""

    @abstractmethod
    async def mark_running_slot_valid(self) -> None:
        """Confirm the running image."""

    @abstractmethod
    def mark_running_slot_invalid_and_reboot(self) -> NoReturn:
        """Reject the running image and reboot; raises if the reboot fails."""


class BlockingOtaUpdate(Blocking, OtaUpdate):
    """Blocking update over an asynchronous one, driven by a blocker."""

    def write(self, data: bytes) -> int:
        return self.blocker.block_on(self.api.write(data))

    def flush(self) -> None:
        self.blocker.block_on(self.api.flush())

    def complete(self) -> None:
        self.blocker.block_on(self.api.complete())

    def abort(self) -> None:
        self.blocker.block_on(self.api.abort())


class BlockingOta(Ota):
    """Blocking OTA over an asynchronous one, driven by a blocker."""

    def __init__(self, blocker: Blocker, ota: AsyncOta) -> None:
        self._blocker = blocker
        self._ota = ota

    def get_boot_slot(self) -> Slot:
        return self._blocker.block_on(self._ota.get_boot_slot())

    def get_running_slot(self) -> Slot:
        return self._blocker.block_on(self._ota.get_running_slot())

    def get_update_slot(self) -> Slot:
        return self._blocker.block_on(self._ota.get_update_slot())

    def is_factory_reset_supported(self) -> bool:
        return self._ota.is_factory_reset_supported()

    def factory_reset(self) -> None:
        self._blocker.block_on(self._ota.factory_reset())

    def initiate_update(self) -> BlockingOtaUpdate:
        update = self._blocker.block_on(self._ota.initiate_update())
        return BlockingOtaUpdate(self._blocker, update)

    def mark_running_slot_valid(self) -> None:
        self._blocker.block_on(self._ota.mark_running_slot_valid())

    def mark_running_slot_invalid_and_reboot(self) -> NoReturn:
        self._ota.mark_running_slot_invalid_and_reboot()
        raise RuntimeError("reboot did not happen")

    def __repr__(self) -> str:
        extra: Any = type(self._ota).__name__
        return f"BlockingOta(ota={extra})"
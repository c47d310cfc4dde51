import io as stdio

import pytest

from embsvc.executor import AsyncioBlocker
from embsvc.io import AsyncRead, AsyncWrite, BlockingIo, Read, UnblockingIo, Write


class MemoryStream(AsyncRead, AsyncWrite):
    def __init__(self, data=b""):
        self.buffer = bytearray(data)
        self.written = bytearray()
        self.flushes = 0

    async def read(self, size):
        chunk = bytes(self.buffer[:size])
        del self.buffer[:size]
        return chunk

    async def write(self, data):
        self.written.extend(data)
        return len(data)

    async def flush(self):
        self.flushes += 1


class BrokenStream(AsyncRead):
    async def read(self, size):
        raise OSError("device gone")


@pytest.fixture
def blocker():
    with AsyncioBlocker() as b:
        yield b


def test_blocking_io_reads_in_chunks(blocker):
    stream = BlockingIo(blocker, MemoryStream(b"hello world"))
    assert stream.read(5) == b"hello"
    assert stream.read(100) == b" world"
    assert stream.read(1) == b""


def test_blocking_io_writes_and_flushes(blocker):
    inner = MemoryStream()
    stream = BlockingIo(blocker, inner)
    assert stream.write(b"abc") == 3
    stream.flush()
    assert bytes(inner.written) == b"abc"
    assert inner.flushes == 1


def test_blocking_io_propagates_errors(blocker):
    with pytest.raises(OSError, match="device gone"):
        BlockingIo(blocker, BrokenStream()).read(1)


@pytest.mark.asyncio
async def test_unblocking_io_reads_and_writes():
    backing = stdio.BytesIO(b"payload")
    stream = UnblockingIo(backing)
    assert await stream.read(3) == b"pay"
    assert await stream.write(b"XY") == 2
    await stream.flush()
    assert backing.getvalue() == b"payXYad"


def test_round_trip_through_both_adapters(blocker):
    backing = stdio.BytesIO()
    stream = BlockingIo(blocker, UnblockingIo(backing))
    data = bytes(range(64))
    assert stream.write(data) == len(data)
    backing.seek(0)
    assert stream.read(len(data)) == data


def test_interfaces_are_abstract():
    for cls in (Read, Write, AsyncRead, AsyncWrite):
        with pytest.raises(TypeError):
            cls()
import asyncio
import threading

import pytest

from embsvc.executor import (
    AsyncioBlocker,
    Blocker,
    Blocking,
    ThreadUnblocker,
    TrivialUnblocking,
    Unblocker,
    Unblocking,
)


@pytest.fixture
def blocker():
    with AsyncioBlocker() as b:
        yield b


async def _value(v):
    await asyncio.sleep(0)
    return v


async def _fail():
    raise KeyError("missing")


def test_block_on_returns_result(blocker):
    assert blocker.block_on(_value(42)) == 42


def test_block_on_accepts_plain_awaitable(blocker):
    assert blocker.block_on(asyncio.sleep(0, result="done")) == "done"


def test_block_on_propagates_exception(blocker):
    with pytest.raises(KeyError):
        blocker.block_on(_fail())


def test_block_on_reuses_loop_state(blocker):
    queue = asyncio.Queue()
    blocker.block_on(queue.put("item"))
    assert blocker.block_on(queue.get()) == "item"


def test_block_on_after_close_opens_new_loop():
    b = AsyncioBlocker()
    assert b.block_on(_value(1)) == 1
    b.close()
    assert b.block_on(_value(2)) == 2
    b.close()


def test_abstract_classes_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Blocker()
    with pytest.raises(TypeError):
        Unblocker()


@pytest.mark.asyncio
async def test_thread_unblocker_runs_in_other_thread():
    main = threading.get_ident()
    value, ident = await ThreadUnblocker().unblock(lambda: (7, threading.get_ident()))
    assert value == 7
    assert ident != main


@pytest.mark.asyncio
async def test_thread_unblocker_propagates_exception():
    def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        await ThreadUnblocker().unblock(boom)


def test_blocking_pair_drives_api(blocker):
    pair = Blocking(blocker, _value)
    assert pair.blocker.block_on(pair.api("x")) == "x"
    assert pair == Blocking(blocker, _value)


@pytest.mark.asyncio
async def test_unblocking_pair_offloads_api():
    pair = Unblocking(ThreadUnblocker(), lambda: "result")
    assert await pair.unblocker.unblock(pair.api) == "result"
    assert TrivialUnblocking(3).api == 3
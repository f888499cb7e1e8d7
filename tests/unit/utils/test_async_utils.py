"""Tests for async_utils helpers."""

import asyncio

import pytest

from cloudindex.utils.async_utils import LoopThread, run_coro_sync, sync_loop


def test_run_coro_sync_from_sync() -> None:
    async def coro() -> int:
        await asyncio.sleep(0)
        return 42

    assert run_coro_sync(coro()) == 42


@pytest.mark.asyncio
async def test_run_coro_sync_from_async() -> None:
    async def coro() -> int:
        await asyncio.sleep(0)
        return 7

    assert run_coro_sync(coro()) == 7


def test_run_coro_sync_propagates_errors() -> None:
    async def coro() -> None:
        raise LookupError("missing")

    with pytest.raises(LookupError):
        run_coro_sync(coro())


@pytest.mark.asyncio
async def test_run_coro_sync_propagates_errors_from_running_loop() -> None:
    async def coro() -> None:
        raise LookupError("missing")

    with pytest.raises(LookupError):
        run_coro_sync(coro())


def test_consecutive_calls_share_one_loop() -> None:
    async def current_loop() -> asyncio.AbstractEventLoop:
        return asyncio.get_running_loop()

    first = run_coro_sync(current_loop())
    second = run_coro_sync(current_loop())

    assert first is second is sync_loop()
    assert not first.is_closed()


def test_reentrant_call_is_rejected() -> None:
    loop_thread = LoopThread(name="reentrant-test")

    async def nested() -> None:
        loop_thread.run(asyncio.sleep(0))

    with pytest.raises(RuntimeError, match="await the async variant"):
        loop_thread.run(nested())

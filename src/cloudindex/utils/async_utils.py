"""Asynchronous helpers.

The client is asyncio-first; these helpers let synchronous callers (the CLI
and the ``*_sync`` convenience wrappers) drive its coroutines.

All synchronous calls share one event loop running on a daemon thread. The
gateway's ``httpx.AsyncClient`` keeps pooled connections bound to the loop
that opened them, so consecutive sync calls must not each get a fresh loop.
"""

import asyncio
import threading
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class LoopThread:
    """An event loop running forever on a background thread."""

    def __init__(self, name: str = "cloudindex-sync") -> None:
        self.name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Return the running loop, starting the thread on first use."""
        with self._lock:
            if self._loop is None or self._loop.is_closed():
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name=self.name, daemon=True)
                thread.start()
                self._loop = loop
            return self._loop

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run *coro* on the background loop and block until it finishes."""
        loop = self.loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            coro.close()
            raise RuntimeError(
                "Synchronous wrappers cannot be called from code running on the sync loop; "
                "await the async variant instead"
            )
        return asyncio.run_coroutine_threadsafe(coro, loop).result()


_sync_loop = LoopThread()


def run_coro_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Drive *coro* to completion from synchronous code and return its result.

    The coroutine runs on the shared background loop, which also makes this
    safe to call while the calling thread runs its own event loop (for
    example inside a notebook or an async test). Exceptions raised by the
    coroutine reach the caller unchanged.
    """
    return _sync_loop.run(coro)


def sync_loop() -> asyncio.AbstractEventLoop:
    """Event loop used by :func:`run_coro_sync`."""
    return _sync_loop.loop

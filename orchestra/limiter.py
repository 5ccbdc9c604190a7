"""Bounded-parallelism gate for provider calls."""

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL = 3

T = TypeVar("T")


class ConcurrencyLimiter:
    """Run at most ``limit`` calls at once; later callers wait in FIFO order.

    State is an in-flight counter and a queue of waiter futures. A released
    slot is handed straight to the oldest waiter so it cannot be stolen by a
    caller that arrives later.
    """

    def __init__(self, limit: int = DEFAULT_MAX_PARALLEL) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._limit = limit
        self._active = 0
        self._peak = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    @property
    def peak(self) -> int:
        """Highest number of simultaneously held slots seen so far."""
        return self._peak

    async def acquire(self) -> None:
        if self._active < self._limit and not self._waiters:
            self._take_slot()
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug("Limiter full (%d/%d), %d waiting", self._active, self._limit, len(self._waiters))
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The slot was handed over just before cancellation.
                self.release()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(fut)
            raise

    def release(self) -> None:
        if self._active <= 0:
            raise RuntimeError("release() called without a held slot")
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Ownership moves to the waiter; the counter stays unchanged.
                fut.set_result(None)
                return
        self._active -= 1

    def _take_slot(self) -> None:
        self._active += 1
        self._peak = max(self._peak, self._active)

    async def run(self, fn: Callable[..., Awaitable[T]], *args: object) -> T:
        """Await ``fn(*args)`` inside a slot."""
        async with self:
            return await fn(*args)

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.release()

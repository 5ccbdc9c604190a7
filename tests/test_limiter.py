"""Tests for orchestra/limiter.py."""

import asyncio

import pytest

from orchestra.limiter import ConcurrencyLimiter


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)


def test_release_without_slot_raises():
    limiter = ConcurrencyLimiter(1)
    with pytest.raises(RuntimeError):
        limiter.release()


async def test_never_exceeds_limit():
    """10 tasks through a limit of 3 never overlap by more than 3."""
    limiter = ConcurrencyLimiter(3)
    in_flight = 0
    observed: list[int] = []

    async def task() -> None:
        nonlocal in_flight
        async with limiter:
            in_flight += 1
            observed.append(in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1

    await asyncio.gather(*(task() for _ in range(10)))

    assert max(observed) <= 3
    assert limiter.peak == 3
    assert limiter.active == 0
    assert limiter.waiting == 0


async def test_waiters_start_in_fifo_order():
    limiter = ConcurrencyLimiter(1)
    started: list[int] = []

    async def task(i: int) -> None:
        async with limiter:
            started.append(i)
            await asyncio.sleep(0.001)

    await limiter.acquire()
    tasks = [asyncio.create_task(task(i)) for i in range(5)]
    await asyncio.sleep(0)
    assert limiter.waiting == 5
    limiter.release()
    await asyncio.gather(*tasks)

    assert started == [0, 1, 2, 3, 4]


async def test_run_returns_value():
    limiter = ConcurrencyLimiter(2)

    async def double(x: int) -> int:
        return x * 2

    assert await limiter.run(double, 21) == 42
    assert limiter.active == 0


async def test_slot_released_when_body_raises():
    limiter = ConcurrencyLimiter(1)

    async def boom() -> None:
        raise ValueError("boom")

    with pytest.raises(ValueError):
        await limiter.run(boom)

    assert limiter.active == 0
    # Slot is free again.
    await asyncio.wait_for(limiter.acquire(), timeout=1)
    limiter.release()


async def test_cancelled_waiter_does_not_leak_slot():
    limiter = ConcurrencyLimiter(1)
    await limiter.acquire()

    waiter = asyncio.create_task(limiter.acquire())
    await asyncio.sleep(0)
    assert limiter.waiting == 1
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert limiter.waiting == 0
    limiter.release()
    assert limiter.active == 0

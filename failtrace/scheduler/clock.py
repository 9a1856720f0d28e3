"""
Clocks
======
Time source and sleeper for the scheduler's retry loop, in milliseconds.

MonotonicClock  — production: time.monotonic + asyncio.sleep
VirtualClock    — tests: sleeping advances virtual time instantly and only
                  yields to the event loop, so timeouts are deterministic
"""
import asyncio
import time
from typing import Protocol

__tracebackhide__ = True


class Clock(Protocol):
    def now_ms(self) -> float:
        ...

    async def sleep_ms(self, ms: float) -> None:
        ...


class MonotonicClock:

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    async def sleep_ms(self, ms: float) -> None:
        await asyncio.sleep(max(ms, 0) / 1000.0)


class VirtualClock:
    """A clock that only moves when something sleeps on it (or advance() is called)."""

    def __init__(self, start_ms: float = 0) -> None:
        self._now = start_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> float:
        return self._now

    def advance(self, ms: float) -> None:
        self._now += ms

    async def sleep_ms(self, ms: float) -> None:
        ms = max(ms, 0)
        self.sleeps.append(ms)
        self._now += ms
        await asyncio.sleep(0)

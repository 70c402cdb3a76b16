from __future__ import annotations

"""
readykit.core.time
==================

Clock and timer abstractions:
- Clock Protocol for dependency-injection and testing.
- Timer Protocol: one-shot `schedule(delay_ms, callback)` + `cancel(handle)`.
- SystemClock / LoopTimer: production defaults (system time, asyncio loop).
- ManualClock / ManualTimer: deterministic time control for tests.
"""

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from .types import Callback, Millis, MonotonicMs, TimestampMs


class Clock(Protocol):
    """Minimal clock protocol used across the project."""

    def now_ms(self) -> TimestampMs: ...
    def mono_ms(self) -> MonotonicMs: ...


class Timer(Protocol):
    """One-shot timer. `cancel` must accept handles that have already fired."""

    def schedule(self, delay_ms: Millis, callback: Callback) -> Any: ...
    def cancel(self, handle: Any) -> None: ...


class SystemClock:
    """Default clock backed by system time."""

    def now_ms(self) -> TimestampMs:
        """Epoch milliseconds from system clock."""
        return time.time_ns() // 1_000_000

    def mono_ms(self) -> MonotonicMs:
        """Process-local monotonic milliseconds (not related to wall clock)."""
        return time.monotonic_ns() // 1_000_000


class ManualClock(SystemClock):
    """
    Controllable clock for tests.

    Wall time starts at `start_ms` and only moves on `advance(ms)`.
    Monotonic time mirrors wall time for simplicity.
    """

    def __init__(self, start_ms: Millis = 0) -> None:
        self._wall: Millis = start_ms

    def now_ms(self) -> TimestampMs:
        return self._wall

    def mono_ms(self) -> MonotonicMs:
        return self._wall

    def advance(self, ms: Millis) -> None:
        self._wall += max(0, int(ms))


class LoopTimer:
    """
    Timer backed by `loop.call_later`.

    The loop is resolved lazily on the first `schedule()` so the timer can be
    built outside of a running loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, delay_ms: Millis, callback: Callback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms / 1000.0), callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


@dataclass(order=True)
class _Scheduled:
    due_ms: int
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualTimer:
    """
    Deterministic timer for tests. Callbacks fire synchronously from
    `advance(ms)`, in due order (ties in scheduling order).
    """

    def __init__(self, clock: ManualClock | None = None) -> None:
        self.clock = clock or ManualClock()
        self._heap: list[_Scheduled] = []
        self._seq = itertools.count()

    def schedule(self, delay_ms: Millis, callback: Callback) -> _Scheduled:
        entry = _Scheduled(self.clock.mono_ms() + max(0, int(delay_ms)), next(self._seq), callback)
        heapq.heappush(self._heap, entry)
        return entry

    def cancel(self, handle: _Scheduled) -> None:
        handle.cancelled = True

    @property
    def pending(self) -> int:
        return sum(1 for e in self._heap if not e.cancelled)

    def advance(self, ms: Millis) -> int:
        """Move the clock forward and fire everything that became due. Returns the number fired."""
        target = self.clock.mono_ms() + max(0, int(ms))
        fired = 0
        while self._heap and self._heap[0].due_ms <= target:
            entry = heapq.heappop(self._heap)
            if entry.cancelled:
                continue
            self.clock.advance(entry.due_ms - self.clock.mono_ms())
            entry.cancelled = True
            entry.callback()
            fired += 1
        self.clock.advance(target - self.clock.mono_ms())
        return fired

from __future__ import annotations

import asyncio

import pytest

from readykit.core.time import LoopTimer, ManualClock, ManualTimer, SystemClock

pytestmark = [pytest.mark.unit]


def test_manual_timer_fires_in_due_order():
    clock = ManualClock(start_ms=100)
    timer = ManualTimer(clock)
    fired = []
    timer.schedule(30, lambda: fired.append(("b", clock.mono_ms())))
    timer.schedule(10, lambda: fired.append(("a", clock.mono_ms())))
    timer.schedule(30, lambda: fired.append(("c", clock.mono_ms())))

    assert timer.pending == 3
    assert timer.advance(20) == 1
    assert fired == [("a", 110)]
    assert clock.mono_ms() == 120

    assert timer.advance(100) == 2
    assert fired == [("a", 110), ("b", 130), ("c", 130)]
    assert clock.mono_ms() == 220
    assert timer.pending == 0


def test_manual_timer_cancel():
    timer = ManualTimer()
    fired = []
    h = timer.schedule(5, lambda: fired.append(1))
    timer.cancel(h)
    assert timer.pending == 0
    assert timer.advance(10) == 0
    assert fired == []
    # cancelling a spent handle is fine
    timer.cancel(h)


def test_system_clock_is_monotonic():
    clock = SystemClock()
    a = clock.mono_ms()
    b = clock.mono_ms()
    assert b >= a
    assert clock.now_ms() > 0


@pytest.mark.asyncio
async def test_loop_timer_schedules_and_cancels():
    timer = LoopTimer()
    fired = asyncio.Event()
    cancelled = []

    timer.schedule(0, fired.set)
    h = timer.schedule(0, lambda: cancelled.append(1))
    timer.cancel(h)

    await asyncio.wait_for(fired.wait(), timeout=1)
    await asyncio.sleep(0.01)
    assert cancelled == []
    # cancelling after the fact is a no-op
    timer.cancel(h)

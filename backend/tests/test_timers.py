"""
Tests for the timer schedulers.
"""
import asyncio

import pytest

from lifepath.services.timers import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    def test_nothing_fires_before_advance(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(5, lambda: fired.append("a"))
        assert fired == []
        assert scheduler.pending() == 1

    def test_fires_in_deadline_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(10, lambda: fired.append(10))
        scheduler.call_later(5, lambda: fired.append(5))
        scheduler.call_later(30, lambda: fired.append(30))
        assert scheduler.advance(10) == 2
        assert fired == [5, 10]
        assert scheduler.now() == 10

    def test_cancelled_timer_does_not_fire(self):
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append(1))
        handle.cancel()
        assert scheduler.advance(5) == 0
        assert fired == []
        assert handle.cancelled()

    def test_timers_scheduled_during_advance(self):
        scheduler = ManualScheduler()
        ticks = []

        def tick():
            ticks.append(scheduler.now())
            scheduler.call_later(30, tick)

        scheduler.call_later(30, tick)
        scheduler.advance(95)
        assert ticks == [30, 60, 90]
        assert scheduler.pending() == 1


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_call_later_runs_on_loop(self):
        scheduler = AsyncioScheduler()
        done = asyncio.Event()
        scheduler.call_later(0.01, done.set)
        await asyncio.wait_for(done.wait(), timeout=1)
        assert done.is_set()

    @pytest.mark.asyncio
    async def test_cancel(self):
        scheduler = AsyncioScheduler()
        fired = []
        handle = scheduler.call_later(0.01, lambda: fired.append(1))
        handle.cancel()
        await asyncio.sleep(0.03)
        assert fired == []

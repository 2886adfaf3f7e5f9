"""
Tests for PendingOperationQueue.

  - per-category debounce batching
  - invalidation of queued and in-flight requests
  - per-request failures
"""
import asyncio
from typing import List

import pytest

from lifepath.services.pending_ops import OperationInvalidated, PendingOperationQueue
from lifepath.services.text_generator import TextGenerationError, TextGenerator
from lifepath.services.timers import ManualScheduler


class RecordingGenerator(TextGenerator):
    """Echoes its context; optionally waits on a gate before answering."""

    def __init__(self, gate: asyncio.Event = None, fail_on: str = None):
        self.gate = gate
        self.fail_on = fail_on
        self.batches: List[List[str]] = []

    async def generate(self, context: str, kind: str) -> str:
        if self.gate is not None:
            await self.gate.wait()
        if context == self.fail_on:
            raise TextGenerationError("backend down")
        return f"{kind}:{context}"

    async def generate_batch(self, contexts, kind):
        self.batches.append(list(contexts))
        return await super().generate_batch(contexts, kind)


class TestFlushing:
    @pytest.mark.asyncio
    async def test_nothing_runs_before_debounce(self):
        scheduler = ManualScheduler()
        generator = RecordingGenerator()
        queue = PendingOperationQueue(generator, scheduler, debounce=1)

        future = queue.submit("milestone", "milestone-1", "ctx")
        scheduler.advance(0.5)
        await asyncio.sleep(0)
        assert not future.done()
        assert queue.queued_count("milestone") == 1

        scheduler.advance(0.5)
        assert await future == "milestone:ctx"
        assert queue.queued_count() == 0
        assert queue.in_flight_count() == 0

    @pytest.mark.asyncio
    async def test_same_category_is_batched(self):
        scheduler = ManualScheduler()
        generator = RecordingGenerator()
        queue = PendingOperationQueue(generator, scheduler, debounce=0.5)

        a = queue.submit("milestone", "milestone-1", "a")
        b = queue.submit("milestone", "milestone-2", "b")
        c = queue.submit("prediction", "prediction-1-1", "c")
        scheduler.advance(0.5)

        assert await asyncio.gather(a, b, c) == ["milestone:a", "milestone:b", "prediction:c"]
        assert sorted(generator.batches) == [["a", "b"], ["c"]]

    @pytest.mark.asyncio
    async def test_failure_is_per_request(self):
        scheduler = ManualScheduler()
        queue = PendingOperationQueue(RecordingGenerator(fail_on="bad"), scheduler)

        ok = queue.submit("milestone", "milestone-1", "good")
        bad = queue.submit("milestone", "milestone-2", "bad")
        scheduler.advance(0)

        assert await ok == "milestone:good"
        with pytest.raises(TextGenerationError):
            await bad


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_queued_request_invalidated(self):
        scheduler = ManualScheduler()
        generator = RecordingGenerator()
        queue = PendingOperationQueue(generator, scheduler, debounce=1)

        doomed = queue.submit("prediction", "prediction-1-1", "x")
        kept = queue.submit("prediction", "prediction-1-2", "y")
        assert queue.invalidate(["prediction-1-1"]) == 1

        with pytest.raises(OperationInvalidated) as exc_info:
            await doomed
        assert exc_info.value.node_id == "prediction-1-1"

        scheduler.advance(1)
        assert await kept == "prediction:y"
        assert generator.batches == [["y"]]

    @pytest.mark.asyncio
    async def test_in_flight_request_goes_stale(self):
        gate = asyncio.Event()
        scheduler = ManualScheduler()
        queue = PendingOperationQueue(RecordingGenerator(gate=gate), scheduler)

        future = queue.submit("prediction", "prediction-1-3", "x")
        scheduler.advance(0)
        await asyncio.sleep(0)
        assert queue.in_flight_count() == 1

        assert queue.invalidate(["prediction-1-3"]) == 1
        gate.set()
        with pytest.raises(OperationInvalidated):
            await future
        assert queue.in_flight_count() == 0

    @pytest.mark.asyncio
    async def test_cancel_all_resolves_every_waiter(self):
        gate = asyncio.Event()
        scheduler = ManualScheduler()
        queue = PendingOperationQueue(RecordingGenerator(gate=gate), scheduler, debounce=1)

        in_flight = queue.submit("milestone", "milestone-1", "a")
        scheduler.advance(1)
        await asyncio.sleep(0)
        queued = queue.submit("milestone", "milestone-2", "b")

        queue.cancel_all()
        for future in (in_flight, queued):
            with pytest.raises(OperationInvalidated):
                await future
        assert scheduler.pending() == 0

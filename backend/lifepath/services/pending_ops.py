"""
Pending re-roll operations, queued per category.

Re-roll requests of one category (milestone / prediction) submitted within the
debounce window are flushed to the generator together. Removing a node
invalidates its queued and in-flight requests: the waiter receives
OperationInvalidated instead of a result, so a late completion can never write
into a node that no longer exists.
"""
import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Union

from lifepath.services.text_generator import TextGenerationError, TextGenerator
from lifepath.services.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class OperationInvalidated(Exception):
    """The target node was removed (or the session torn down) mid-flight."""

    def __init__(self, node_id: str):
        super().__init__(f"Pending operation for {node_id} was invalidated")
        self.node_id = node_id


@dataclass(eq=False)
class PendingRequest:
    category: str
    node_id: str
    context: str
    future: asyncio.Future
    stale: bool = False


class PendingOperationQueue:
    """Per-category request queue in front of a TextGenerator."""

    def __init__(
        self,
        generator: TextGenerator,
        scheduler: Scheduler,
        debounce: float = 0.0,
    ) -> None:
        self.generator = generator
        self._scheduler = scheduler
        self._debounce = debounce
        self._queued: Dict[str, List[PendingRequest]] = defaultdict(list)
        self._in_flight: Dict[str, List[PendingRequest]] = defaultdict(list)
        self._flush_timers: Dict[str, TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, category: str, node_id: str, context: str) -> asyncio.Future:
        """Queue a request; the returned future resolves to the generated text."""
        future = asyncio.get_running_loop().create_future()
        self._queued[category].append(
            PendingRequest(category=category, node_id=node_id, context=context, future=future)
        )
        if category not in self._flush_timers:
            self._flush_timers[category] = self._scheduler.call_later(
                self._debounce, lambda: self._start_flush(category)
            )
        return future

    def queued_count(self, category: Optional[str] = None) -> int:
        if category is not None:
            return len(self._queued.get(category, []))
        return sum(len(reqs) for reqs in self._queued.values())

    def in_flight_count(self) -> int:
        return sum(len(reqs) for reqs in self._in_flight.values())

    def invalidate(self, node_ids: Iterable[str]) -> int:
        """Drop queued requests and mark in-flight ones stale. Returns how many were hit."""
        targets = set(node_ids)
        hit = 0
        for category in list(self._queued):
            keep: List[PendingRequest] = []
            for req in self._queued[category]:
                if req.node_id in targets:
                    self._resolve(req, OperationInvalidated(req.node_id))
                    hit += 1
                else:
                    keep.append(req)
            self._queued[category] = keep
        for node_id in targets:
            for req in self._in_flight.get(node_id, []):
                if not req.stale:
                    req.stale = True
                    hit += 1
        if hit:
            logger.debug("Invalidated %d pending operation(s) for %s", hit, sorted(targets))
        return hit

    def cancel_all(self) -> None:
        """Teardown: cancel flush timers, invalidate everything, stop running batches."""
        for handle in self._flush_timers.values():
            handle.cancel()
        self._flush_timers.clear()
        node_ids = {req.node_id for reqs in self._queued.values() for req in reqs}
        node_ids.update(self._in_flight)
        self.invalidate(node_ids)
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def _start_flush(self, category: str) -> None:
        self._flush_timers.pop(category, None)
        batch = self._queued.pop(category, [])
        if not batch:
            return
        for req in batch:
            self._in_flight[req.node_id].append(req)
        task = asyncio.ensure_future(self._run_batch(category, batch))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_batch_done(t, batch))

    async def _run_batch(self, category: str, batch: List[PendingRequest]) -> None:
        logger.debug("Flushing %d %s request(s)", len(batch), category)
        try:
            results = await self.generator.generate_batch(
                [req.context for req in batch], category
            )
        except Exception as exc:
            results = [exc] * len(batch)

        for req, result in zip(batch, results):
            self._settle(req, result)

    def _on_batch_done(self, task: asyncio.Task, batch: List[PendingRequest]) -> None:
        self._tasks.discard(task)
        # a batch cancelled before or during the generator call leaves waiters unresolved
        for req in batch:
            if not req.future.done():
                self._settle(req, OperationInvalidated(req.node_id))

    def _settle(self, req: PendingRequest, result: Union[str, BaseException]) -> None:
        flights = self._in_flight.get(req.node_id)
        if flights is not None:
            if req in flights:
                flights.remove(req)
            if not flights:
                del self._in_flight[req.node_id]
        if req.stale:
            result = OperationInvalidated(req.node_id)
        elif isinstance(result, BaseException) and not isinstance(result, Exception):
            result = TextGenerationError(repr(result))
        self._resolve(req, result)

    @staticmethod
    def _resolve(req: PendingRequest, result: Union[str, BaseException]) -> None:
        if req.future.done():
            return
        if isinstance(result, BaseException):
            req.future.set_exception(result)
        else:
            req.future.set_result(result)

"""
Tests for RandomEventScheduler on a virtual clock.
"""
import random
from unittest.mock import MagicMock

import pytest

from lifepath.models.life_graph import NodeKind, TimelineAxis
from lifepath.services.random_event_scheduler import (
    GENERIC_EVENTS,
    SPONSORED_EVENTS,
    RandomEventScheduler,
)
from lifepath.services.timers import ManualScheduler
from lifepath.world.identity import IdentityAllocator
from lifepath.world.life_graph import LifeGraph


def _rng(random_value: float = 0.5) -> MagicMock:
    rng = MagicMock(spec=random.Random)
    rng.random.return_value = random_value
    rng.choice.side_effect = lambda pool: pool[0]
    return rng


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


def _make_scheduler(clock: ManualScheduler, rng=None, **kwargs):
    graph = LifeGraph()
    axis = TimelineAxis(start_x=250, end_x=1250, start_age=20, end_age=80)
    events = RandomEventScheduler(
        graph, IdentityAllocator(), clock, axis, rng=rng or _rng(), **kwargs
    )
    return events, graph


class TestCadence:
    def test_first_offer_after_initial_delay(self, clock):
        events, _ = _make_scheduler(clock)
        events.start()
        clock.advance(4)
        assert events.current_offer is None
        clock.advance(1)
        assert events.current_offer is not None
        assert events.current_offer.id == "offer-1"

    def test_interval_counts_from_start(self, clock):
        events, _ = _make_scheduler(clock, ttl=100)
        events.start()
        clock.advance(30)
        assert events.current_offer.id == "offer-2"
        clock.advance(30)
        assert events.current_offer.id == "offer-3"

    def test_new_offer_replaces_pending(self, clock):
        events, _ = _make_scheduler(clock, ttl=100)
        events.start()
        clock.advance(5)
        clock.advance(25)
        assert events.current_offer.id == "offer-2"
        # offer-1's auto-dismiss must not clear offer-2
        clock.advance(80)
        assert events.current_offer.id == "offer-4"

    def test_start_is_idempotent(self, clock):
        events, _ = _make_scheduler(clock)
        events.start()
        events.start()
        assert clock.pending() == 2

    def test_stop_cancels_everything(self, clock):
        events, _ = _make_scheduler(clock)
        events.start()
        clock.advance(5)
        events.stop()
        assert events.current_offer is None
        assert not events.running
        assert clock.pending() == 0
        clock.advance(120)
        assert events.current_offer is None


class TestDismissal:
    def test_auto_dismiss_after_ttl_adds_no_node(self, clock):
        events, graph = _make_scheduler(clock)
        events.start()
        clock.advance(5)
        assert events.current_offer is not None
        revision = graph.revision

        clock.advance(10)

        assert events.current_offer is None
        assert graph.node_count() == 0
        assert graph.revision == revision

    def test_manual_dismiss(self, clock):
        events, graph = _make_scheduler(clock)
        events.start()
        clock.advance(5)
        assert events.dismiss() is True
        assert events.current_offer is None
        assert events.dismiss() is False
        assert graph.node_count() == 0


class TestAccept:
    def test_accept_materializes_event(self, clock):
        events, graph = _make_scheduler(clock, rng=_rng(0.5))
        events.start()
        clock.advance(5)

        node = events.accept()

        assert node.id == "event-1"
        assert node.kind == NodeKind.EVENT
        assert node.content == GENERIC_EVENTS[0]
        assert (node.position.x, node.position.y) == (650, 200)
        # 20 + (650 - 250) * 60 / 1000
        assert node.age == 44
        assert graph.get_node("event-1") == node
        assert events.current_offer is None

    def test_accept_cancels_auto_dismiss(self, clock):
        events, graph = _make_scheduler(clock)
        events.start()
        clock.advance(5)
        events.accept()
        clock.advance(10)
        assert graph.node_count() == 1

    def test_sponsored_display_text(self, clock):
        events, _ = _make_scheduler(clock, rng=_rng(0.1))
        offer = events.emit_offer()
        assert offer.is_sponsored
        assert offer.sponsor == SPONSORED_EVENTS[0].sponsor
        node = events.accept()
        assert node.content == "You get a job offer at Amazon (Sponsored by Amazon)"

    def test_accept_without_offer(self, clock):
        events, graph = _make_scheduler(clock)
        assert events.accept() is None
        assert graph.node_count() == 0

    def test_expired_offer_cannot_be_accepted(self, clock):
        events, graph = _make_scheduler(clock)
        events.start()
        clock.advance(15)
        assert events.accept() is None
        assert graph.node_count() == 0

"""
Random Event Scheduler - timed, ephemeral life event offers

Time-driven and independent of the graph until an offer is accepted:
- first offer after ``initial_delay``
- then one offer per ``interval``, counted from start (t = 5, 30, 60, ...)
- each offer auto-dismisses after ``ttl`` unless accepted or dismissed
- a new offer replaces any undismissed one
"""
import logging
import random
from dataclasses import dataclass
from typing import Optional

from lifepath.models.life_graph import LifeNode, NodeKind, Position, TimelineAxis
from lifepath.models.simulation import RandomEventOffer
from lifepath.services.timers import Scheduler, TimerHandle
from lifepath.world.age_mapper import age_on_axis
from lifepath.world.identity import IdentityAllocator
from lifepath.world.life_graph import LifeGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SponsoredEvent:
    content: str
    sponsor: str


GENERIC_EVENTS = (
    "You get a surprise job offer",
    "An old friend contacts you",
    "You find $100 on the street",
    "You get invited to a party",
    "You win a small lottery prize",
    "You receive a surprise inheritance",
    "You get offered a chance to travel abroad",
    "You meet someone famous",
    "You discover a new passion",
    "A health scare makes you reconsider priorities",
)

SPONSORED_EVENTS = (
    SponsoredEvent("You get a job offer at Amazon", "Amazon"),
    SponsoredEvent("You win a free trip to Hawaii", "Delta Airlines"),
    SponsoredEvent("You receive a year of free coffee", "Starbucks"),
    SponsoredEvent("You win a new smartphone", "Apple"),
    SponsoredEvent("You get invited to a VIP concert", "Spotify"),
)

# Placement region for accepted offers (flow coordinates)
PLACEMENT_X = (500.0, 300.0)  # origin, width
PLACEMENT_Y = (100.0, 200.0)


class RandomEventScheduler:
    """Emits, expires and materializes random event offers."""

    def __init__(
        self,
        graph: LifeGraph,
        allocator: IdentityAllocator,
        scheduler: Scheduler,
        axis: TimelineAxis,
        *,
        initial_delay: float = 5.0,
        interval: float = 30.0,
        ttl: float = 10.0,
        sponsored_probability: float = 0.2,
        rng: Optional[random.Random] = None,
    ):
        self.graph = graph
        self.allocator = allocator
        self.scheduler = scheduler
        self.axis = axis
        self.initial_delay = initial_delay
        self.interval = interval
        self.ttl = ttl
        self.sponsored_probability = sponsored_probability
        self._rng = rng or random.Random()

        self.current_offer: Optional[RandomEventOffer] = None
        self._initial_timer: Optional[TimerHandle] = None
        self._cadence_timer: Optional[TimerHandle] = None
        self._dismiss_timer: Optional[TimerHandle] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._initial_timer = self.scheduler.call_later(self.initial_delay, self._on_initial)
        self._cadence_timer = self.scheduler.call_later(self.interval, self._on_cadence)
        logger.info("Random events started (first in %ss, every %ss)", self.initial_delay, self.interval)

    def stop(self) -> None:
        """Cancel every timer and clear the pending offer."""
        self._running = False
        for timer in (self._initial_timer, self._cadence_timer):
            if timer is not None:
                timer.cancel()
        self._initial_timer = None
        self._cadence_timer = None
        self._clear_offer()

    def _on_initial(self) -> None:
        self._initial_timer = None
        self.emit_offer()

    def _on_cadence(self) -> None:
        if not self._running:
            return
        self._cadence_timer = self.scheduler.call_later(self.interval, self._on_cadence)
        self.emit_offer()

    # =========================================================================
    # Offers
    # =========================================================================

    def pick_offer(self) -> RandomEventOffer:
        offer_id = self.allocator.next_id("offer")
        if self._rng.random() < self.sponsored_probability:
            choice = self._rng.choice(SPONSORED_EVENTS)
            return RandomEventOffer(
                id=offer_id, content=choice.content, is_sponsored=True, sponsor=choice.sponsor,
            )
        return RandomEventOffer(id=offer_id, content=self._rng.choice(GENERIC_EVENTS))

    def emit_offer(self) -> RandomEventOffer:
        """Replace the current offer with a fresh one and arm its auto-dismiss timer."""
        self._cancel_dismiss_timer()
        offer = self.pick_offer()
        self.current_offer = offer
        self._dismiss_timer = self.scheduler.call_later(self.ttl, lambda: self._expire(offer.id))
        logger.debug("Random event offered: %s", offer.display_text)
        return offer

    def _expire(self, offer_id: str) -> None:
        self._dismiss_timer = None
        if self.current_offer is not None and self.current_offer.id == offer_id:
            logger.debug("Random event %s expired", offer_id)
            self.current_offer = None

    def dismiss(self) -> bool:
        """Drop the pending offer without touching the graph."""
        had_offer = self.current_offer is not None
        self._clear_offer()
        return had_offer

    def accept(self) -> Optional[LifeNode]:
        """Materialize the pending offer as an event node."""
        offer = self.current_offer
        if offer is None:
            return None
        self._clear_offer()

        x = PLACEMENT_X[0] + self._rng.random() * PLACEMENT_X[1]
        y = PLACEMENT_Y[0] + self._rng.random() * PLACEMENT_Y[1]
        node = LifeNode(
            id=self.allocator.next_id("event"),
            kind=NodeKind.EVENT,
            position=Position(x=x, y=y),
            age=age_on_axis(x, self.axis),
            content=offer.display_text,
        )
        self.graph.add_nodes([node])
        logger.info("Random event %s accepted as %s (age %d)", offer.id, node.id, node.age)
        return node

    def _clear_offer(self) -> None:
        self._cancel_dismiss_timer()
        self.current_offer = None

    def _cancel_dismiss_timer(self) -> None:
        if self._dismiss_timer is not None:
            self._dismiss_timer.cancel()
            self._dismiss_timer = None

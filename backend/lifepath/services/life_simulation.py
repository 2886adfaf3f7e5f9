"""
Life Simulation - one user's session

Owns the allocator, graph, generation queue, services and timers of a single
simulation, and translates render-surface intents into engine operations.
Every intent returns a plain value (bool / node / None); nothing raises past
this boundary for user-driven input.
"""
import logging
import random
import uuid
from typing import List, Optional

from lifepath.config import Settings, settings as default_settings
from lifepath.models.life_graph import (
    END_NODE_ID,
    MAX_COORDINATE,
    START_NODE_ID,
    LifeEdge,
    LifeNode,
    NodeKind,
    Position,
    TimelineAxis,
)
from lifepath.models.simulation import SetupInput, SimulationSnapshot
from lifepath.services.branching_service import PredictionBranchingService
from lifepath.services.milestone_service import MilestoneService
from lifepath.services.pending_ops import PendingOperationQueue
from lifepath.services.random_event_scheduler import RandomEventScheduler
from lifepath.services.text_generator import TextGenerator, create_text_generator
from lifepath.services.timers import AsyncioScheduler, Scheduler
from lifepath.world.age_mapper import age_on_axis, clamp_age, is_finite
from lifepath.world.identity import IdentityAllocator
from lifepath.world.life_graph import LifeGraph
from lifepath.world.progression import ProgressionTracker

logger = logging.getLogger(__name__)

# Anchor placement relative to the axis bounds
START_X_OFFSET = -200
END_X_OFFSET = 320
ANCHOR_Y = 200

# Drag-retime sensitivity
PIXELS_PER_YEAR = 10

MANUAL_KINDS = (NodeKind.MILESTONE, NodeKind.EVENT, NodeKind.PREDICTION)


def _valid_coordinates(x: float, y: float) -> bool:
    return is_finite(x) and is_finite(y) and abs(x) <= MAX_COORDINATE and abs(y) <= MAX_COORDINATE


def validate_setup(setup: SetupInput, config: Optional[Settings] = None) -> List[str]:
    """Return the reasons setup cannot proceed (empty when it can)."""
    config = config or default_settings
    problems: List[str] = []
    if not (setup.starting_context or "").strip():
        problems.append("starting context is required")
    if not (setup.death_context or "").strip():
        problems.append("death context is required")
    if setup.time_horizon is None or not (
        config.min_time_horizon <= setup.time_horizon <= config.max_time_horizon
    ):
        problems.append(
            f"time horizon must be between {config.min_time_horizon} and {config.max_time_horizon}"
        )
    return problems


class LifeSimulation:
    """Session facade over the life path graph engine."""

    def __init__(
        self,
        *,
        session_id: Optional[str] = None,
        config: Optional[Settings] = None,
        generator: Optional[TextGenerator] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.config = config or default_settings
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = rng or random.Random()

        self.allocator = IdentityAllocator()
        self.graph = LifeGraph()
        self.queue = PendingOperationQueue(
            generator or create_text_generator(self.config),
            self.scheduler,
            debounce=self.config.shuffle_debounce_seconds,
        )
        self.graph.add_removal_listener(self.queue.invalidate)
        self.tracker = ProgressionTracker(rng=self.rng, skill_chance=self.config.skill_chance)

        self.setup: Optional[SetupInput] = None
        self.axis: Optional[TimelineAxis] = None
        self.milestones: Optional[MilestoneService] = None
        self.branching: Optional[PredictionBranchingService] = None
        self.random_events: Optional[RandomEventScheduler] = None

    @property
    def is_setup_complete(self) -> bool:
        return self.setup is not None

    # =========================================================================
    # Setup / teardown
    # =========================================================================

    def complete_setup(
        self,
        starting_context: str,
        death_context: str,
        time_horizon: int,
        *,
        start_random_events: bool = True,
    ) -> bool:
        """
        Seed the graph and open the simulation.

        Invalid input (or a second call) returns False and changes nothing.
        """
        if self.is_setup_complete:
            logger.debug("Session %s already set up", self.session_id)
            return False
        setup = SetupInput(
            starting_context=starting_context or "",
            death_context=death_context or "",
            time_horizon=time_horizon,
        )
        problems = validate_setup(setup, self.config)
        if problems:
            logger.debug("Setup rejected for %s: %s", self.session_id, problems)
            return False

        cfg = self.config
        self.axis = TimelineAxis(
            start_x=cfg.axis_start_x,
            end_x=cfg.axis_end_x,
            start_age=cfg.start_age,
            end_age=setup.time_horizon,
        )
        self.milestones = MilestoneService(
            self.graph, self.allocator, self.queue, self.tracker, self.axis,
            spacing_factor=cfg.spacing_factor, rng=self.rng,
        )
        self.branching = PredictionBranchingService(
            self.graph, self.allocator, self.queue, self.tracker,
        )
        self.random_events = RandomEventScheduler(
            self.graph, self.allocator, self.scheduler, self.axis,
            initial_delay=cfg.random_event_initial_delay,
            interval=cfg.random_event_interval,
            ttl=cfg.random_event_ttl,
            sponsored_probability=cfg.sponsored_probability,
            rng=self.rng,
        )

        anchors = [
            LifeNode(
                id=START_NODE_ID,
                kind=NodeKind.START,
                position=Position(x=cfg.axis_start_x + START_X_OFFSET, y=ANCHOR_Y),
                age=cfg.start_age,
                content=setup.starting_context,
            ),
            LifeNode(
                id=END_NODE_ID,
                kind=NodeKind.DEATH,
                position=Position(x=cfg.axis_end_x + END_X_OFFSET, y=ANCHOR_Y),
                age=setup.time_horizon,
                content=setup.death_context,
            ),
        ]
        with self.graph.batch():
            self.graph.add_nodes(anchors)
            self.milestones.seed(START_NODE_ID, END_NODE_ID, cfg.milestone_count)

        self.setup = setup
        if start_random_events:
            self.random_events.start()
        logger.info("Session %s set up (horizon %d)", self.session_id, setup.time_horizon)
        return True

    def teardown(self) -> None:
        """Leave the simulation view: stop timers, drop pending generation."""
        if self.random_events is not None:
            self.random_events.stop()
        self.queue.cancel_all()
        logger.info("Session %s torn down", self.session_id)

    # =========================================================================
    # Manual editing
    # =========================================================================

    def manual_content(self, kind: NodeKind, age: int) -> str:
        content = f"New {kind.value} at age {age}"
        if kind != NodeKind.MILESTONE or self.setup is None:
            return content
        goal = self.setup.death_context
        span = self.axis.end_age - self.axis.start_age
        progress = (age - self.axis.start_age) / span * 100 if span else 0
        if progress < 33:
            return f"Working toward {goal} through education and skill development"
        if progress < 66:
            return f"Making significant progress toward {goal} through career advancement"
        return f"Ensuring legacy of {goal} through mentorship and planning"

    def add_node(self, kind: NodeKind, x: float, y: float) -> Optional[LifeNode]:
        """Menu-driven placement; age comes from the x position (unclamped)."""
        if not self.is_setup_complete or kind not in MANUAL_KINDS:
            return None
        if not _valid_coordinates(x, y):
            logger.debug("add_node rejected: bad position (%r, %r)", x, y)
            return None
        position = Position(x=x, y=y)
        age = age_on_axis(x, self.axis)
        content = self.manual_content(kind, age)
        if kind == NodeKind.PREDICTION:
            return self.branching.create_standalone(position, age, content)
        node = LifeNode(
            id=self.allocator.next_id(kind.value),
            kind=kind,
            position=position,
            age=age,
            content=content,
        )
        self.graph.add_nodes([node])
        return node

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[LifeEdge]:
        """User-drawn edge between two live nodes."""
        if source == target or not (self.graph.has_node(source) and self.graph.has_node(target)):
            return None
        edge = LifeEdge(
            id=self.allocator.next_id("edge"),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.graph.add_edges([edge])
        return edge

    def move_node(self, node_id: str, x: float, y: float) -> Optional[LifeNode]:
        """Position changes never re-derive age."""
        if not _valid_coordinates(x, y):
            return None
        return self.graph.update_node(node_id, position=Position(x=x, y=y))

    def retime(self, node_id: str, age: float) -> Optional[LifeNode]:
        if not is_finite(age):
            return None
        return self.graph.update_node(node_id, age=clamp_age(age))

    def retime_by_drag(self, node_id: str, drag_dx: float) -> Optional[LifeNode]:
        node = self.graph.get_node(node_id)
        if node is None or not is_finite(drag_dx):
            return None
        drag_dx = max(-MAX_COORDINATE, min(MAX_COORDINATE, drag_dx))
        return self.retime(node_id, node.age + drag_dx / PIXELS_PER_YEAR)

    # =========================================================================
    # Node intents
    # =========================================================================

    async def shuffle(self, node_id: str) -> bool:
        node = self.graph.get_node(node_id)
        if node is None or not self.is_setup_complete:
            return False
        if node.kind == NodeKind.MILESTONE:
            return await self.milestones.shuffle(node_id)
        if node.kind == NodeKind.PREDICTION:
            return await self.branching.shuffle_prediction(node_id)
        return False

    def accept(self, node_id: str) -> Optional[str]:
        """Accept a milestone or prediction. Returns the id of the surviving node."""
        node = self.graph.get_node(node_id)
        if node is None or not self.is_setup_complete:
            return None
        if node.kind == NodeKind.MILESTONE:
            return node_id if self.milestones.accept(node_id) else None
        if node.kind == NodeKind.PREDICTION:
            return self.branching.accept_prediction(node_id)
        return None

    def generate_predictions(self, event_id: str) -> Optional[str]:
        if not self.is_setup_complete:
            return None
        return self.branching.generate_predictions(event_id)

    def accept_random_event(self) -> Optional[LifeNode]:
        if self.random_events is None:
            return None
        return self.random_events.accept()

    def dismiss_random_event(self) -> bool:
        if self.random_events is None:
            return False
        return self.random_events.dismiss()

    # =========================================================================
    # Views
    # =========================================================================

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot(
            session_id=self.session_id,
            is_setup_complete=self.is_setup_complete,
            graph=self.graph.snapshot(),
            profile=self.tracker.profile.model_copy(deep=True),
            random_event=self.random_events.current_offer if self.random_events else None,
        )

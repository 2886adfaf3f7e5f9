"""
Milestone Service - seeds and manages milestone nodes

Per-node state machine:
  pending -> loading -> pending   (shuffle / re-roll)
  pending -> accepted             (terminal)
"""
import logging
import random
from typing import List, Optional

from lifepath.models.life_graph import (
    END_NODE_ID,
    START_NODE_ID,
    LifeEdge,
    LifeNode,
    NodeKind,
    Position,
    TimelineAxis,
)
from lifepath.services.pending_ops import PendingOperationQueue
from lifepath.services.reroll import reroll_node_content
from lifepath.services.text_generator import (
    CAREER_MILESTONES,
    KIND_MILESTONE,
    RISK_MILESTONES,
)
from lifepath.world.age_mapper import round_half_up
from lifepath.world.identity import IdentityAllocator
from lifepath.world.life_graph import LifeGraph
from lifepath.world.progression import ProgressionTracker

logger = logging.getLogger(__name__)

MILESTONE_BASE_Y = 200
MILESTONE_ZIGZAG = 50
# Negative margin so the widened span overshoots both anchors
MARGIN_RATIO = 0.125


class MilestoneService:
    """Seeding, re-roll and acceptance of milestone nodes."""

    def __init__(
        self,
        graph: LifeGraph,
        allocator: IdentityAllocator,
        queue: PendingOperationQueue,
        tracker: ProgressionTracker,
        axis: TimelineAxis,
        *,
        spacing_factor: float = 1.5,
        rng: Optional[random.Random] = None,
    ):
        self.graph = graph
        self.allocator = allocator
        self.queue = queue
        self.tracker = tracker
        self.axis = axis
        self.spacing_factor = spacing_factor
        self._rng = rng or random.Random()

    # =========================================================================
    # Seeding
    # =========================================================================

    def milestone_ages(self, count: int) -> List[int]:
        """Evenly spaced ages strictly between the start and end ages."""
        age_step = (self.axis.end_age - self.axis.start_age) / (count + 1)
        return [round_half_up(self.axis.start_age + age_step * i) for i in range(1, count + 1)]

    def seed(self, start_id: str, end_id: str, count: int = 5) -> List[LifeNode]:
        """
        Create ``count`` milestones chained between the start and end nodes.

        Args:
            start_id: id of the start node
            end_id: id of the death node
            count: number of milestones (0 links start directly to end)

        Returns:
            The created milestone nodes, in chain order
        """
        span = (self.axis.end_x - self.axis.start_x) * self.spacing_factor
        x_margin = -span * MARGIN_RATIO

        milestones: List[LifeNode] = []
        for i, age in enumerate(self.milestone_ages(count), start=1):
            x = self.axis.start_x + x_margin + span * i / (count + 1)
            y = MILESTONE_BASE_Y + (MILESTONE_ZIGZAG if i % 2 == 0 else -MILESTONE_ZIGZAG)
            pool = CAREER_MILESTONES if i % 2 == 0 else RISK_MILESTONES
            milestones.append(LifeNode(
                id=self.allocator.next_id("milestone"),
                kind=NodeKind.MILESTONE,
                position=Position(x=x, y=y),
                age=age,
                content=f"Age {age}: {self._rng.choice(pool)}",
            ))

        chain = [start_id] + [m.id for m in milestones] + [end_id]
        edges = [
            LifeEdge(id=self.allocator.next_id("edge"), source=source, target=target)
            for source, target in zip(chain, chain[1:])
        ]

        with self.graph.batch():
            self.graph.add_nodes(milestones)
            self.graph.add_edges(edges)
        logger.info("Seeded %d milestone(s) between %s and %s", len(milestones), start_id, end_id)
        return milestones

    # =========================================================================
    # Re-roll / accept
    # =========================================================================

    def build_context(self, node: LifeNode) -> str:
        start = self.graph.get_node(START_NODE_ID)
        end = self.graph.get_node(END_NODE_ID)
        start_text = start.content if start else ""
        goal_text = end.content if end else ""
        return (
            f'Life so far: "{start_text}". Hoped-for legacy: "{goal_text}". '
            f"Current milestone at age {node.age}: \"{node.content}\"."
        )

    async def shuffle(self, node_id: str) -> bool:
        """Re-roll a milestone's content. No-op on accepted or loading nodes."""
        node = self.graph.get_node(node_id)
        if node is None or node.kind != NodeKind.MILESTONE:
            return False
        if node.is_accepted or node.is_loading:
            logger.debug("Shuffle ignored for %s (accepted=%s loading=%s)",
                         node_id, node.is_accepted, node.is_loading)
            return False
        return await reroll_node_content(
            self.graph, self.queue, node_id, KIND_MILESTONE, self.build_context(node)
        )

    def accept(self, node_id: str) -> bool:
        """Mark a milestone accepted (one-way) and record progression."""
        node = self.graph.get_node(node_id)
        if node is None or node.kind != NodeKind.MILESTONE or node.is_accepted:
            return False
        self.graph.update_node(node_id, is_accepted=True)
        self.tracker.record_acceptance(node_id)
        logger.info("Milestone %s accepted", node_id)
        return True

"""
Prediction Branching Service - event nodes fan out into mutually exclusive predictions

Event state machine: idle -> predictions-generated (one-way).

generate_predictions() and accept_prediction() live on the same component: a
promoted event can be branched again, and a generated group can be resolved,
without any indirection between the two.
"""
import logging
from typing import List, Optional

from lifepath.models.life_graph import (
    BRANCH_HANDLE,
    INCOMING_HANDLE,
    LifeEdge,
    LifeNode,
    NodeKind,
    Position,
)
from lifepath.services.pending_ops import PendingOperationQueue
from lifepath.services.reroll import reroll_node_content
from lifepath.services.text_generator import KIND_PREDICTION
from lifepath.world.identity import IdentityAllocator
from lifepath.world.life_graph import LifeGraph
from lifepath.world.progression import ProgressionTracker

logger = logging.getLogger(__name__)

PREDICTIONS_PER_EVENT = 3
FAN_X_OFFSET = 250
FAN_Y_DISTANCE = 150
EVEN_INDEX_JITTER = 40

PROMOTED_ID_PREFIX = "event-from-prediction-"

INITIAL_PREDICTIONS = (
    "You succeed beyond expectations",
    "Things go according to plan",
    "There are unexpected challenges",
)


class PredictionBranchingService:
    """Generates, re-rolls and resolves prediction groups."""

    def __init__(
        self,
        graph: LifeGraph,
        allocator: IdentityAllocator,
        queue: PendingOperationQueue,
        tracker: ProgressionTracker,
    ):
        self.graph = graph
        self.allocator = allocator
        self.queue = queue
        self.tracker = tracker

    def new_group_id(self) -> str:
        return str(self.allocator.next_value("group"))

    def members(self, group_id: str) -> List[LifeNode]:
        return self.graph.group_members(group_id)

    # =========================================================================
    # Branching
    # =========================================================================

    def generate_predictions(self, event_id: str) -> Optional[str]:
        """
        Fan an event out into a group of prediction candidates.

        Idempotent: an event branches exactly once; later calls return None.

        Returns:
            The new group id, or None if nothing was generated
        """
        event = self.graph.get_node(event_id)
        if event is None or event.kind != NodeKind.EVENT:
            logger.debug("generate_predictions: %s is not an event", event_id)
            return None
        if event.predictions_generated:
            logger.debug("generate_predictions: %s already branched", event_id)
            return None

        group_id = self.new_group_id()
        predictions: List[LifeNode] = []
        for i in range(PREDICTIONS_PER_EVENT):
            predictions.append(LifeNode(
                id=f"prediction-{group_id}-{i + 1}",
                kind=NodeKind.PREDICTION,
                position=Position(
                    x=event.position.x + (i - 1) * FAN_X_OFFSET,
                    y=event.position.y + FAN_Y_DISTANCE + (EVEN_INDEX_JITTER if i % 2 == 0 else 0),
                ),
                age=event.age,
                content=INITIAL_PREDICTIONS[i % len(INITIAL_PREDICTIONS)],
                prediction_group_id=group_id,
                is_primary=(i == 0),
            ))
        edges = [
            LifeEdge(
                id=self.allocator.next_id("edge"),
                source=event_id,
                target=p.id,
                source_handle=BRANCH_HANDLE,
                target_handle=INCOMING_HANDLE,
            )
            for p in predictions
        ]

        with self.graph.batch():
            self.graph.add_nodes(predictions)
            self.graph.add_edges(edges)
            self.graph.update_node(event_id, predictions_generated=True)
        logger.info("Event %s branched into group %s", event_id, group_id)
        return group_id

    def create_standalone(self, position: Position, age: int, content: str) -> LifeNode:
        """A manually placed prediction: its own single-member group, no parent."""
        group_id = self.new_group_id()
        node = LifeNode(
            id=f"prediction-{group_id}-1",
            kind=NodeKind.PREDICTION,
            position=position,
            age=age,
            content=content,
            prediction_group_id=group_id,
            is_primary=True,
        )
        self.graph.add_nodes([node])
        return node

    # =========================================================================
    # Resolution
    # =========================================================================

    def find_parent(self, prediction_id: str) -> Optional[str]:
        """Source of the branch edge into a prediction.

        A user-drawn edge is used only when no branch edge exists (manually
        placed predictions).
        """
        incoming = self.graph.incoming_edges(prediction_id)
        for edge in incoming:
            if edge.source_handle == BRANCH_HANDLE and edge.target_handle == INCOMING_HANDLE:
                return edge.source
        return incoming[0].source if incoming else None

    def accept_prediction(self, prediction_id: str) -> Optional[str]:
        """
        Resolve a group: promote ``prediction_id`` to an event, drop its siblings.

        Only the parent -> prediction edge is retargeted onto the new event (id
        and position kept). Every other edge of the accepted prediction is
        dropped together with it. A missing parent edge is a recoverable
        anomaly; promotion still happens without the edge rewrite.

        Returns:
            The promoted event id, or None if the id is not a live prediction
        """
        chosen = self.graph.get_node(prediction_id)
        if chosen is None or chosen.kind != NodeKind.PREDICTION:
            return None

        group_id = chosen.prediction_group_id
        losers = [m.id for m in self.members(group_id) if m.id != prediction_id] if group_id else []
        parent_id = self.find_parent(prediction_id)

        promoted = LifeNode(
            id=f"{PROMOTED_ID_PREFIX}{self.allocator.next_value('event')}",
            kind=NodeKind.EVENT,
            position=chosen.position.model_copy(),
            age=chosen.age,
            content=chosen.content,
        )

        with self.graph.batch():
            self.graph.remove_nodes(losers)
            self.graph.add_nodes([promoted])
            if parent_id is not None:
                self.graph.replace_edge_endpoint(parent_id, prediction_id, promoted.id)
            else:
                logger.warning(
                    "Prediction %s (group %s) has no parent edge; promoting without rewire",
                    prediction_id, group_id,
                )
            self.graph.remove_nodes([prediction_id])

        self.tracker.record_acceptance(prediction_id)
        logger.info(
            "Prediction %s promoted to %s (removed %d sibling(s))",
            prediction_id, promoted.id, len(losers),
        )
        return promoted.id

    # =========================================================================
    # Re-roll
    # =========================================================================

    def build_context(self, node: LifeNode) -> str:
        parent_id = self.find_parent(node.id)
        parent = self.graph.get_node(parent_id) if parent_id else None
        event_text = parent.content if parent else "an unexpected turn of events"
        return f'At age {node.age}, "{event_text}" happens. Current outcome: "{node.content}".'

    async def shuffle_prediction(self, prediction_id: str) -> bool:
        """Re-roll one prediction; siblings are untouched."""
        node = self.graph.get_node(prediction_id)
        if node is None or node.kind != NodeKind.PREDICTION or node.is_loading:
            return False
        return await reroll_node_content(
            self.graph, self.queue, prediction_id, KIND_PREDICTION, self.build_context(node)
        )

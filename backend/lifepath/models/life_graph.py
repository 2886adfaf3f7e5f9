"""
Life path graph data models.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


# Named connection points
BRANCH_HANDLE = "branch"
INCOMING_HANDLE = "incoming"

START_NODE_ID = "start"
END_NODE_ID = "end"

MIN_AGE = 0
MAX_AGE = 99

# Flow coordinates and drag deltas beyond this are rejected or clamped
MAX_COORDINATE = 1_000_000_000


class NodeKind(str, Enum):
    """Timeline node kinds."""

    START = "start"
    MILESTONE = "milestone"
    EVENT = "event"
    PREDICTION = "prediction"
    DEATH = "death"


# Start/death anchors are never removed
PROTECTED_KINDS = frozenset({NodeKind.START, NodeKind.DEATH})


class NodeAction(str, Enum):
    """Intents a node currently offers to the render surface."""

    SHUFFLE = "shuffle"
    ACCEPT = "accept"
    GENERATE_PREDICTIONS = "generate_predictions"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Position(_CamelModel):
    """Flow coordinates, owned by the render surface."""

    x: float = 0.0
    y: float = 0.0


class LifeNode(_CamelModel):
    """A single timeline entity."""

    id: str
    kind: NodeKind
    position: Position = Field(default_factory=Position)
    age: int
    content: str = ""
    is_loading: bool = False
    is_accepted: bool = False
    predictions_generated: bool = False
    prediction_group_id: Optional[str] = None
    is_primary: bool = False

    @computed_field
    @property
    def actions(self) -> List[NodeAction]:
        if self.kind == NodeKind.MILESTONE:
            if self.is_accepted:
                return []
            return [NodeAction.SHUFFLE, NodeAction.ACCEPT]
        if self.kind == NodeKind.PREDICTION:
            return [NodeAction.SHUFFLE, NodeAction.ACCEPT]
        if self.kind == NodeKind.EVENT and not self.predictions_generated:
            return [NodeAction.GENERATE_PREDICTIONS]
        return []

    def offers(self, action: NodeAction) -> bool:
        return action in self.actions


class LifeEdge(_CamelModel):
    """Directed connection, optionally between named ports."""

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


class TimelineAxis(_CamelModel):
    """Horizontal bounds mapped onto the age range."""

    start_x: float
    end_x: float
    start_age: int
    end_age: int


class GraphSnapshot(_CamelModel):
    """Serializable view of the graph at one revision."""

    revision: int = 0
    nodes: List[LifeNode] = Field(default_factory=list)
    edges: List[LifeEdge] = Field(default_factory=list)

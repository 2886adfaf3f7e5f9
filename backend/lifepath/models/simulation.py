"""
Session-level models: setup input, random event offers, snapshots and API payloads.
"""
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field

from lifepath.models.life_graph import MAX_COORDINATE, GraphSnapshot, NodeKind
from lifepath.models.progression import LifeProfile


class SetupInput(BaseModel):
    """Inputs collected before the simulation view opens."""

    starting_context: str = ""
    death_context: str = ""
    time_horizon: Optional[int] = 80


class RandomEventOffer(BaseModel):
    """A pending, ephemeral random event."""

    id: str
    content: str
    is_sponsored: bool = False
    sponsor: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def display_text(self) -> str:
        if self.is_sponsored and self.sponsor:
            return f"{self.content} (Sponsored by {self.sponsor})"
        return self.content


class SimulationSnapshot(BaseModel):
    """Everything the render surface needs for one frame."""

    session_id: str
    is_setup_complete: bool = False
    graph: GraphSnapshot = Field(default_factory=GraphSnapshot)
    profile: LifeProfile = Field(default_factory=LifeProfile)
    random_event: Optional[RandomEventOffer] = None


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class CreateSimulationRequest(SetupInput):
    pass


class CreateSimulationResponse(BaseModel):
    session_id: str
    snapshot: SimulationSnapshot


# Finite, bounded flow coordinate
Coordinate = Annotated[float, Field(allow_inf_nan=False, ge=-MAX_COORDINATE, le=MAX_COORDINATE)]

# Retime input is clamped to [0, 99] later; this only bounds the raw value
AGE_INPUT_LIMIT = 10_000


class AddNodeRequest(BaseModel):
    kind: NodeKind
    x: Coordinate
    y: Coordinate


class ConnectRequest(BaseModel):
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


class RetimeRequest(BaseModel):
    """Either an absolute age or a horizontal drag delta (pixels)."""

    age: Optional[int] = Field(default=None, ge=-AGE_INPUT_LIMIT, le=AGE_INPUT_LIMIT)
    drag_dx: Optional[Coordinate] = None


class MoveNodeRequest(BaseModel):
    x: Coordinate
    y: Coordinate


class GenerateRequest(BaseModel):
    prompt: str
    kind: str = "milestone"


class GenerateResponse(BaseModel):
    text: str


class SetupProblemsResponse(BaseModel):
    problems: List[str] = Field(default_factory=list)

"""
Life simulation API routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from lifepath.dependencies import SimulationRegistry, get_registry, get_text_generator
from lifepath.models.life_graph import LifeEdge, LifeNode
from lifepath.models.simulation import (
    AddNodeRequest,
    ConnectRequest,
    CreateSimulationRequest,
    CreateSimulationResponse,
    GenerateRequest,
    GenerateResponse,
    MoveNodeRequest,
    RetimeRequest,
    SimulationSnapshot,
)
from lifepath.services.life_simulation import LifeSimulation, validate_setup
from lifepath.services.text_generator import TextGenerationError, TextGenerator, usable_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulations", tags=["Life Simulation"])
generate_router = APIRouter(tags=["Generation"])


def _get_simulation(session_id: str, registry: SimulationRegistry) -> LifeSimulation:
    simulation = registry.get(session_id)
    if simulation is None:
        raise HTTPException(status_code=404, detail=f"unknown session '{session_id}'")
    return simulation


def _rejected(action: str, target: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f"{action} not available for '{target}'")


@router.post("", response_model=CreateSimulationResponse)
async def create_simulation(
    payload: CreateSimulationRequest,
    registry: SimulationRegistry = Depends(get_registry),
    generator: TextGenerator = Depends(get_text_generator),
):
    """Validate setup input, seed a new session and start its random events."""
    problems = validate_setup(payload)
    if problems:
        raise HTTPException(status_code=422, detail=problems)
    simulation = registry.create(generator=generator)
    simulation.complete_setup(
        payload.starting_context, payload.death_context, payload.time_horizon,
    )
    return CreateSimulationResponse(
        session_id=simulation.session_id, snapshot=simulation.snapshot(),
    )


@router.get("/{session_id}", response_model=SimulationSnapshot)
async def get_simulation(session_id: str, registry: SimulationRegistry = Depends(get_registry)):
    return _get_simulation(session_id, registry).snapshot()


@router.delete("/{session_id}")
async def delete_simulation(session_id: str, registry: SimulationRegistry = Depends(get_registry)):
    """Leave the simulation view; cancels its timers."""
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail=f"unknown session '{session_id}'")
    return {"success": True}


@router.post("/{session_id}/nodes", response_model=LifeNode)
async def add_node(
    session_id: str,
    payload: AddNodeRequest,
    registry: SimulationRegistry = Depends(get_registry),
):
    node = _get_simulation(session_id, registry).add_node(payload.kind, payload.x, payload.y)
    if node is None:
        raise _rejected("add", payload.kind.value)
    return node


@router.post("/{session_id}/edges", response_model=LifeEdge)
async def connect_nodes(
    session_id: str,
    payload: ConnectRequest,
    registry: SimulationRegistry = Depends(get_registry),
):
    edge = _get_simulation(session_id, registry).connect(
        payload.source, payload.target, payload.source_handle, payload.target_handle,
    )
    if edge is None:
        raise _rejected("connect", f"{payload.source}->{payload.target}")
    return edge


@router.post("/{session_id}/nodes/{node_id}/shuffle", response_model=SimulationSnapshot)
async def shuffle_node(
    session_id: str,
    node_id: str,
    registry: SimulationRegistry = Depends(get_registry),
):
    """Re-roll content. A failed generation still returns the (unchanged) snapshot."""
    simulation = _get_simulation(session_id, registry)
    if not simulation.graph.has_node(node_id):
        raise HTTPException(status_code=404, detail=f"unknown node '{node_id}'")
    await simulation.shuffle(node_id)
    return simulation.snapshot()


@router.post("/{session_id}/nodes/{node_id}/accept", response_model=SimulationSnapshot)
async def accept_node(
    session_id: str,
    node_id: str,
    registry: SimulationRegistry = Depends(get_registry),
):
    simulation = _get_simulation(session_id, registry)
    if simulation.accept(node_id) is None:
        raise _rejected("accept", node_id)
    return simulation.snapshot()


@router.post("/{session_id}/nodes/{node_id}/predictions", response_model=SimulationSnapshot)
async def generate_predictions(
    session_id: str,
    node_id: str,
    registry: SimulationRegistry = Depends(get_registry),
):
    simulation = _get_simulation(session_id, registry)
    if simulation.generate_predictions(node_id) is None:
        raise _rejected("generate_predictions", node_id)
    return simulation.snapshot()


@router.post("/{session_id}/nodes/{node_id}/retime", response_model=LifeNode)
async def retime_node(
    session_id: str,
    node_id: str,
    payload: RetimeRequest,
    registry: SimulationRegistry = Depends(get_registry),
):
    simulation = _get_simulation(session_id, registry)
    if payload.age is not None:
        node = simulation.retime(node_id, payload.age)
    elif payload.drag_dx is not None:
        node = simulation.retime_by_drag(node_id, payload.drag_dx)
    else:
        raise HTTPException(status_code=400, detail="age or drag_dx is required")
    if node is None:
        raise HTTPException(status_code=404, detail=f"unknown node '{node_id}'")
    return node


@router.post("/{session_id}/nodes/{node_id}/move", response_model=LifeNode)
async def move_node(
    session_id: str,
    node_id: str,
    payload: MoveNodeRequest,
    registry: SimulationRegistry = Depends(get_registry),
):
    node = _get_simulation(session_id, registry).move_node(node_id, payload.x, payload.y)
    if node is None:
        raise HTTPException(status_code=404, detail=f"unknown node '{node_id}'")
    return node


@router.post("/{session_id}/random-event/accept", response_model=LifeNode)
async def accept_random_event(session_id: str, registry: SimulationRegistry = Depends(get_registry)):
    node = _get_simulation(session_id, registry).accept_random_event()
    if node is None:
        raise HTTPException(status_code=409, detail="no random event pending")
    return node


@router.post("/{session_id}/random-event/dismiss")
async def dismiss_random_event(session_id: str, registry: SimulationRegistry = Depends(get_registry)):
    dismissed = _get_simulation(session_id, registry).dismiss_random_event()
    return {"dismissed": dismissed}


@generate_router.post("/generate", response_model=GenerateResponse)
async def generate_text(
    payload: GenerateRequest,
    generator: TextGenerator = Depends(get_text_generator),
):
    """Raw access to the configured text generator."""
    if not payload.prompt.strip():
        raise HTTPException(status_code=400, detail="Missing required field: prompt")
    try:
        text = await generator.generate(payload.prompt, payload.kind)
    except TextGenerationError as exc:
        logger.warning("generate failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return GenerateResponse(text=usable_text(text, payload.kind))

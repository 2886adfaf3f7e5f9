"""
Data models package
"""
from .life_graph import (
    BRANCH_HANDLE,
    END_NODE_ID,
    INCOMING_HANDLE,
    START_NODE_ID,
    MAX_AGE,
    MAX_COORDINATE,
    MIN_AGE,
    GraphSnapshot,
    LifeEdge,
    LifeNode,
    NodeAction,
    NodeKind,
    Position,
    TimelineAxis,
)
from .progression import LifeProfile, Skill, Stats
from .simulation import RandomEventOffer, SetupInput, SimulationSnapshot

__all__ = [
    "BRANCH_HANDLE",
    "END_NODE_ID",
    "INCOMING_HANDLE",
    "START_NODE_ID",
    "MAX_AGE",
    "MAX_COORDINATE",
    "MIN_AGE",
    "GraphSnapshot",
    "LifeEdge",
    "LifeNode",
    "NodeAction",
    "NodeKind",
    "Position",
    "TimelineAxis",
    "LifeProfile",
    "Skill",
    "Stats",
    "RandomEventOffer",
    "SetupInput",
    "SimulationSnapshot",
]

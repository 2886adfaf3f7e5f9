"""
FastAPI dependencies.
"""
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from lifepath.services.life_simulation import LifeSimulation
from lifepath.services.text_generator import TextGenerator, create_text_generator

logger = logging.getLogger(__name__)


class SimulationRegistry:
    """In-memory map of live simulation sessions."""

    def __init__(self) -> None:
        self._sessions: Dict[str, LifeSimulation] = {}

    def create(self, **kwargs) -> LifeSimulation:
        simulation = LifeSimulation(**kwargs)
        self._sessions[simulation.session_id] = simulation
        return simulation

    def get(self, session_id: str) -> Optional[LifeSimulation]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        simulation = self._sessions.pop(session_id, None)
        if simulation is None:
            return False
        simulation.teardown()
        return True

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def shutdown(self) -> None:
        for session_id in list(self._sessions):
            self.discard(session_id)
        logger.info("All simulation sessions closed")


@lru_cache()
def get_registry() -> SimulationRegistry:
    return SimulationRegistry()


@lru_cache()
def get_text_generator() -> TextGenerator:
    return create_text_generator()

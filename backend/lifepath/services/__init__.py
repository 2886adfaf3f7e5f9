"""
Business logic services
"""
from .branching_service import PredictionBranchingService
from .life_simulation import LifeSimulation, validate_setup
from .milestone_service import MilestoneService
from .pending_ops import OperationInvalidated, PendingOperationQueue
from .random_event_scheduler import RandomEventScheduler
from .text_generator import (
    CannedTextGenerator,
    GeminiTextGenerator,
    TextGenerationError,
    TextGenerator,
    create_text_generator,
)
from .timers import AsyncioScheduler, ManualScheduler

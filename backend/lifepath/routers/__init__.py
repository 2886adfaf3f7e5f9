"""
API route package
"""
from .simulation import generate_router, router as simulation_router

__all__ = [
    "simulation_router",
    "generate_router",
]

"""
Configuration for the life path simulator.
"""
import logging
import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Application settings."""

    # Text generation backend
    text_generator: Literal["canned", "gemini"] = os.getenv("TEXT_GENERATOR", "canned")
    gemini_api_key: str = os.getenv("GEMINI_API_KEY", "")
    gemini_flash_model: str = os.getenv("GEMINI_FLASH_MODEL", "gemini-3-flash-preview")
    generation_timeout_seconds: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))
    # Simulated latency of the canned generator (the mock backend)
    canned_latency_seconds: float = float(os.getenv("CANNED_LATENCY_SECONDS", "0.8"))
    # Re-roll requests of one category are batched within this window
    shuffle_debounce_seconds: float = float(os.getenv("SHUFFLE_DEBOUNCE_SECONDS", "0"))

    # Timeline axis (flow coordinates)
    axis_start_x: float = 250.0
    axis_end_x: float = 1250.0
    start_age: int = 20
    min_time_horizon: int = 40
    max_time_horizon: int = 120
    default_time_horizon: int = 80

    # Milestone seeding
    milestone_count: int = int(os.getenv("MILESTONE_COUNT", "5"))
    spacing_factor: float = float(os.getenv("MILESTONE_SPACING_FACTOR", "1.5"))

    # Random events (seconds)
    random_event_initial_delay: float = float(os.getenv("RANDOM_EVENT_INITIAL_DELAY", "5"))
    random_event_interval: float = float(os.getenv("RANDOM_EVENT_INTERVAL", "30"))
    random_event_ttl: float = float(os.getenv("RANDOM_EVENT_TTL", "10"))
    sponsored_probability: float = 0.2

    # Progression
    skill_chance: float = 0.3

    # API
    api_prefix: str = "/api"
    cors_origins: list = ["*"]
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


# Global settings instance
settings = Settings()


def validate_config() -> bool:
    """
    Check that the configured backend can actually run.

    Returns:
        bool: whether the configuration is usable
    """
    if settings.text_generator == "gemini" and not settings.gemini_api_key:
        logger.warning("TEXT_GENERATOR=gemini but GEMINI_API_KEY is not set")
        return False

    if settings.axis_end_x == settings.axis_start_x:
        logger.warning("Timeline axis has zero width")
        return False

    return True

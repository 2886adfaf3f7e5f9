"""Profile progression -- pure local state derivation, no I/O, no LLM.

Every stat/skill change on acceptance goes through this module. Nothing here
can fail or be retried; the random source is injectable for deterministic tests.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional

from lifepath.models.progression import (
    SKILL_MAX_LEVEL,
    STAT_MAX,
    STAT_NAMES,
    LifeProfile,
    Skill,
)

logger = logging.getLogger(__name__)

MAX_STAT_GAIN = 5  # exclusive
DEFAULT_SKILL_CHANCE = 0.3

SKILL_POOL = (
    "Leadership",
    "Communication",
    "Technical",
    "Creativity",
    "Problem Solving",
    "Adaptability",
    "Financial Management",
    "Resilience",
    "Strategic Thinking",
    "Networking",
)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def grow_stats(profile: LifeProfile, rng: random.Random) -> Dict[str, int]:
    """Give every stat an independent gain in [0, MAX_STAT_GAIN), clamped to STAT_MAX.

    Returns the applied gain per stat (after clamping).
    """
    applied: Dict[str, int] = {}
    for name in STAT_NAMES:
        old = getattr(profile.stats, name)
        new = min(STAT_MAX, old + rng.randrange(MAX_STAT_GAIN))
        setattr(profile.stats, name, new)
        applied[name] = new - old
    return applied


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------

def train_skill(profile: LifeProfile, name: str) -> Skill:
    """Add ``name`` at level 1, or level it up (clamped to SKILL_MAX_LEVEL)."""
    skill = profile.get_skill(name)
    if skill is None:
        skill = Skill(name=name)
        profile.skills.append(skill)
        return skill
    skill.level = min(SKILL_MAX_LEVEL, skill.level + 1)
    return skill


def maybe_train_skill(
    profile: LifeProfile,
    rng: random.Random,
    chance: float = DEFAULT_SKILL_CHANCE,
) -> Optional[Skill]:
    """With probability ``chance`` train one uniformly drawn skill."""
    if rng.random() >= chance:
        return None
    return train_skill(profile, rng.choice(SKILL_POOL))


class ProgressionTracker:
    """Owns the profile and applies acceptance rewards to it."""

    def __init__(
        self,
        profile: Optional[LifeProfile] = None,
        *,
        rng: Optional[random.Random] = None,
        skill_chance: float = DEFAULT_SKILL_CHANCE,
    ) -> None:
        self.profile = profile or LifeProfile()
        self._rng = rng or random.Random()
        self._skill_chance = skill_chance

    def record_acceptance(self, source_id: str) -> Dict[str, Any]:
        """Apply one acceptance (milestone or prediction).

        Returns:
            dict with stat_gains and skill (name/level or None).
        """
        gains = grow_stats(self.profile, self._rng)
        skill = maybe_train_skill(self.profile, self._rng, self._skill_chance)
        logger.debug(
            "Acceptance %s: gains=%s skill=%s",
            source_id, gains, skill.name if skill else None,
        )
        return {
            "stat_gains": gains,
            "skill": skill.model_dump() if skill else None,
        }

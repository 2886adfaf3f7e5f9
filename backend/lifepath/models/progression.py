"""
Profile progression models (stats and skills).
"""
from typing import List, Optional

from pydantic import BaseModel, Field

STAT_MIN = 0
STAT_MAX = 100
SKILL_MIN_LEVEL = 1
SKILL_MAX_LEVEL = 10

STAT_NAMES = ("luck", "intelligence", "rizz", "ambition")


class Stats(BaseModel):
    """Four bounded counters."""

    luck: int = Field(default=25, ge=STAT_MIN, le=STAT_MAX)
    intelligence: int = Field(default=25, ge=STAT_MIN, le=STAT_MAX)
    rizz: int = Field(default=25, ge=STAT_MIN, le=STAT_MAX)
    ambition: int = Field(default=25, ge=STAT_MIN, le=STAT_MAX)


class Skill(BaseModel):
    name: str
    level: int = Field(default=SKILL_MIN_LEVEL, ge=SKILL_MIN_LEVEL, le=SKILL_MAX_LEVEL)


class LifeProfile(BaseModel):
    """Derived state updated on every acceptance."""

    stats: Stats = Field(default_factory=Stats)
    skills: List[Skill] = Field(default_factory=list)

    def get_skill(self, name: str) -> Optional[Skill]:
        for skill in self.skills:
            if skill.name == name:
                return skill
        return None

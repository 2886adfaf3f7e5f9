"""
Tests for profile progression.
"""
import random
from unittest.mock import MagicMock

from lifepath.models.progression import LifeProfile, Skill, Stats
from lifepath.world.progression import (
    SKILL_POOL,
    ProgressionTracker,
    grow_stats,
    maybe_train_skill,
    train_skill,
)


def _rng(randrange=4, random_value=0.1, choice="Leadership") -> MagicMock:
    rng = MagicMock(spec=random.Random)
    rng.randrange.return_value = randrange
    rng.random.return_value = random_value
    rng.choice.return_value = choice
    return rng


class TestStats:
    def test_defaults(self):
        profile = LifeProfile()
        assert profile.stats == Stats(luck=25, intelligence=25, rizz=25, ambition=25)
        assert profile.skills == []

    def test_gains_are_applied(self):
        profile = LifeProfile()
        gains = grow_stats(profile, _rng(randrange=3))
        assert gains == {"luck": 3, "intelligence": 3, "rizz": 3, "ambition": 3}
        assert profile.stats.luck == 28

    def test_gains_clamp_at_100(self):
        profile = LifeProfile(stats=Stats(luck=98, intelligence=100, rizz=0, ambition=50))
        gains = grow_stats(profile, _rng(randrange=4))
        assert profile.stats.luck == 100
        assert profile.stats.intelligence == 100
        assert gains["luck"] == 2
        assert gains["intelligence"] == 0

    def test_gain_range_is_zero_to_four(self):
        rng = random.Random(3)
        for _ in range(50):
            profile = LifeProfile()
            gains = grow_stats(profile, rng)
            assert all(0 <= g < 5 for g in gains.values())


class TestSkills:
    def test_new_skill_starts_at_level_one(self):
        profile = LifeProfile()
        skill = train_skill(profile, "Resilience")
        assert skill.level == 1
        assert profile.get_skill("Resilience") is skill

    def test_existing_skill_levels_up_to_ten(self):
        profile = LifeProfile(skills=[Skill(name="Technical", level=9)])
        train_skill(profile, "Technical")
        train_skill(profile, "Technical")
        assert profile.get_skill("Technical").level == 10
        assert len(profile.skills) == 1

    def test_chance_gate(self):
        profile = LifeProfile()
        assert maybe_train_skill(profile, _rng(random_value=0.3), chance=0.3) is None
        assert profile.skills == []
        skill = maybe_train_skill(profile, _rng(random_value=0.29, choice="Networking"), chance=0.3)
        assert skill.name == "Networking"

    def test_drawn_skill_comes_from_pool(self):
        profile = LifeProfile()
        rng = random.Random(0)
        for _ in range(30):
            maybe_train_skill(profile, rng, chance=1.0)
        assert {s.name for s in profile.skills} <= set(SKILL_POOL)


class TestProgressionTracker:
    def test_record_acceptance(self):
        tracker = ProgressionTracker(rng=_rng(randrange=1, random_value=0.0, choice="Creativity"))
        result = tracker.record_acceptance("milestone-1")
        assert result["stat_gains"]["rizz"] == 1
        assert result["skill"] == {"name": "Creativity", "level": 1}
        assert tracker.profile.stats.ambition == 26

    def test_no_skill_above_chance(self):
        tracker = ProgressionTracker(rng=_rng(random_value=0.9), skill_chance=0.3)
        assert tracker.record_acceptance("milestone-1")["skill"] is None
        assert tracker.profile.skills == []

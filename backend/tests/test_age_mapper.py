"""
Tests for the age axis mapping.
"""
import pytest

from lifepath.models.life_graph import TimelineAxis
from lifepath.world.age_mapper import age_at, age_on_axis, clamp_age, is_finite, round_half_up


class TestAgeAt:
    def test_interpolates_linearly(self):
        assert age_at(250, 250, 1250, 20, 80) == 20
        assert age_at(1250, 250, 1250, 20, 80) == 80
        assert age_at(750, 250, 1250, 20, 80) == 50

    def test_extrapolates_outside_axis(self):
        # no clamping at placement time
        assert age_at(50, 250, 1250, 20, 80) == 8
        assert age_at(1570, 250, 1250, 20, 80) == 99
        assert age_at(2250, 250, 1250, 20, 80) == 140

    def test_halves_round_up(self):
        # 20 + 25 * 60 / 1000 = 21.5
        assert age_at(275, 250, 1250, 20, 80) == 22
        # 20 + 75 * 60 / 1000 = 24.5
        assert age_at(325, 250, 1250, 20, 80) == 25

    def test_zero_width_axis_returns_start_age(self):
        assert age_at(999, 500, 500, 20, 80) == 20

    def test_axis_variant_matches(self):
        axis = TimelineAxis(start_x=250, end_x=1250, start_age=20, end_age=80)
        for x in (0, 250, 600, 1250, 1600):
            assert age_on_axis(x, axis) == age_at(x, 250, 1250, 20, 80)


class TestClampAge:
    @pytest.mark.parametrize(
        "age, expected",
        [(-5, 0), (0, 0), (42, 42), (99, 99), (120, 99), (49.5, 50)],
    )
    def test_clamps_into_range(self, age, expected):
        assert clamp_age(age) == expected

    def test_huge_values_clamp_without_overflow(self):
        assert clamp_age(10 ** 400) == 99
        assert clamp_age(-(10 ** 400)) == 0
        assert clamp_age(float("inf")) == 99


def test_is_finite():
    assert is_finite(10 ** 400)
    assert is_finite(-3.5)
    assert not is_finite(float("nan"))
    assert not is_finite(float("-inf"))


def test_round_half_up_negative_half():
    assert round_half_up(-0.5) == 0
    assert round_half_up(2.5) == 3

"""
Unit tests for the XP Calculator

Tests performance multipliers, streak tiers, the first-workout bonus,
rounding and input validation.
"""

import math
import pytest

from core.exceptions import InvalidMetric
from models import CardioMetrics, StrengthMetrics
from services.constants import WorkoutType
from services.rules import ProgressionRules, XPRules
from services.xp_calculator import (
    base_xp_for,
    breakdown,
    cardio_multiplier,
    compute_xp,
    default_templates,
    streak_bonus_description,
    streak_multiplier,
    round_half_up,
    strength_multiplier,
    validate_metrics,
)


class TestFirstWorkoutScenario:
    """Strength workout, base 20, 135 x 10 x 3 on day one."""

    METRICS = StrengthMetrics(weight=135, reps=10, sets=3)

    def test_first_workout_of_day(self):
        # volume 4050 -> capped at 1 + 2.0 = 3.0; streak 1 -> 1.0; bonus 1.25
        xp = compute_xp(20, WorkoutType.STRENGTH, 1, True, strength=self.METRICS)
        assert xp == 75

    def test_second_workout_same_day_has_no_bonus(self):
        xp = compute_xp(20, WorkoutType.STRENGTH, 1, False, strength=self.METRICS)
        assert xp == 60


class TestStrengthMultiplier:

    def test_no_volume(self):
        assert strength_multiplier(StrengthMetrics()) == 1.0

    def test_partial_volume(self):
        # 100 x 5 x 1 = 500 -> 1.5
        assert strength_multiplier(StrengthMetrics(weight=100, reps=5, sets=1)) == pytest.approx(1.5)

    def test_volume_is_capped(self):
        assert strength_multiplier(StrengthMetrics(weight=1000, reps=100, sets=10)) == pytest.approx(3.0)

    def test_monotonic_in_weight(self):
        previous = 0
        for weight in range(0, 400, 10):
            xp = compute_xp(40, WorkoutType.STRENGTH, 0, False,
                            strength=StrengthMetrics(weight=weight, reps=8, sets=3))
            assert xp >= previous
            previous = xp

    def test_missing_metrics_count_as_zero(self):
        assert compute_xp(35, WorkoutType.STRENGTH, 0, False) == 35


class TestCardioMultiplier:

    def test_duration_only(self):
        assert cardio_multiplier(CardioMetrics(duration_minutes=30)) == pytest.approx(1.5)

    def test_all_metrics(self):
        metrics = CardioMetrics(duration_minutes=30, calories=300, steps=4000)
        assert cardio_multiplier(metrics) == pytest.approx(2.0)

    def test_capped_at_five(self):
        assert cardio_multiplier(CardioMetrics(duration_minutes=600)) == pytest.approx(5.0)
        xp = compute_xp(200, WorkoutType.CARDIO, 0, False, cardio=CardioMetrics(duration_minutes=600))
        assert xp == 1000

    def test_run_thirty_minutes(self):
        xp = compute_xp(200, WorkoutType.CARDIO, 0, False, cardio=CardioMetrics(duration_minutes=30))
        assert xp == 300

    def test_monotonic_in_each_metric(self):
        base = CardioMetrics(duration_minutes=20, calories=100, steps=1000)
        more_minutes = CardioMetrics(duration_minutes=40, calories=100, steps=1000)
        more_calories = CardioMetrics(duration_minutes=20, calories=400, steps=1000)
        more_steps = CardioMetrics(duration_minutes=20, calories=100, steps=9000)
        for better in (more_minutes, more_calories, more_steps):
            assert cardio_multiplier(better) >= cardio_multiplier(base)


class TestStreakMultiplier:

    @pytest.mark.parametrize("streak,expected", [
        (0, 1.0), (2, 1.0),
        (3, 1.1), (6, 1.1),
        (7, 1.25), (13, 1.25),
        (14, 1.5), (29, 1.5),
        (30, 2.0), (365, 2.0),
    ])
    def test_tiers(self, streak, expected):
        assert streak_multiplier(streak) == expected

    def test_never_decreases(self):
        values = [streak_multiplier(s) for s in range(0, 100)]
        assert values == sorted(values)

    def test_saturates(self):
        assert streak_multiplier(10_000) == streak_multiplier(30)

    def test_negative_streak_rejected(self):
        with pytest.raises(InvalidMetric):
            streak_multiplier(-1)

    def test_description(self):
        assert streak_bonus_description(0) is None
        assert streak_bonus_description(3) == "+10% streak bonus"
        assert streak_bonus_description(7) == "+25% streak bonus"
        assert streak_bonus_description(30) == "+100% streak bonus"


class TestRounding:

    def test_half_rounds_up(self):
        # 1 x 1.5 = 1.5 -> 2
        xp = compute_xp(1, WorkoutType.STRENGTH, 0, False,
                        strength=StrengthMetrics(weight=100, reps=5, sets=1))
        assert xp == 2

    def test_bonus_rounding(self):
        # 10 x 1.25 = 12.5 -> 13
        assert compute_xp(10, WorkoutType.STRENGTH, 0, True) == 13

    def test_zero_base_is_zero(self):
        assert compute_xp(0, WorkoutType.CARDIO, 30, True, cardio=CardioMetrics(duration_minutes=60)) == 0

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.49, 1), (2.5, 3), (86.625, 87), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestValidation:

    @pytest.mark.parametrize("weight", [-1, float("nan"), float("inf"), "heavy", True])
    def test_bad_weight(self, weight):
        with pytest.raises(InvalidMetric) as exc:
            compute_xp(20, WorkoutType.STRENGTH, 0, False,
                       strength=StrengthMetrics(weight=weight, reps=5, sets=3))
        assert exc.value.field == "weight"
        assert exc.value.error_code == "INVALID_METRIC"

    def test_bad_optional_cardio_metric(self):
        with pytest.raises(InvalidMetric):
            compute_xp(100, WorkoutType.CARDIO, 0, False,
                       cardio=CardioMetrics(duration_minutes=30, steps=-5))

    def test_metrics_for_the_other_family_are_checked(self):
        bad_cardio = CardioMetrics(duration_minutes=-30, calories=float("nan"))
        with pytest.raises(InvalidMetric) as exc:
            compute_xp(20, WorkoutType.STRENGTH, 0, False,
                       strength=StrengthMetrics(weight=135, reps=10, sets=3), cardio=bad_cardio)
        assert exc.value.field == "duration_minutes"

        with pytest.raises(InvalidMetric):
            compute_xp(100, WorkoutType.CARDIO, 0, False,
                       cardio=CardioMetrics(duration_minutes=30),
                       strength=StrengthMetrics(weight=-5, reps=1, sets=1))

    def test_validate_metrics(self):
        validate_metrics(StrengthMetrics(weight=10, reps=1, sets=1), CardioMetrics(duration_minutes=5))
        validate_metrics()
        with pytest.raises(InvalidMetric):
            validate_metrics(cardio=CardioMetrics(duration_minutes=float("inf")))

    def test_negative_base_xp(self):
        with pytest.raises(InvalidMetric):
            compute_xp(-10, WorkoutType.STRENGTH, 0, False)

    def test_negative_streak(self):
        with pytest.raises(InvalidMetric):
            compute_xp(10, WorkoutType.STRENGTH, -2, False)

    def test_result_is_finite_int(self):
        xp = compute_xp(50, WorkoutType.STRENGTH, 45, True,
                        strength=StrengthMetrics(weight=1e9, reps=10, sets=10))
        assert isinstance(xp, int)
        assert math.isfinite(xp)
        # 50 x 3.0 x 2.0 x 1.25
        assert xp == 375


class TestTemplates:

    def test_base_xp_lookup(self):
        assert base_xp_for("Run") == 200
        assert base_xp_for("Squats") == 50
        assert base_xp_for("Underwater Basket Weaving") == 35
        assert base_xp_for(None) == 35

    def test_default_templates(self):
        templates = {t.name: t for t in default_templates()}
        assert len(templates) == 27
        assert templates["Run"].workout_type == WorkoutType.CARDIO
        assert templates["Deadlift"].workout_type == WorkoutType.STRENGTH
        assert templates["Pull-ups"].id == "pull_ups"

    def test_cardio_templates_are_configurable(self):
        rules = ProgressionRules(xp=XPRules(
            base_xp_values={"Rowing": 180, "Squats": 50},
            cardio_templates=["Rowing"],
        ))
        templates = {t.name: t for t in default_templates(rules)}
        assert templates["Rowing"].workout_type == WorkoutType.CARDIO
        assert templates["Squats"].workout_type == WorkoutType.STRENGTH


class TestConfigurableRules:

    def test_custom_first_workout_multiplier(self):
        rules = ProgressionRules(xp=XPRules(first_workout_multiplier=1.5))
        assert compute_xp(20, WorkoutType.STRENGTH, 0, True, rules=rules) == 30

    def test_breakdown(self):
        parts = breakdown(20, WorkoutType.STRENGTH, 7, True,
                          strength=StrengthMetrics(weight=100, reps=5, sets=2))
        assert parts["performance_multiplier"] == 2.0
        assert parts["streak_multiplier"] == 1.25
        assert parts["first_workout_multiplier"] == 1.25
        # 20 x 2.0 x 1.25 x 1.25 = 62.5 -> 63
        assert parts["total"] == 63

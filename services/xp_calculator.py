"""
XP Calculator

Turns one logged workout into the experience it awards.

    xp = base_xp * performance * streak_multiplier * first_workout_bonus

Performance depends on the workout family:
- Strength: 1 + min(volume / 1000, 2.0), volume = weight * reps * sets
- Cardio:   1 + minutes/60 + calories/1000 + steps/20000, capped at 5.0

Every factor is >= 1.0 and non-decreasing in its inputs, so more work never
earns less XP. The result is rounded half-up and never negative.

All coefficients come from ProgressionRules.xp (services/rules.py).
"""

import math
import logging
from numbers import Real
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidMetric
from models import CardioMetrics, StrengthMetrics, WorkoutTemplate
from services.constants import WorkoutType
from services.rules import ProgressionRules, get_rules

logger = logging.getLogger(__name__)


def _check_metric(name: str, value: Any) -> float:
    """Reject non-numeric, non-finite and negative values."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidMetric(name, value)
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise InvalidMetric(name, value)
    return value


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def base_xp_for(template_name: Optional[str], rules: Optional[ProgressionRules] = None) -> int:
    """Base XP for a named template, falling back to the default for custom workouts."""
    rules = rules or get_rules()
    if template_name is None:
        return rules.xp.default_base_xp
    return rules.xp.base_xp_values.get(template_name, rules.xp.default_base_xp)


def default_templates(rules: Optional[ProgressionRules] = None) -> List[WorkoutTemplate]:
    """Built-in workout templates, one per configured base XP entry."""
    rules = rules or get_rules()
    cardio_names = set(rules.xp.cardio_templates)
    templates = []
    for name, base_xp in rules.xp.base_xp_values.items():
        workout_type = WorkoutType.CARDIO if name in cardio_names else WorkoutType.STRENGTH
        template_id = name.lower().replace(" ", "_").replace("-", "_")
        templates.append(WorkoutTemplate(
            id=template_id, name=name, workout_type=workout_type, base_xp=base_xp,
        ))
    return templates


def strength_multiplier(
    metrics: Optional[StrengthMetrics],
    rules: Optional[ProgressionRules] = None,
) -> float:
    rules = rules or get_rules()
    if metrics is None:
        return 1.0
    weight = _check_metric("weight", metrics.weight)
    reps = _check_metric("reps", metrics.reps)
    sets = _check_metric("sets", metrics.sets)

    volume = weight * reps * sets
    return 1.0 + min(volume / rules.xp.strength_volume_divisor, rules.xp.strength_volume_cap)


def cardio_multiplier(
    metrics: Optional[CardioMetrics],
    rules: Optional[ProgressionRules] = None,
) -> float:
    rules = rules or get_rules()
    if metrics is None:
        return 1.0
    minutes = _check_metric("duration_minutes", metrics.duration_minutes)
    # Optional metrics count as zero when absent
    calories = 0.0 if metrics.calories is None else _check_metric("calories", metrics.calories)
    steps = 0.0 if metrics.steps is None else _check_metric("steps", metrics.steps)

    effort = (
        1.0
        + minutes / rules.xp.cardio_minutes_divisor
        + calories / rules.xp.cardio_calories_divisor
        + steps / rules.xp.cardio_steps_divisor
    )
    return min(effort, rules.xp.cardio_multiplier_cap)


def validate_metrics(
    strength: Optional[StrengthMetrics] = None,
    cardio: Optional[CardioMetrics] = None,
    rules: Optional[ProgressionRules] = None,
):
    """
    Check every supplied metric, whichever workout family it belongs to.

    Raises:
        InvalidMetric: Negative, non-finite or non-numeric input
    """
    strength_multiplier(strength, rules)
    cardio_multiplier(cardio, rules)


def streak_multiplier(streak: int, rules: Optional[ProgressionRules] = None) -> float:
    """Highest tier whose minimum the streak has reached."""
    rules = rules or get_rules()
    if streak < 0:
        raise InvalidMetric("streak", streak)
    multiplier = 1.0
    for tier in rules.xp.streak_tiers:
        if streak >= tier.min_streak:
            multiplier = tier.multiplier
        else:
            break
    return multiplier


def streak_bonus_description(streak: int, rules: Optional[ProgressionRules] = None) -> Optional[str]:
    """E.g. "+25% streak bonus"; None when the streak earns no bonus."""
    multiplier = streak_multiplier(streak, rules)
    if multiplier <= 1.0:
        return None
    percentage = round_half_up((multiplier - 1.0) * 100)
    return f"+{percentage}% streak bonus"


def compute_xp(
    base_xp: int,
    workout_type: WorkoutType,
    streak: int,
    is_first_workout_of_day: bool,
    strength: Optional[StrengthMetrics] = None,
    cardio: Optional[CardioMetrics] = None,
    rules: Optional[ProgressionRules] = None,
) -> int:
    """
    XP awarded for one workout.

    Args:
        base_xp: Template base XP (or the configured default)
        workout_type: Selects the performance formula
        streak: Streak in effect for this workout
        is_first_workout_of_day: Applies the first-workout bonus
        strength: Metrics for strength workouts (missing = zero volume)
        cardio: Metrics for cardio workouts (missing = zero minutes)

    Returns:
        Non-negative integer XP

    Raises:
        InvalidMetric: Negative, non-finite or non-numeric input
    """
    rules = rules or get_rules()
    base = _check_metric("base_xp", base_xp)
    if isinstance(streak, bool) or not isinstance(streak, int):
        raise InvalidMetric("streak", streak)

    validate_metrics(strength, cardio, rules)

    workout_type = WorkoutType(workout_type)
    if workout_type == WorkoutType.STRENGTH:
        performance = strength_multiplier(strength or StrengthMetrics(), rules)
    else:
        performance = cardio_multiplier(cardio or CardioMetrics(), rules)

    xp = base * performance * streak_multiplier(streak, rules)
    if is_first_workout_of_day:
        xp *= rules.xp.first_workout_multiplier

    return max(0, round_half_up(xp))


def breakdown(
    base_xp: int,
    workout_type: WorkoutType,
    streak: int,
    is_first_workout_of_day: bool,
    strength: Optional[StrengthMetrics] = None,
    cardio: Optional[CardioMetrics] = None,
    rules: Optional[ProgressionRules] = None,
) -> Dict[str, Any]:
    """Individual factors behind compute_xp(), for display and debugging."""
    rules = rules or get_rules()
    workout_type = WorkoutType(workout_type)
    if workout_type == WorkoutType.STRENGTH:
        performance = strength_multiplier(strength or StrengthMetrics(), rules)
    else:
        performance = cardio_multiplier(cardio or CardioMetrics(), rules)
    return {
        "base_xp": base_xp,
        "performance_multiplier": round(performance, 4),
        "streak_multiplier": streak_multiplier(streak, rules),
        "first_workout_multiplier": rules.xp.first_workout_multiplier if is_first_workout_of_day else 1.0,
        "total": compute_xp(
            base_xp, workout_type, streak, is_first_workout_of_day,
            strength=strength, cardio=cardio, rules=rules,
        ),
    }

"""
Streak Tracker

Daily streak transitions for a newly logged workout, plus rest-day
protection and the weekly-goal streak.

Calendar days are taken in the caller's time zone: a workout at 23:58 and
another at 00:02 the next morning land on two different days.

Daily transition for a workout on local day D, given the last workout day L:
    L is None      -> streak 1, first workout of the day
    D == L         -> unchanged, not first of the day
    D == L + 1     -> streak + 1, first of the day
    D >  L + 1     -> streak 1 (broken), first of the day
    D <  L         -> unchanged (backfilled entry), not first of the day
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from core.clock import local_date, week_start
from core.exceptions import InvalidMetric, RestDayUnavailable
from models import Player
from services.rules import ProgressionRules, get_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    """Result of applying one workout to the streak counters."""
    current_streak: int
    highest_streak: int
    last_workout_date: Optional[date]
    is_first_workout_of_day: bool
    streak_broken: bool = False


def track_workout(
    current_streak: int,
    highest_streak: int,
    last_workout_date: Optional[date],
    at: datetime,
    tz: tzinfo,
) -> StreakUpdate:
    """
    Compute the streak state after a workout at `at`.

    Args:
        current_streak: Streak before the workout
        highest_streak: Best streak before the workout
        last_workout_date: Local date of the previous workout (None if never)
        at: Workout timestamp
        tz: Zone that defines the player's calendar days

    Returns:
        StreakUpdate with the new counters
    """
    if current_streak < 0:
        raise InvalidMetric("current_streak", current_streak)
    if highest_streak < 0:
        raise InvalidMetric("highest_streak", highest_streak)

    highest_streak = max(highest_streak, current_streak)
    today = local_date(at, tz)

    if last_workout_date is not None and today <= last_workout_date:
        # Same day, or a backfilled entry dated before the last workout
        return StreakUpdate(
            current_streak=current_streak,
            highest_streak=highest_streak,
            last_workout_date=last_workout_date,
            is_first_workout_of_day=False,
        )

    broken = False
    if last_workout_date is None:
        new_streak = 1
    elif today - last_workout_date == timedelta(days=1):
        new_streak = current_streak + 1
    else:
        new_streak = 1
        broken = current_streak > 0

    return StreakUpdate(
        current_streak=new_streak,
        highest_streak=max(highest_streak, new_streak),
        last_workout_date=today,
        is_first_workout_of_day=True,
        streak_broken=broken,
    )


def is_first_workout_of_day(last_workout_date: Optional[date], today: date) -> bool:
    return last_workout_date is None or last_workout_date < today


def is_streak_at_risk(last_workout_date: Optional[date], today: date) -> bool:
    """True when no workout has been logged today yet (and there was one before)."""
    if last_workout_date is None:
        return False
    return last_workout_date < today


def format_streak(streak: int) -> str:
    return "1 day" if streak == 1 else f"{streak} days"


def format_weekly_streak(streak: int) -> str:
    return "1 week" if streak == 1 else f"{streak} weeks"


# =============================================================================
# REST DAYS
# =============================================================================

def _reset_rest_days_if_needed(player: Player, today: date):
    current_week = week_start(today)
    if player.rest_week_start is None or player.rest_week_start < current_week:
        player.rest_days_used_this_week = 0
        player.rest_week_start = current_week


def remaining_rest_days(player: Player, today: date, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    current_week = week_start(today)
    used = player.rest_days_used_this_week
    if player.rest_week_start is None or player.rest_week_start < current_week:
        used = 0
    return max(0, rules.streaks.max_rest_days_per_week - used)


def use_rest_day(player: Player, today: date, rules: Optional[ProgressionRules] = None) -> int:
    """
    Spend a rest day so today counts toward the streak without a workout.

    Marks today as covered by moving last_workout_date to today; the streak
    value itself does not change.

    Returns:
        Rest days remaining this week

    Raises:
        RestDayUnavailable: Allowance used, no active streak, already worked
            out today, or the streak is already broken
    """
    rules = rules or get_rules()
    _reset_rest_days_if_needed(player, today)

    if player.rest_days_used_this_week >= rules.streaks.max_rest_days_per_week:
        raise RestDayUnavailable("No rest days left this week")
    if player.current_streak <= 0:
        raise RestDayUnavailable("No active streak to protect")
    if player.last_workout_date is None or player.last_workout_date >= today:
        raise RestDayUnavailable("Today is already covered")
    if player.last_workout_date < today - timedelta(days=1):
        raise RestDayUnavailable("Streak is already broken")

    player.rest_days_used_this_week += 1
    player.last_workout_date = today
    logger.debug(f"Rest day used, {player.rest_days_used_this_week} this week")
    return rules.streaks.max_rest_days_per_week - player.rest_days_used_this_week


# =============================================================================
# WEEKLY GOAL STREAK
# =============================================================================

def _reset_weekly_workouts_if_needed(player: Player, today: date):
    current_week = week_start(today)
    if player.weekly_week_start is None or player.weekly_week_start < current_week:
        player.days_worked_out_this_week = 0
        player.weekly_week_start = current_week


def record_weekly_workout(player: Player, today: date, is_first_workout_of_day: bool) -> bool:
    """
    Count a workout day toward the weekly goal.

    Only the first workout of each day counts. The weekly streak moves once
    per week, when the goal is first met: +1 if the previous week was also
    completed, otherwise back to 1.

    Returns:
        True if this workout completed the weekly goal
    """
    _reset_weekly_workouts_if_needed(player, today)
    if not is_first_workout_of_day:
        return False

    player.days_worked_out_this_week += 1
    if player.days_worked_out_this_week < player.weekly_workout_goal:
        return False

    current_week = week_start(today)
    if player.last_week_completed == current_week:
        return False

    previous_week = current_week - timedelta(days=7)
    if player.last_week_completed == previous_week:
        player.current_weekly_streak += 1
    else:
        player.current_weekly_streak = 1

    player.last_week_completed = current_week
    player.highest_weekly_streak = max(player.highest_weekly_streak, player.current_weekly_streak)
    return True


def weekly_goal_progress(player: Player, today: date) -> float:
    """Fraction of the weekly goal met this week, capped at 1.0."""
    if player.weekly_workout_goal <= 0:
        return 0.0
    days = player.days_worked_out_this_week
    if player.weekly_week_start is None or player.weekly_week_start < week_start(today):
        days = 0
    return min(1.0, days / player.weekly_workout_goal)


def weekly_progress_text(completed: int, goal: int) -> str:
    if completed == 0:
        return "Start your week strong!"
    if completed < goal:
        remaining = goal - completed
        if remaining == 1:
            return "Just 1 more day to hit your goal!"
        return f"{remaining} more days to hit your goal"
    return "Weekly goal achieved!"

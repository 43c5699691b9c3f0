"""
Player aggregate.

Plain dataclasses holding everything the engine reads and writes for one
player: the workout log, streak counters, essence balance, unlocks and the
pet. Persistence is the host application's job (see schemas.py for the
plain-data snapshots); the engine only mutates these objects in memory.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Set
from uuid import uuid4

from services.constants import (
    PetSpecies,
    QuestDifficulty,
    QuestRewardType,
    QuestType,
    WorkoutType,
    DEFAULT_WEEKLY_WORKOUT_GOAL,
    MAX_HAPPINESS,
)


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class StrengthMetrics:
    weight: float = 0.0   # per rep, any consistent unit
    reps: int = 0
    sets: int = 0

    @property
    def volume(self) -> float:
        return self.weight * self.reps * self.sets


@dataclass(frozen=True)
class CardioMetrics:
    duration_minutes: float = 0.0
    steps: Optional[int] = None
    calories: Optional[float] = None


@dataclass(frozen=True)
class WorkoutTemplate:
    """A named exercise with its base XP."""
    id: str
    name: str
    workout_type: WorkoutType
    base_xp: int


@dataclass(frozen=True)
class Workout:
    """
    One logged session. xp_earned is computed once when the workout is
    logged and never recomputed, so later rule changes don't rewrite history.
    """
    workout_type: WorkoutType
    timestamp: datetime
    xp_earned: int = 0
    name: str = ""
    strength: Optional[StrengthMetrics] = None
    cardio: Optional[CardioMetrics] = None
    template_id: Optional[str] = None
    id: str = field(default_factory=_new_id)


@dataclass
class Pet:
    name: str
    species: PetSpecies
    total_xp: int = 0
    happiness: float = MAX_HAPPINESS
    # None until the first refresh; decay starts counting from there
    last_happiness_update_at: Optional[datetime] = None
    is_away: bool = False
    away_since: Optional[datetime] = None
    equipped_accessory_ids: Set[str] = field(default_factory=set)

    # Tap-to-play
    tap_count: int = 0
    play_sessions_today: int = 0
    last_play_date: Optional[date] = None

    id: str = field(default_factory=_new_id)


@dataclass
class DailyQuest:
    quest_type: QuestType
    reward_type: QuestRewardType
    reward_amount: int
    difficulty: QuestDifficulty
    assigned_on: date
    target: int = 1
    progress: int = 0
    is_completed: bool = False
    is_claimed: bool = False
    id: str = field(default_factory=_new_id)


@dataclass
class Player:
    name: str = ""
    total_xp: int = 0
    current_streak: int = 0
    highest_streak: int = 0
    last_workout_date: Optional[date] = None
    essence_currency: int = 0

    unlocked_accessory_ids: Set[str] = field(default_factory=set)
    unlocked_cosmetic_keys: Set[str] = field(default_factory=set)
    earned_achievement_ids: Set[str] = field(default_factory=set)

    pet: Optional[Pet] = None
    workouts: List[Workout] = field(default_factory=list)

    # Rest-day streak protection
    rest_days_used_this_week: int = 0
    rest_week_start: Optional[date] = None

    # Weekly goal streak
    weekly_workout_goal: int = DEFAULT_WEEKLY_WORKOUT_GOAL
    days_worked_out_this_week: int = 0
    weekly_week_start: Optional[date] = None
    current_weekly_streak: int = 0
    highest_weekly_streak: int = 0
    last_week_completed: Optional[date] = None

    daily_quests: List[DailyQuest] = field(default_factory=list)
    quests_refreshed_on: Optional[date] = None

    id: str = field(default_factory=_new_id)

    @property
    def workout_count(self) -> int:
        return len(self.workouts)

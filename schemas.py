"""
Plain-data snapshots of the player aggregate.

The engine does no I/O. Hosts persist players by dumping a PlayerSnapshot
(model_dump / model_dump_json) and rebuild them with to_model(). Sets are
stored as sorted lists so snapshots are stable across runs.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, date, tzinfo
from typing import Optional, List
from zoneinfo import ZoneInfo

from core.clock import ensure_aware
from core.config import settings
from models import (
    CardioMetrics,
    DailyQuest,
    Pet,
    Player,
    StrengthMetrics,
    Workout,
)
from services.constants import (
    PetSpecies,
    QuestDifficulty,
    QuestRewardType,
    QuestType,
    WorkoutType,
)


def _zone(tz: Optional[tzinfo]) -> tzinfo:
    return tz or ZoneInfo(settings.DEFAULT_TIMEZONE)


def _aware(at: Optional[datetime], tz: tzinfo) -> Optional[datetime]:
    return ensure_aware(at, tz) if at is not None else None


def _sorted_ids(v):
    if isinstance(v, (set, frozenset)):
        return sorted(v)
    return v


class StrengthSnapshot(BaseModel):
    weight: float = Field(default=0.0, ge=0)
    reps: int = Field(default=0, ge=0)
    sets: int = Field(default=0, ge=0)

    model_config = ConfigDict(from_attributes=True)


class CardioSnapshot(BaseModel):
    duration_minutes: float = Field(default=0.0, ge=0)
    steps: Optional[int] = Field(default=None, ge=0)
    calories: Optional[float] = Field(default=None, ge=0)

    model_config = ConfigDict(from_attributes=True)


class WorkoutSnapshot(BaseModel):
    id: str
    workout_type: WorkoutType
    timestamp: datetime
    xp_earned: int = Field(ge=0)
    name: str = ""
    strength: Optional[StrengthSnapshot] = None
    cardio: Optional[CardioSnapshot] = None
    template_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def to_model(self, tz: Optional[tzinfo] = None) -> Workout:
        """Naive timestamps (from a tz-less store) are read as wall time in `tz`."""
        return Workout(
            id=self.id,
            workout_type=self.workout_type,
            timestamp=ensure_aware(self.timestamp, _zone(tz)),
            xp_earned=self.xp_earned,
            name=self.name,
            strength=StrengthMetrics(**self.strength.model_dump()) if self.strength else None,
            cardio=CardioMetrics(**self.cardio.model_dump()) if self.cardio else None,
            template_id=self.template_id,
        )


class PetSnapshot(BaseModel):
    id: str
    name: str
    species: PetSpecies
    total_xp: int = Field(default=0, ge=0)
    happiness: float = Field(default=100.0, ge=0, le=100)
    last_happiness_update_at: Optional[datetime] = None
    is_away: bool = False
    away_since: Optional[datetime] = None
    equipped_accessory_ids: List[str] = Field(default_factory=list)
    tap_count: int = Field(default=0, ge=0)
    play_sessions_today: int = Field(default=0, ge=0)
    last_play_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("equipped_accessory_ids", mode="before")
    @classmethod
    def sort_equipped(cls, v):
        return _sorted_ids(v)

    def to_model(self, tz: Optional[tzinfo] = None) -> Pet:
        tz = _zone(tz)
        data = self.model_dump()
        data["last_happiness_update_at"] = _aware(self.last_happiness_update_at, tz)
        data["away_since"] = _aware(self.away_since, tz)
        data["equipped_accessory_ids"] = set(self.equipped_accessory_ids)
        return Pet(**data)


class DailyQuestSnapshot(BaseModel):
    id: str
    quest_type: QuestType
    reward_type: QuestRewardType
    reward_amount: int = Field(ge=0)
    difficulty: QuestDifficulty
    assigned_on: date
    target: int = Field(default=1, ge=1)
    progress: int = Field(default=0, ge=0)
    is_completed: bool = False
    is_claimed: bool = False

    model_config = ConfigDict(from_attributes=True)

    def to_model(self) -> DailyQuest:
        return DailyQuest(**self.model_dump())


class PlayerSnapshot(BaseModel):
    """Serializable form of the whole Player aggregate."""
    id: str
    name: str = ""
    total_xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    highest_streak: int = Field(default=0, ge=0)
    last_workout_date: Optional[date] = None
    essence_currency: int = Field(default=0, ge=0)

    unlocked_accessory_ids: List[str] = Field(default_factory=list)
    unlocked_cosmetic_keys: List[str] = Field(default_factory=list)
    earned_achievement_ids: List[str] = Field(default_factory=list)

    pet: Optional[PetSnapshot] = None
    workouts: List[WorkoutSnapshot] = Field(default_factory=list)

    rest_days_used_this_week: int = Field(default=0, ge=0)
    rest_week_start: Optional[date] = None

    weekly_workout_goal: int = Field(default=3, ge=1)
    days_worked_out_this_week: int = Field(default=0, ge=0)
    weekly_week_start: Optional[date] = None
    current_weekly_streak: int = Field(default=0, ge=0)
    highest_weekly_streak: int = Field(default=0, ge=0)
    last_week_completed: Optional[date] = None

    daily_quests: List[DailyQuestSnapshot] = Field(default_factory=list)
    quests_refreshed_on: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("unlocked_accessory_ids", "unlocked_cosmetic_keys", "earned_achievement_ids", mode="before")
    @classmethod
    def sort_id_sets(cls, v):
        return _sorted_ids(v)

    @field_validator("highest_streak")
    @classmethod
    def validate_highest_streak(cls, v, info):
        current = info.data.get("current_streak", 0)
        if v < current:
            raise ValueError("highest_streak must be >= current_streak")
        return v

    @classmethod
    def from_model(cls, player: Player) -> "PlayerSnapshot":
        return cls.model_validate(player)

    def to_model(self, tz: Optional[tzinfo] = None) -> Player:
        """
        Rebuild the aggregate. Naive timestamps are read as wall time in `tz`
        (default: settings.DEFAULT_TIMEZONE).
        """
        tz = _zone(tz)
        data = self.model_dump(exclude={"pet", "workouts", "daily_quests"})
        for key in ("unlocked_accessory_ids", "unlocked_cosmetic_keys", "earned_achievement_ids"):
            data[key] = set(data[key])
        return Player(
            pet=self.pet.to_model(tz) if self.pet is not None else None,
            workouts=[w.to_model(tz) for w in self.workouts],
            daily_quests=[q.to_model() for q in self.daily_quests],
            **data,
        )

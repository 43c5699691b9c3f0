"""
Progression Rules

Every tunable number the engine uses (XP formulas, level curves, pet decay,
prices, unlock thresholds, quest rewards) lives in one validated
ProgressionRules object. Defaults come from services/constants.py; a YAML
file can override any subset of them without code changes.

Usage:
    rules = RulesService.get()

    # Level curve currently in effect
    rules.levels.curve.exponent

    # Re-read the YAML file without restart
    RulesService.reload()
"""

import yaml
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from core.config import settings
from core.exceptions import RulesConfigError
from services.constants import (
    AccessoryCategory,
    AccessoryRarity,
    CharacterBackground,
    EvolutionStage,
    PetSpecies,
    PetTreat,
    PlayerRank,
    QuestDifficulty,
    QuestRewardType,
    QuestType,
    UnlockKind,
    RANK_ORDER,
    STAGE_ORDER,
    BASE_XP_VALUES,
    CARDIO_TEMPLATES,
    DEFAULT_BASE_XP,
    STRENGTH_VOLUME_DIVISOR,
    STRENGTH_VOLUME_CAP,
    CARDIO_MINUTES_DIVISOR,
    CARDIO_CALORIES_DIVISOR,
    CARDIO_STEPS_DIVISOR,
    CARDIO_MULTIPLIER_CAP,
    FIRST_WORKOUT_OF_DAY_MULTIPLIER,
    STREAK_MULTIPLIER_TIERS,
    PLAYER_LEVEL_BASE,
    PLAYER_LEVEL_EXPONENT,
    RANK_MIN_LEVELS,
    MILESTONE_LEVELS,
    MAX_REST_DAYS_PER_WEEK,
    DEFAULT_WEEKLY_WORKOUT_GOAL,
    PASSIVE_DECAY_PER_DAY,
    WORKOUT_HAPPINESS_BOOST,
    RECOVERY_HAPPINESS,
    ESSENCE_RECOVERY_COST,
    RECOVERY_WORKOUTS_REQUIRED,
    RECOVERY_WINDOW_DAYS,
    HAPPINESS_BONUS_THRESHOLD,
    HAPPINESS_XP_MULTIPLIER,
    PET_LEVEL_BASE,
    PET_LEVEL_EXPONENT,
    STAGE_MIN_LEVELS,
    TREATS,
    SPECIES_BONUSES,
    TAPS_PER_PLAY_SESSION,
    MAX_PLAY_SESSIONS_PER_DAY,
    HAPPINESS_PER_PLAY_SESSION,
    ESSENCE_PER_XP,
    RARITY_PRICE_MULTIPLIERS,
    ACCESSORY_CATALOG,
    UNLOCK_REQUIREMENTS,
    BACKGROUND_UNLOCK_RANKS,
    EARLY_BIRD_BEFORE_HOUR,
    NIGHT_OWL_FROM_HOUR,
    QUESTS_PER_DAY,
    HAPPY_PET_QUEST_THRESHOLD,
    QUEST_DEFINITIONS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEMA
# =============================================================================

class StreakTier(BaseModel):
    """Multiplier applied once the streak reaches min_streak."""
    min_streak: int = Field(ge=0)
    multiplier: float = Field(ge=1.0)


class LevelCurve(BaseModel):
    """
    Cumulative XP needed to reach a level: int(base * level ** exponent).

    Level 1 always needs 0. Requiring base >= 1 and exponent >= 1 keeps
    every step at least one whole point, so the curve is strictly increasing
    even after truncation.
    """
    base: float = Field(ge=1.0)
    exponent: float = Field(ge=1.0, le=4.0)


class XPRules(BaseModel):
    default_base_xp: int = Field(default=DEFAULT_BASE_XP, ge=0)
    base_xp_values: Dict[str, int] = Field(default_factory=lambda: dict(BASE_XP_VALUES))
    # Template names scored with the cardio formula; everything else is strength
    cardio_templates: List[str] = Field(default_factory=lambda: sorted(CARDIO_TEMPLATES))

    strength_volume_divisor: float = Field(default=STRENGTH_VOLUME_DIVISOR, gt=0)
    strength_volume_cap: float = Field(default=STRENGTH_VOLUME_CAP, ge=0)

    cardio_minutes_divisor: float = Field(default=CARDIO_MINUTES_DIVISOR, gt=0)
    cardio_calories_divisor: float = Field(default=CARDIO_CALORIES_DIVISOR, gt=0)
    cardio_steps_divisor: float = Field(default=CARDIO_STEPS_DIVISOR, gt=0)
    cardio_multiplier_cap: float = Field(default=CARDIO_MULTIPLIER_CAP, ge=1.0)

    first_workout_multiplier: float = Field(default=FIRST_WORKOUT_OF_DAY_MULTIPLIER, ge=1.0)

    streak_tiers: List[StreakTier] = Field(
        default_factory=lambda: [
            StreakTier(min_streak=s, multiplier=m) for s, m in STREAK_MULTIPLIER_TIERS
        ],
        min_length=1,
    )

    @field_validator('base_xp_values')
    @classmethod
    def validate_base_xp(cls, v):
        negative = [name for name, xp in v.items() if xp < 0]
        if negative:
            raise ValueError(f'Negative base XP for: {negative}')
        return v

    @field_validator('streak_tiers')
    @classmethod
    def validate_streak_tiers(cls, v):
        if v[0].min_streak != 0:
            raise ValueError('First streak tier must start at 0')
        for prev, cur in zip(v, v[1:]):
            if cur.min_streak <= prev.min_streak:
                raise ValueError('Streak tiers must be sorted by strictly increasing min_streak')
            if cur.multiplier < prev.multiplier:
                raise ValueError('Streak multipliers must never decrease')
        return v


class LevelRules(BaseModel):
    curve: LevelCurve = Field(
        default_factory=lambda: LevelCurve(base=PLAYER_LEVEL_BASE, exponent=PLAYER_LEVEL_EXPONENT)
    )
    rank_min_levels: Dict[PlayerRank, int] = Field(default_factory=lambda: dict(RANK_MIN_LEVELS))
    milestone_levels: List[int] = Field(default_factory=lambda: list(MILESTONE_LEVELS))

    @field_validator('rank_min_levels')
    @classmethod
    def validate_rank_bands(cls, v):
        missing = [r.value for r in RANK_ORDER if r not in v]
        if missing:
            raise ValueError(f'Missing rank bands: {missing}')
        if v[PlayerRank.BRONZE] != 1:
            raise ValueError('Bronze must start at level 1')
        mins = [v[r] for r in RANK_ORDER]
        if any(b <= a for a, b in zip(mins, mins[1:])):
            raise ValueError('Rank bands must start at strictly increasing levels')
        return v

    @field_validator('milestone_levels')
    @classmethod
    def validate_milestones(cls, v):
        if any(level < 2 for level in v):
            raise ValueError('Milestone levels must be >= 2')
        return sorted(set(v))


class StreakRules(BaseModel):
    max_rest_days_per_week: int = Field(default=MAX_REST_DAYS_PER_WEEK, ge=0, le=7)
    default_weekly_goal: int = Field(default=DEFAULT_WEEKLY_WORKOUT_GOAL, ge=1, le=7)


class TreatRule(BaseModel):
    cost: int = Field(ge=0)
    happiness_boost: float = Field(ge=0)


class SpeciesBonus(BaseModel):
    """Fractional XP bonus per workout type plus growth per pet level."""
    strength: float = Field(default=0.0, ge=0)
    cardio: float = Field(default=0.0, ge=0)
    per_level: float = Field(default=0.0, ge=0)


class PetRules(BaseModel):
    decay_per_day: float = Field(default=PASSIVE_DECAY_PER_DAY, ge=0)
    workout_happiness_boost: float = Field(default=WORKOUT_HAPPINESS_BOOST, ge=0)
    recovery_happiness: float = Field(default=RECOVERY_HAPPINESS, gt=0, le=100)
    essence_recovery_cost: int = Field(default=ESSENCE_RECOVERY_COST, ge=0)
    recovery_workouts_required: int = Field(default=RECOVERY_WORKOUTS_REQUIRED, ge=1)
    recovery_window_days: int = Field(default=RECOVERY_WINDOW_DAYS, ge=1)

    happiness_bonus_threshold: float = Field(default=HAPPINESS_BONUS_THRESHOLD, ge=0, le=100)
    happiness_bonus_multiplier: float = Field(default=HAPPINESS_XP_MULTIPLIER, ge=1.0)

    level_curve: LevelCurve = Field(
        default_factory=lambda: LevelCurve(base=PET_LEVEL_BASE, exponent=PET_LEVEL_EXPONENT)
    )
    stage_min_levels: Dict[EvolutionStage, int] = Field(default_factory=lambda: dict(STAGE_MIN_LEVELS))

    treats: Dict[PetTreat, TreatRule] = Field(
        default_factory=lambda: {t: TreatRule(**v) for t, v in TREATS.items()}
    )
    species: Dict[PetSpecies, SpeciesBonus] = Field(
        default_factory=lambda: {s: SpeciesBonus(**v) for s, v in SPECIES_BONUSES.items()}
    )

    taps_per_play_session: int = Field(default=TAPS_PER_PLAY_SESSION, ge=1)
    max_play_sessions_per_day: int = Field(default=MAX_PLAY_SESSIONS_PER_DAY, ge=0)
    happiness_per_play_session: float = Field(default=HAPPINESS_PER_PLAY_SESSION, ge=0)

    @field_validator('stage_min_levels')
    @classmethod
    def validate_stage_bands(cls, v):
        missing = [s.value for s in STAGE_ORDER if s not in v]
        if missing:
            raise ValueError(f'Missing evolution stages: {missing}')
        if v[EvolutionStage.BABY] != 1:
            raise ValueError('Baby stage must start at level 1')
        mins = [v[s] for s in STAGE_ORDER]
        if any(b <= a for a, b in zip(mins, mins[1:])):
            raise ValueError('Evolution stages must start at strictly increasing levels')
        return v

    @field_validator('treats')
    @classmethod
    def validate_treats(cls, v):
        missing = [t.value for t in PetTreat if t not in v]
        if missing:
            raise ValueError(f'Missing treat sizes: {missing}')
        return v


class AccessoryDefinition(BaseModel):
    """A purchasable pet cosmetic."""
    id: str = Field(..., min_length=1)
    name: str
    category: AccessoryCategory
    rarity: AccessoryRarity
    base_cost: int = Field(ge=0)


class EconomyRules(BaseModel):
    essence_per_xp: int = Field(default=ESSENCE_PER_XP, ge=1)
    rarity_multipliers: Dict[AccessoryRarity, float] = Field(
        default_factory=lambda: dict(RARITY_PRICE_MULTIPLIERS)
    )
    accessories: List[AccessoryDefinition] = Field(
        default_factory=lambda: [AccessoryDefinition(**a) for a in ACCESSORY_CATALOG]
    )

    @field_validator('rarity_multipliers')
    @classmethod
    def validate_rarity_multipliers(cls, v):
        missing = [r.value for r in AccessoryRarity if r not in v]
        if missing:
            raise ValueError(f'Missing rarity multipliers: {missing}')
        if any(m < 0 for m in v.values()):
            raise ValueError('Rarity multipliers must be non-negative')
        return v

    @field_validator('accessories')
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [a.id for a in v]
        if len(ids) != len(set(ids)):
            duplicates = [i for i in ids if ids.count(i) > 1]
            raise ValueError(f'Duplicate accessory IDs: {set(duplicates)}')
        return v

    def get_accessory(self, accessory_id: str) -> Optional[AccessoryDefinition]:
        """Get accessory by ID."""
        for a in self.accessories:
            if a.id == accessory_id:
                return a
        return None


class UnlockRequirement(BaseModel):
    kind: UnlockKind
    threshold: int = Field(ge=0)


class UnlockRules(BaseModel):
    requirements: Dict[str, UnlockRequirement] = Field(
        default_factory=lambda: {
            key: UnlockRequirement(kind=kind, threshold=threshold)
            for key, (kind, threshold) in UNLOCK_REQUIREMENTS.items()
        }
    )
    background_ranks: Dict[CharacterBackground, Optional[PlayerRank]] = Field(
        default_factory=lambda: dict(BACKGROUND_UNLOCK_RANKS)
    )
    early_bird_before_hour: int = Field(default=EARLY_BIRD_BEFORE_HOUR, ge=0, le=24)
    night_owl_from_hour: int = Field(default=NIGHT_OWL_FROM_HOUR, ge=0, le=24)


class QuestDefinition(BaseModel):
    reward_type: QuestRewardType
    reward_amount: int = Field(ge=0)
    target: int = Field(default=1, ge=1)
    difficulty: QuestDifficulty


class QuestRules(BaseModel):
    quests_per_day: int = Field(default=QUESTS_PER_DAY, ge=0)
    happy_pet_threshold: float = Field(default=HAPPY_PET_QUEST_THRESHOLD, ge=0, le=100)
    definitions: Dict[QuestType, QuestDefinition] = Field(
        default_factory=lambda: {
            q: QuestDefinition(reward_type=r, reward_amount=a, target=t, difficulty=d)
            for q, (r, a, t, d) in QUEST_DEFINITIONS.items()
        }
    )

    @model_validator(mode='after')
    def validate_pool_size(self):
        if self.quests_per_day > len(self.definitions):
            raise ValueError('quests_per_day exceeds the number of defined quests')
        return self


class ProgressionRules(BaseModel):
    """Complete, validated tuning for one engine instance."""
    version: str = Field(default="1")
    xp: XPRules = Field(default_factory=XPRules)
    levels: LevelRules = Field(default_factory=LevelRules)
    streaks: StreakRules = Field(default_factory=StreakRules)
    pet: PetRules = Field(default_factory=PetRules)
    economy: EconomyRules = Field(default_factory=EconomyRules)
    unlocks: UnlockRules = Field(default_factory=UnlockRules)
    quests: QuestRules = Field(default_factory=QuestRules)


# =============================================================================
# LOADER
# =============================================================================

def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Mappings merge key by key; everything else (lists included) is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_rules_file(path: Union[str, Path]) -> ProgressionRules:
    """
    Load a YAML rules file layered over the defaults.

    Raises:
        RulesConfigError: If the file is missing, unparsable or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise RulesConfigError(f"Rules file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise RulesConfigError(f"Could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise RulesConfigError(f"Rules file must contain a mapping: {path}")

    defaults = ProgressionRules().model_dump(mode="json")
    try:
        rules = ProgressionRules.model_validate(_deep_merge(defaults, data))
    except ValidationError as e:
        raise RulesConfigError(f"Invalid rules in {path}: {e}") from e

    logger.info(f"Loaded progression rules from {path}, version {rules.version}")
    return rules


class RulesService:
    """
    Load and cache the active ProgressionRules.
    """

    _rules: Optional[ProgressionRules] = None

    @classmethod
    def get(cls) -> ProgressionRules:
        if cls._rules is None:
            cls._load()
        return cls._rules

    @classmethod
    def reload(cls) -> ProgressionRules:
        """Reload rules from the configured file (or defaults)."""
        cls._rules = None
        cls._load()
        logger.info("Progression rules reloaded")
        return cls._rules

    @classmethod
    def set(cls, rules: ProgressionRules):
        """
        Replace the active rules (in memory only).
        Useful for testing.
        """
        cls._rules = rules

    @classmethod
    def reset(cls):
        cls._rules = None

    @classmethod
    def _load(cls):
        path = settings.PROGRESSION_RULES_PATH
        if path:
            try:
                cls._rules = load_rules_file(path)
                return
            except RulesConfigError as e:
                logger.error(f"Error loading progression rules: {e.detail}")
                raise
        cls._rules = ProgressionRules()
        logger.debug("Loaded default progression rules from constants")


def get_rules() -> ProgressionRules:
    """Active rules for callers that were not handed an explicit set."""
    return RulesService.get()

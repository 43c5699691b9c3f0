"""
Constants for the progression engine.

These are DEFAULTS that can be overridden by the progression rules file
(see services/rules.py). They exist here for type safety and documentation.
"""

from enum import Enum
from typing import Dict, List, Tuple


class WorkoutType(str, Enum):
    """Workout families with their own performance formula."""
    STRENGTH = "strength"
    CARDIO = "cardio"


class PlayerRank(str, Enum):
    """Rank tiers over player level bands."""
    BRONZE = "bronze"        # 1-10
    SILVER = "silver"        # 11-25
    GOLD = "gold"            # 26-50
    PLATINUM = "platinum"    # 51-100
    DIAMOND = "diamond"      # 101+


class PetSpecies(str, Enum):
    """Chosen at pet creation, never changes."""
    PLANT = "plant"
    CAT = "cat"
    DOG = "dog"
    WOLF = "wolf"            # Legacy, kept for old saves
    DRAGON = "dragon"


class PetMood(str, Enum):
    ECSTATIC = "ecstatic"    # 90-100
    HAPPY = "happy"          # 70-89
    CONTENT = "content"      # 50-69
    SAD = "sad"              # 30-49
    UNHAPPY = "unhappy"      # 10-29
    MISERABLE = "miserable"  # 0-9


class EvolutionStage(str, Enum):
    BABY = "baby"            # Level 1-5
    CHILD = "child"          # Level 6-15
    TEEN = "teen"            # Level 16-30
    ADULT = "adult"          # Level 31+


class PetTreat(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class AccessoryCategory(str, Enum):
    HAT = "hat"
    BACKGROUND = "background"
    EFFECT = "effect"


class AccessoryRarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"


class UnlockKind(str, Enum):
    """Statistic a cosmetic unlock requirement is measured against."""
    LEVEL = "level"
    STREAK = "streak"        # highest streak, so a reset never re-locks
    WORKOUTS = "workouts"


class CharacterBackground(str, Enum):
    DEFAULT_DARK = "defaultDark"
    GYM = "gym"
    OUTDOOR = "outdoor"
    PREMIUM = "premium"


class QuestType(str, Enum):
    EARLY_BIRD = "early_bird"          # Workout before 9 AM
    NIGHT_OWL = "night_owl"            # Workout after 9 PM
    DOUBLE_DOWN = "double_down"        # 2 workouts today
    PET_CARE = "pet_care"              # Feed a treat
    STRENGTH_FOCUS = "strength_focus"
    CARDIO_FOCUS = "cardio_focus"
    STREAK_KEEPER = "streak_keeper"    # Any workout today
    HAPPY_PET = "happy_pet"            # Pet happiness >= 80
    PLAY_TIME = "play_time"            # Complete a play session


class QuestRewardType(str, Enum):
    XP = "xp"
    ESSENCE = "essence"


class QuestDifficulty(int, Enum):
    EASY = 1
    MEDIUM = 2
    HARD = 3


# =============================================================================
# XP
# =============================================================================

# Base XP for the built-in templates.
# Cardio = full session (120-225 XP), Strength = individual exercise (30-50 XP)
BASE_XP_VALUES: Dict[str, int] = {
    # Cardio
    "Run": 200,
    "Walk": 120,
    "Cycling": 175,
    "Swimming": 225,
    "Stair Climber": 200,
    # Chest
    "Barbell Bench Press": 45,
    "Dumbbell Bench Press": 40,
    "Incline Bench Press": 40,
    "Chest Fly": 35,
    # Back
    "Lat Pulldown": 40,
    "Seated Row": 40,
    "Pull-ups": 45,
    # Shoulders
    "Shoulder Press": 40,
    "Lateral Raises": 30,
    # Arms
    "Barbell Curl": 30,
    "Dumbbell Curl": 30,
    "Triceps Pushdown": 30,
    "Overhead Triceps Extension": 30,
    # Legs
    "Squats": 50,
    "Leg Press": 45,
    "Leg Extensions": 35,
    "Leg Curls": 35,
    "Lunges": 40,
    "Deadlift": 50,
    # Core
    "Plank": 30,
    "Cable Crunch": 30,
    "Russian Twists": 30,
}

CARDIO_TEMPLATES = {"Run", "Walk", "Cycling", "Swimming", "Stair Climber"}

# Custom / ad hoc workouts
DEFAULT_BASE_XP = 35

# Strength: multiplier = 1 + min(volume / divisor, cap)
STRENGTH_VOLUME_DIVISOR = 1000.0
STRENGTH_VOLUME_CAP = 2.0

# Cardio: multiplier = 1 + min/60 + kcal/1000 + steps/20000, capped
CARDIO_MINUTES_DIVISOR = 60.0
CARDIO_CALORIES_DIVISOR = 1000.0
CARDIO_STEPS_DIVISOR = 20000.0
CARDIO_MULTIPLIER_CAP = 5.0

FIRST_WORKOUT_OF_DAY_MULTIPLIER = 1.25

# (minimum streak, multiplier) - must start at 0 and never decrease
STREAK_MULTIPLIER_TIERS: List[Tuple[int, float]] = [
    (0, 1.0),
    (3, 1.1),
    (7, 1.25),
    (14, 1.5),
    (30, 2.0),
]

# =============================================================================
# LEVELS & RANKS
# =============================================================================

# XP required for level L (L > 1) = int(base * L ** exponent)
PLAYER_LEVEL_BASE = 100.0
PLAYER_LEVEL_EXPONENT = 1.8

RANK_MIN_LEVELS: Dict[PlayerRank, int] = {
    PlayerRank.BRONZE: 1,
    PlayerRank.SILVER: 11,
    PlayerRank.GOLD: 26,
    PlayerRank.PLATINUM: 51,
    PlayerRank.DIAMOND: 101,
}

RANK_ORDER: List[PlayerRank] = [
    PlayerRank.BRONZE,
    PlayerRank.SILVER,
    PlayerRank.GOLD,
    PlayerRank.PLATINUM,
    PlayerRank.DIAMOND,
]

MILESTONE_LEVELS: List[int] = [5, 10, 15, 20, 25, 30, 40, 50, 75, 100]

# =============================================================================
# STREAKS
# =============================================================================

MAX_REST_DAYS_PER_WEEK = 2
DEFAULT_WEEKLY_WORKOUT_GOAL = 3

# =============================================================================
# PET
# =============================================================================

# 33.33 per day: a full-happiness pet leaves after three days of neglect
PASSIVE_DECAY_PER_DAY = 33.33
WORKOUT_HAPPINESS_BOOST = 15.0
MIN_HAPPINESS = 0.0
MAX_HAPPINESS = 100.0
RECOVERY_HAPPINESS = 50.0
ESSENCE_RECOVERY_COST = 150
RECOVERY_WORKOUTS_REQUIRED = 3
RECOVERY_WINDOW_DAYS = 7

HAPPINESS_BONUS_THRESHOLD = 90.0
HAPPINESS_XP_MULTIPLIER = 1.10

PET_LEVEL_BASE = 120.0
PET_LEVEL_EXPONENT = 1.7

STAGE_MIN_LEVELS: Dict[EvolutionStage, int] = {
    EvolutionStage.BABY: 1,
    EvolutionStage.CHILD: 6,
    EvolutionStage.TEEN: 16,
    EvolutionStage.ADULT: 31,
}

STAGE_ORDER: List[EvolutionStage] = [
    EvolutionStage.BABY,
    EvolutionStage.CHILD,
    EvolutionStage.TEEN,
    EvolutionStage.ADULT,
]

# Lower bound (inclusive) of each mood band, highest first
MOOD_THRESHOLDS: List[Tuple[float, PetMood]] = [
    (90.0, PetMood.ECSTATIC),
    (70.0, PetMood.HAPPY),
    (50.0, PetMood.CONTENT),
    (30.0, PetMood.SAD),
    (10.0, PetMood.UNHAPPY),
]

TREATS: Dict[PetTreat, Dict[str, float]] = {
    PetTreat.SMALL: {"cost": 10, "happiness_boost": 5.0},
    PetTreat.MEDIUM: {"cost": 25, "happiness_boost": 15.0},
    PetTreat.LARGE: {"cost": 50, "happiness_boost": 30.0},
}

# Bonus fraction per workout type at level 1, plus growth per level above 1.
# A zero bonus means the species gives no boost for that type.
SPECIES_BONUSES: Dict[PetSpecies, Dict[str, float]] = {
    PetSpecies.DRAGON: {"strength": 0.05, "cardio": 0.0, "per_level": 0.005},
    PetSpecies.CAT: {"strength": 0.0, "cardio": 0.05, "per_level": 0.005},
    PetSpecies.WOLF: {"strength": 0.0, "cardio": 0.05, "per_level": 0.005},
    PetSpecies.DOG: {"strength": 0.035, "cardio": 0.035, "per_level": 0.0035},
    PetSpecies.PLANT: {"strength": 0.025, "cardio": 0.025, "per_level": 0.0025},
}

TAPS_PER_PLAY_SESSION = 5
MAX_PLAY_SESSIONS_PER_DAY = 3
HAPPINESS_PER_PLAY_SESSION = 5.0

# =============================================================================
# ECONOMY
# =============================================================================

ESSENCE_PER_XP = 10

RARITY_PRICE_MULTIPLIERS: Dict[AccessoryRarity, float] = {
    AccessoryRarity.COMMON: 1.0,
    AccessoryRarity.RARE: 2.5,
    AccessoryRarity.LEGENDARY: 5.0,
}

ACCESSORY_CATALOG: List[Dict[str, object]] = [
    # Hats
    {"id": "hat_crown", "name": "Crown", "category": "hat", "rarity": "common", "base_cost": 50},
    {"id": "hat_party", "name": "Party Hat", "category": "hat", "rarity": "common", "base_cost": 50},
    {"id": "hat_star", "name": "Star Cap", "category": "hat", "rarity": "common", "base_cost": 50},
    {"id": "hat_wizard", "name": "Wizard Hat", "category": "hat", "rarity": "rare", "base_cost": 75},
    {"id": "hat_headband", "name": "Fitness Headband", "category": "hat", "rarity": "rare", "base_cost": 75},
    {"id": "hat_halo", "name": "Golden Halo", "category": "hat", "rarity": "legendary", "base_cost": 100},
    # Backgrounds
    {"id": "bg_gradient_blue", "name": "Ocean Wave", "category": "background", "rarity": "common", "base_cost": 40},
    {"id": "bg_gradient_green", "name": "Forest", "category": "background", "rarity": "common", "base_cost": 40},
    {"id": "bg_gradient_purple", "name": "Twilight", "category": "background", "rarity": "common", "base_cost": 40},
    {"id": "bg_gradient_fire", "name": "Inferno", "category": "background", "rarity": "rare", "base_cost": 60},
    {"id": "bg_gradient_rainbow", "name": "Rainbow", "category": "background", "rarity": "rare", "base_cost": 60},
    {"id": "bg_gradient_gold", "name": "Golden Hour", "category": "background", "rarity": "legendary", "base_cost": 80},
    # Effects
    {"id": "effect_hearts", "name": "Floating Hearts", "category": "effect", "rarity": "common", "base_cost": 60},
    {"id": "effect_stars", "name": "Twinkling Stars", "category": "effect", "rarity": "common", "base_cost": 60},
    {"id": "effect_fire", "name": "Fire Aura", "category": "effect", "rarity": "rare", "base_cost": 80},
    {"id": "effect_sparkle", "name": "Magic Sparkles", "category": "effect", "rarity": "rare", "base_cost": 80},
    {"id": "effect_lightning", "name": "Thunder Aura", "category": "effect", "rarity": "legendary", "base_cost": 100},
]

# =============================================================================
# UNLOCKS
# =============================================================================

# Cosmetic key "category:index" -> (statistic, threshold)
UNLOCK_REQUIREMENTS: Dict[str, Tuple[UnlockKind, int]] = {
    "hairStyle:5": (UnlockKind.LEVEL, 10),
    "hairStyle:6": (UnlockKind.LEVEL, 15),
    "hairColor:6": (UnlockKind.LEVEL, 20),   # Purple hair
    "hairColor:7": (UnlockKind.LEVEL, 25),   # Blue hair
    "headwear:1": (UnlockKind.LEVEL, 5),
    "headwear:2": (UnlockKind.LEVEL, 10),
    "headwear:3": (UnlockKind.LEVEL, 20),
    "top:3": (UnlockKind.STREAK, 7),
    "accessory:1": (UnlockKind.LEVEL, 15),
    "accessory:2": (UnlockKind.WORKOUTS, 50),
}

# None = always available
BACKGROUND_UNLOCK_RANKS: Dict[CharacterBackground, object] = {
    CharacterBackground.DEFAULT_DARK: None,
    CharacterBackground.GYM: PlayerRank.SILVER,
    CharacterBackground.OUTDOOR: PlayerRank.GOLD,
    CharacterBackground.PREMIUM: PlayerRank.PLATINUM,
}

EARLY_BIRD_BEFORE_HOUR = 9
NIGHT_OWL_FROM_HOUR = 21

# =============================================================================
# DAILY QUESTS
# =============================================================================

QUESTS_PER_DAY = 3
HAPPY_PET_QUEST_THRESHOLD = 80.0

# quest -> (reward type, reward amount, progress target, difficulty)
QUEST_DEFINITIONS: Dict[QuestType, Tuple[QuestRewardType, int, int, QuestDifficulty]] = {
    QuestType.EARLY_BIRD: (QuestRewardType.XP, 50, 1, QuestDifficulty.MEDIUM),
    QuestType.NIGHT_OWL: (QuestRewardType.XP, 50, 1, QuestDifficulty.MEDIUM),
    QuestType.DOUBLE_DOWN: (QuestRewardType.ESSENCE, 30, 2, QuestDifficulty.HARD),
    QuestType.PET_CARE: (QuestRewardType.ESSENCE, 20, 1, QuestDifficulty.EASY),
    QuestType.STRENGTH_FOCUS: (QuestRewardType.XP, 40, 1, QuestDifficulty.MEDIUM),
    QuestType.CARDIO_FOCUS: (QuestRewardType.XP, 40, 1, QuestDifficulty.MEDIUM),
    QuestType.STREAK_KEEPER: (QuestRewardType.XP, 25, 1, QuestDifficulty.EASY),
    QuestType.HAPPY_PET: (QuestRewardType.ESSENCE, 25, 1, QuestDifficulty.MEDIUM),
    QuestType.PLAY_TIME: (QuestRewardType.ESSENCE, 15, 1, QuestDifficulty.EASY),
}

"""
Unlock Evaluator

Decides which cosmetic unlock keys ("category:index", e.g. "hairStyle:5")
a player has earned, which achievements are complete and which character
backgrounds the player's rank opens.

The requirement table is typed data (ProgressionRules.unlocks.requirements),
each entry compiled into a predicate over UnlockStats. Evaluation is pure and
idempotent; callers union the result into what the player already owns, so
an unlock is never revoked. Streak requirements use the HIGHEST streak for
the same reason: breaking a streak must not re-lock anything.
"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from core.clock import local_hour
from models import Player
from services.constants import CharacterBackground, PlayerRank, UnlockKind
from services.level_resolver import level_for, rank_index
from services.rules import ProgressionRules, UnlockRequirement, get_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockStats:
    level: int
    highest_streak: int
    workout_count: int


def _stat_for(kind: UnlockKind, stats: UnlockStats) -> int:
    if kind == UnlockKind.LEVEL:
        return stats.level
    if kind == UnlockKind.STREAK:
        return stats.highest_streak
    return stats.workout_count


def compile_requirement(requirement: UnlockRequirement) -> Callable[[UnlockStats], bool]:
    """Turn one table entry into a predicate over UnlockStats."""
    kind = requirement.kind
    threshold = requirement.threshold
    return lambda stats: _stat_for(kind, stats) >= threshold


def compile_requirements(rules: Optional[ProgressionRules] = None) -> Dict[str, Callable[[UnlockStats], bool]]:
    rules = rules or get_rules()
    return {key: compile_requirement(req) for key, req in rules.unlocks.requirements.items()}


def evaluate_stats(
    stats: UnlockStats,
    already_unlocked: Iterable[str] = (),
    rules: Optional[ProgressionRules] = None,
) -> FrozenSet[str]:
    """Keys whose requirement `stats` satisfy and that are not already owned."""
    owned = set(already_unlocked)
    satisfied = {
        key for key, predicate in compile_requirements(rules).items()
        if key not in owned and predicate(stats)
    }
    return frozenset(satisfied)


def evaluate(
    level: int,
    highest_streak: int,
    workout_count: int,
    already_unlocked: Iterable[str] = (),
    rules: Optional[ProgressionRules] = None,
) -> FrozenSet[str]:
    """
    Newly satisfied cosmetic unlock keys.

    Args:
        level: Current player level
        highest_streak: Best daily streak ever reached
        workout_count: Total workouts logged
        already_unlocked: Keys the player owns (excluded from the result)

    Returns:
        Frozen set of keys to add; empty when nothing new qualifies
    """
    stats = UnlockStats(level=level, highest_streak=highest_streak, workout_count=workout_count)
    return evaluate_stats(stats, already_unlocked, rules)


def is_unlocked(key: str, stats: UnlockStats, rules: Optional[ProgressionRules] = None) -> bool:
    """Whether `key` is available. Keys without a requirement are always free."""
    rules = rules or get_rules()
    requirement = rules.unlocks.requirements.get(key)
    if requirement is None:
        return True
    return compile_requirement(requirement)(stats)


def requirement_text(key: str, rules: Optional[ProgressionRules] = None) -> Optional[str]:
    rules = rules or get_rules()
    requirement = rules.unlocks.requirements.get(key)
    if requirement is None:
        return None
    if requirement.kind == UnlockKind.LEVEL:
        return f"Reach Level {requirement.threshold}"
    if requirement.kind == UnlockKind.STREAK:
        return f"{requirement.threshold}-day streak"
    return f"{requirement.threshold} total workouts"


# =============================================================================
# ACHIEVEMENTS
# =============================================================================

@dataclass(frozen=True)
class AchievementStats:
    workout_count: int
    highest_streak: int
    total_xp: int
    level: int
    has_early_workout: bool = False
    has_late_workout: bool = False


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    is_earned: Callable[[AchievementStats], bool]


ACHIEVEMENTS: List[Achievement] = [
    Achievement("first_steps", "First Steps", "Complete your first workout",
                lambda s: s.workout_count >= 1),
    Achievement("week_warrior", "Week Warrior", "Maintain a 7-day streak",
                lambda s: s.highest_streak >= 7),
    Achievement("dedicated", "Dedicated", "Maintain a 14-day streak",
                lambda s: s.highest_streak >= 14),
    Achievement("unstoppable", "Unstoppable", "Maintain a 30-day streak",
                lambda s: s.highest_streak >= 30),
    Achievement("century", "Century", "Complete 100 workouts",
                lambda s: s.workout_count >= 100),
    Achievement("xp_hunter", "XP Hunter", "Earn 10,000 total XP",
                lambda s: s.total_xp >= 10000),
    Achievement("level_10", "Rising Star", "Reach level 10",
                lambda s: s.level >= 10),
    Achievement("level_25", "Champion", "Reach level 25",
                lambda s: s.level >= 25),
    Achievement("level_50", "Legend", "Reach level 50",
                lambda s: s.level >= 50),
    Achievement("early_bird", "Early Bird", "Complete a workout before 9 AM",
                lambda s: s.has_early_workout),
    Achievement("night_owl", "Night Owl", "Complete a workout after 9 PM",
                lambda s: s.has_late_workout),
]

_ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def get_achievement(achievement_id: str) -> Optional[Achievement]:
    return _ACHIEVEMENTS_BY_ID.get(achievement_id)


def achievement_stats_for(
    player: Player,
    tz: tzinfo,
    rules: Optional[ProgressionRules] = None,
) -> AchievementStats:
    """Collect achievement inputs from a player's log, hours in local time."""
    rules = rules or get_rules()
    hours = [local_hour(w.timestamp, tz) for w in player.workouts]
    return AchievementStats(
        workout_count=player.workout_count,
        highest_streak=player.highest_streak,
        total_xp=player.total_xp,
        level=level_for(player.total_xp, rules),
        has_early_workout=any(h < rules.unlocks.early_bird_before_hour for h in hours),
        has_late_workout=any(h >= rules.unlocks.night_owl_from_hour for h in hours),
    )


def evaluate_achievements(stats: AchievementStats, already_earned: Iterable[str] = ()) -> FrozenSet[str]:
    """Achievement ids newly earned; previously earned ones are never revoked."""
    earned = set(already_earned)
    return frozenset(a.id for a in ACHIEVEMENTS if a.id not in earned and a.is_earned(stats))


# =============================================================================
# BACKGROUNDS
# =============================================================================

def background_required_rank(
    background: CharacterBackground,
    rules: Optional[ProgressionRules] = None,
) -> Optional[PlayerRank]:
    rules = rules or get_rules()
    return rules.unlocks.background_ranks.get(CharacterBackground(background))


def background_unlocked(
    background: CharacterBackground,
    rank: PlayerRank,
    rules: Optional[ProgressionRules] = None,
) -> bool:
    required = background_required_rank(background, rules)
    if required is None:
        return True
    return rank_index(rank) >= rank_index(required)


def unlocked_backgrounds(rank: PlayerRank, rules: Optional[ProgressionRules] = None) -> List[CharacterBackground]:
    return [bg for bg in CharacterBackground if background_unlocked(bg, rank, rules)]

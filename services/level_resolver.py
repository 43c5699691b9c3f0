"""
Level/Rank Resolver

Maps cumulative XP to a level and a level to a rank tier.

Level curve (cumulative XP needed to reach a level):
    xp_required_for(1) = 0
    xp_required_for(L) = int(100 * L ** 1.8)   for L > 1

Ranks:
    Bronze 1-10, Silver 11-25, Gold 26-50, Platinum 51-100, Diamond 101+

Level-ups, rank-ups and milestones are detected by comparing the resolver's
output before and after an XP change; nothing here keeps state.
"""

import logging
from typing import List, Optional, Tuple

from services.constants import PlayerRank, RANK_ORDER
from services.rules import LevelCurve, ProgressionRules, get_rules

logger = logging.getLogger(__name__)


def curve_xp_required(curve: LevelCurve, level: int) -> int:
    """Cumulative XP for `level` on an arbitrary curve (shared with pets)."""
    if level <= 1:
        return 0
    return int(curve.base * level ** curve.exponent)


def curve_level_for(curve: LevelCurve, total_xp: int) -> int:
    """Largest level whose requirement is <= total_xp. Always >= 1."""
    if total_xp <= 0:
        return 1
    # Closed-form estimate, then correct for truncation either way
    level = max(1, int((total_xp / curve.base) ** (1.0 / curve.exponent)))
    while level > 1 and curve_xp_required(curve, level) > total_xp:
        level -= 1
    while curve_xp_required(curve, level + 1) <= total_xp:
        level += 1
    return level


def xp_required_for(level: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return curve_xp_required(rules.levels.curve, level)


def level_for(total_xp: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return curve_level_for(rules.levels.curve, total_xp)


def xp_range_for(level: int, rules: Optional[ProgressionRules] = None) -> Tuple[int, int]:
    """Half-open XP interval [start, end) that maps to `level`."""
    rules = rules or get_rules()
    level = max(1, level)
    return xp_required_for(level, rules), xp_required_for(level + 1, rules)


def progress_for(total_xp: int, rules: Optional[ProgressionRules] = None) -> float:
    """Fraction of the current level completed, in [0, 1)."""
    rules = rules or get_rules()
    start, end = xp_range_for(level_for(total_xp, rules), rules)
    needed = end - start
    if needed <= 0:
        return 0.0
    return (max(total_xp, 0) - start) / needed


def xp_to_next_level(total_xp: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    _, end = xp_range_for(level_for(total_xp, rules), rules)
    return end - max(total_xp, 0)


def rank_for(level: int, rules: Optional[ProgressionRules] = None) -> PlayerRank:
    rules = rules or get_rules()
    bands = rules.levels.rank_min_levels
    current = PlayerRank.BRONZE
    for rank in RANK_ORDER:
        if level >= bands[rank]:
            current = rank
    return current


def rank_min_level(rank: PlayerRank, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return rules.levels.rank_min_levels[PlayerRank(rank)]


def next_rank(rank: PlayerRank) -> Optional[PlayerRank]:
    """The tier after `rank`, or None at Diamond."""
    idx = RANK_ORDER.index(PlayerRank(rank))
    if idx + 1 < len(RANK_ORDER):
        return RANK_ORDER[idx + 1]
    return None


def rank_index(rank: PlayerRank) -> int:
    return RANK_ORDER.index(PlayerRank(rank))


def milestone_levels(rules: Optional[ProgressionRules] = None) -> List[int]:
    rules = rules or get_rules()
    return list(rules.levels.milestone_levels)


def is_milestone(level: int, rules: Optional[ProgressionRules] = None) -> bool:
    rules = rules or get_rules()
    return level in rules.levels.milestone_levels


def milestones_crossed(
    old_level: int,
    new_level: int,
    rules: Optional[ProgressionRules] = None,
) -> List[int]:
    """Milestone levels in (old_level, new_level], ascending."""
    rules = rules or get_rules()
    return [m for m in rules.levels.milestone_levels if old_level < m <= new_level]

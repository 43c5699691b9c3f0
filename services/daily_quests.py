"""
Daily Quests

Three small goals per local day, drawn from a fixed pool:

    Quest           Goal                          Reward       Difficulty
    early_bird      workout before 9 AM           50 XP        medium
    night_owl       workout after 9 PM            50 XP        medium
    double_down     2 workouts today              30 essence   hard
    pet_care        feed a treat                  20 essence   easy
    strength_focus  a strength workout            40 XP        medium
    cardio_focus    a cardio workout              40 XP        medium
    streak_keeper   any workout                   25 XP        easy
    happy_pet       pet happiness >= 80           25 essence   medium
    play_time       finish a play session         15 essence   easy

Selection takes one quest per difficulty first, then fills the remaining
slots at random. Completed quests are claimed once; XP rewards feed the pet
(or the player when there is no pet), essence rewards go to the balance.
"""

import logging
import random
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Optional, Tuple

from core.clock import local_date, local_hour
from core.exceptions import QuestNotClaimable, UnknownItem
from models import DailyQuest, Player, Workout
from services.constants import QuestDifficulty, QuestRewardType, QuestType, WorkoutType
from services.economy_ledger import credit
from services.rules import ProgressionRules, get_rules

logger = logging.getLogger(__name__)

QUEST_DESCRIPTIONS = {
    QuestType.EARLY_BIRD: "Complete a workout before 9 AM",
    QuestType.NIGHT_OWL: "Complete a workout after 9 PM",
    QuestType.DOUBLE_DOWN: "Complete 2 workouts today",
    QuestType.PET_CARE: "Feed your pet a treat",
    QuestType.STRENGTH_FOCUS: "Complete a strength workout",
    QuestType.CARDIO_FOCUS: "Complete a cardio workout",
    QuestType.STREAK_KEEPER: "Log any workout today",
    QuestType.HAPPY_PET: "Get your pet's happiness to 80%",
    QuestType.PLAY_TIME: "Play with your pet",
}


def new_quest(quest_type: QuestType, today: date, rules: Optional[ProgressionRules] = None) -> DailyQuest:
    rules = rules or get_rules()
    definition = rules.quests.definitions[QuestType(quest_type)]
    return DailyQuest(
        quest_type=QuestType(quest_type),
        reward_type=definition.reward_type,
        reward_amount=definition.reward_amount,
        difficulty=definition.difficulty,
        target=definition.target,
        assigned_on=today,
    )


def generate_daily_quests(
    today: date,
    rng: Optional[random.Random] = None,
    excluding: Iterable[QuestType] = (),
    rules: Optional[ProgressionRules] = None,
) -> List[DailyQuest]:
    """
    Pick the day's quests.

    Args:
        today: Local date the quests belong to
        rng: Random source (inject a seeded one for reproducible picks)
        excluding: Quest types to leave out

    Returns:
        Up to quests_per_day quests, fewer if the pool runs out
    """
    rules = rules or get_rules()
    rng = rng or random.Random()
    excluded = {QuestType(q) for q in excluding}
    available = [q for q in rules.quests.definitions if q not in excluded]
    per_day = rules.quests.quests_per_day
    selected: List[QuestType] = []

    # Try to get a mix of difficulties
    for difficulty in (QuestDifficulty.EASY, QuestDifficulty.MEDIUM, QuestDifficulty.HARD):
        if len(selected) >= per_day:
            break
        matching = [q for q in available if rules.quests.definitions[q].difficulty == difficulty]
        if matching:
            quest = rng.choice(matching)
            selected.append(quest)
            available.remove(quest)

    while len(selected) < per_day and available:
        quest = rng.choice(available)
        selected.append(quest)
        available.remove(quest)

    return [new_quest(q, today, rules) for q in selected]


def should_refresh(last_refresh: Optional[date], today: date) -> bool:
    return last_refresh is None or last_refresh != today


def refresh_if_needed(
    player: Player,
    today: date,
    rng: Optional[random.Random] = None,
    rules: Optional[ProgressionRules] = None,
) -> bool:
    """
    Replace the player's quests when the day has changed.

    Yesterday's quest types are skipped when the pool is big enough to still
    fill every slot.

    Returns:
        True if a new set was generated
    """
    rules = rules or get_rules()
    if not should_refresh(player.quests_refreshed_on, today):
        return False

    previous = {q.quest_type for q in player.daily_quests}
    pool_left = len(rules.quests.definitions) - len(previous)
    excluding = previous if pool_left >= rules.quests.quests_per_day else ()

    player.daily_quests = generate_daily_quests(today, rng, excluding, rules)
    player.quests_refreshed_on = today
    logger.debug(f"New daily quests for {player.id}: {[q.quest_type.value for q in player.daily_quests]}")
    return True


# =============================================================================
# PROGRESS
# =============================================================================

def _mark_complete(quest: DailyQuest):
    quest.progress = quest.target
    quest.is_completed = True


def _advance(quest: DailyQuest):
    quest.progress = min(quest.target, quest.progress + 1)
    if quest.progress >= quest.target:
        quest.is_completed = True


def _open_quests(quests: Iterable[DailyQuest], today: date) -> List[DailyQuest]:
    return [q for q in quests if not q.is_completed and q.assigned_on == today]


def progress_on_workout(
    quests: Iterable[DailyQuest],
    workout: Workout,
    today: date,
    tz: tzinfo,
    rules: Optional[ProgressionRules] = None,
) -> List[DailyQuest]:
    """Advance quests for a logged workout. Returns quests completed by it."""
    rules = rules or get_rules()
    hour = local_hour(workout.timestamp, tz)
    completed = []

    for quest in _open_quests(quests, today):
        qt = quest.quest_type
        if qt == QuestType.EARLY_BIRD and hour < rules.unlocks.early_bird_before_hour:
            _mark_complete(quest)
        elif qt == QuestType.NIGHT_OWL and hour >= rules.unlocks.night_owl_from_hour:
            _mark_complete(quest)
        elif qt == QuestType.DOUBLE_DOWN:
            _advance(quest)
        elif qt == QuestType.STRENGTH_FOCUS and workout.workout_type == WorkoutType.STRENGTH:
            _mark_complete(quest)
        elif qt == QuestType.CARDIO_FOCUS and workout.workout_type == WorkoutType.CARDIO:
            _mark_complete(quest)
        elif qt == QuestType.STREAK_KEEPER:
            _mark_complete(quest)

        if quest.is_completed:
            completed.append(quest)
    return completed


def _progress_simple(quests: Iterable[DailyQuest], quest_type: QuestType, today: date) -> List[DailyQuest]:
    completed = []
    for quest in _open_quests(quests, today):
        if quest.quest_type == quest_type:
            _mark_complete(quest)
            completed.append(quest)
    return completed


def progress_on_treat(quests: Iterable[DailyQuest], today: date) -> List[DailyQuest]:
    return _progress_simple(quests, QuestType.PET_CARE, today)


def progress_on_play(quests: Iterable[DailyQuest], today: date) -> List[DailyQuest]:
    return _progress_simple(quests, QuestType.PLAY_TIME, today)


def progress_on_happiness(
    quests: Iterable[DailyQuest],
    happiness: float,
    today: date,
    rules: Optional[ProgressionRules] = None,
) -> List[DailyQuest]:
    rules = rules or get_rules()
    if happiness < rules.quests.happy_pet_threshold:
        return []
    return _progress_simple(quests, QuestType.HAPPY_PET, today)


# =============================================================================
# REWARDS
# =============================================================================

def find_quest(player: Player, quest_id: str) -> DailyQuest:
    for quest in player.daily_quests:
        if quest.id == quest_id:
            return quest
    raise UnknownItem("Quest", quest_id)


def claim_reward(player: Player, quest: DailyQuest) -> Tuple[QuestRewardType, int]:
    """
    Pay out a completed quest exactly once.

    Returns:
        (reward type, amount) credited

    Raises:
        QuestNotClaimable: Quest not completed, or already claimed
    """
    if not quest.is_completed:
        raise QuestNotClaimable(f"Quest {quest.quest_type.value} is not complete")
    if quest.is_claimed:
        raise QuestNotClaimable(f"Quest {quest.quest_type.value} was already claimed")

    if quest.reward_type == QuestRewardType.ESSENCE:
        credit(player, quest.reward_amount)
    elif player.pet is not None:
        player.pet.total_xp += quest.reward_amount
    else:
        player.total_xp += quest.reward_amount

    quest.is_claimed = True
    logger.info(f"Player {player.id} claimed {quest.quest_type.value}: {quest.reward_amount} {quest.reward_type.value}")
    return quest.reward_type, quest.reward_amount


def describe(quest: DailyQuest) -> str:
    return QUEST_DESCRIPTIONS.get(quest.quest_type, quest.quest_type.value)


def is_expired(quest: DailyQuest, now: datetime, tz: tzinfo) -> bool:
    return quest.assigned_on != local_date(now, tz)

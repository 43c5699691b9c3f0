"""
Progression Engine

Facade over the calculators for one player aggregate. Each public method is
one user action (log a workout, feed a treat, buy an accessory, ...); it
refreshes time-dependent state, applies the rules, and returns a result
object describing what happened.

Domain failures never escape as exceptions: they come back as the `error`
of the result (an EngineError subclass) with the aggregate unchanged.
Notable changes (level up, evolution, pet left, unlocks, ...) come back as
EngineEvent values in `events`; the engine itself never notifies anyone.

Usage:
    engine = ProgressionEngine(clock=SystemClock("Europe/London"))
    outcome = engine.log_workout(
        player, WorkoutType.STRENGTH, name="Squats",
        strength=StrengthMetrics(weight=100, reps=5, sets=5),
    )
    if outcome.ok:
        publish(outcome.events)
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, FrozenSet, List, Optional

from core.clock import Clock, SystemClock, ensure_aware, local_date
from core.events import (
    EngineEvent,
    EVENT_ACHIEVEMENT_EARNED,
    EVENT_PET_EVOLVED,
    EVENT_PET_LEFT,
    EVENT_PET_LEVEL_UP,
    EVENT_PET_RECOVERED,
    EVENT_PLAYER_LEVEL_UP,
    EVENT_PLAYER_MILESTONE,
    EVENT_PLAYER_RANK_UP,
    EVENT_QUEST_COMPLETED,
    EVENT_UNLOCK_GRANTED,
    EVENT_WEEKLY_GOAL_MET,
)
from core.exceptions import EngineError, NoPet, PetAway
from models import CardioMetrics, DailyQuest, Pet, Player, StrengthMetrics, Workout, WorkoutTemplate
from services import daily_quests, economy_ledger, level_resolver, streak_tracker, unlock_evaluator
from services import pet_sim
from services.constants import PetSpecies, PetTreat, QuestRewardType, WorkoutType
from services.pet_sim import TapOutcome, TapResult
from services.rules import ProgressionRules, get_rules
from services.streak_tracker import StreakUpdate
from services.xp_calculator import base_xp_for, compute_xp

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Outcome of a non-workout action."""
    ok: bool
    error: Optional[EngineError] = None
    value: Any = None
    events: List[EngineEvent] = field(default_factory=list)


@dataclass
class WorkoutOutcome:
    """Everything that changed because of one logged workout."""
    ok: bool
    error: Optional[EngineError] = None
    workout: Optional[Workout] = None
    xp_earned: int = 0
    essence_earned: int = 0
    pet_xp_earned: int = 0
    streak: Optional[StreakUpdate] = None
    level_before: int = 1
    level_after: int = 1
    new_unlocks: FrozenSet[str] = frozenset()
    new_achievements: FrozenSet[str] = frozenset()
    completed_quests: List[DailyQuest] = field(default_factory=list)
    events: List[EngineEvent] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level_after > self.level_before


class ProgressionEngine:
    """
    Applies the progression rules to Player aggregates.

    Single writer per player: callers must not run two actions on the same
    player concurrently.
    """

    def __init__(
        self,
        rules: Optional[ProgressionRules] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.rules = rules or get_rules()
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _now(self) -> datetime:
        return ensure_aware(self.clock.now(), self.clock.tz)

    def _today(self):
        return local_date(self._now(), self.clock.tz)

    def _run(self, action: str, fn: Callable[[List[EngineEvent]], Any]) -> ActionResult:
        events: List[EngineEvent] = []
        try:
            value = fn(events)
        except EngineError as e:
            logger.info(f"{action} refused: {e.error_code} {e.detail}")
            return ActionResult(ok=False, error=e, events=events)
        return ActionResult(ok=True, value=value, events=events)

    def _player_growth_events(self, player: Player, xp_before: int) -> List[EngineEvent]:
        rules = self.rules
        level_before = level_resolver.level_for(xp_before, rules)
        level_after = level_resolver.level_for(player.total_xp, rules)
        if level_after <= level_before:
            return []

        events = [EngineEvent(EVENT_PLAYER_LEVEL_UP, {
            "player_id": player.id, "from_level": level_before, "to_level": level_after,
        })]
        rank_before = level_resolver.rank_for(level_before, rules)
        rank_after = level_resolver.rank_for(level_after, rules)
        if rank_after != rank_before:
            events.append(EngineEvent(EVENT_PLAYER_RANK_UP, {
                "player_id": player.id, "from_rank": rank_before.value, "to_rank": rank_after.value,
            }))
        for milestone in level_resolver.milestones_crossed(level_before, level_after, rules):
            events.append(EngineEvent(EVENT_PLAYER_MILESTONE, {"player_id": player.id, "level": milestone}))
        return events

    def _pet_growth_events(self, pet: Pet, xp_before: int) -> List[EngineEvent]:
        rules = self.rules
        level_before = pet_sim.pet_level_for(xp_before, rules)
        level_after = pet_sim.pet_level_for(pet.total_xp, rules)
        if level_after <= level_before:
            return []

        events = [EngineEvent(EVENT_PET_LEVEL_UP, {
            "pet_id": pet.id, "from_level": level_before, "to_level": level_after,
        })]
        stage_before = pet_sim.stage_for(level_before, rules)
        stage_after = pet_sim.stage_for(level_after, rules)
        if stage_after != stage_before:
            events.append(EngineEvent(EVENT_PET_EVOLVED, {
                "pet_id": pet.id, "from_stage": stage_before.value, "to_stage": stage_after.value,
            }))
        return events

    def _refresh_pet(self, player: Player, now: datetime, events: List[EngineEvent]):
        pet = player.pet
        if pet is None:
            return
        if pet_sim.apply_passive_decay(pet, now, self.rules):
            events.append(EngineEvent(EVENT_PET_LEFT, {"pet_id": pet.id, "at": now.isoformat()}))

    def _quest_events(self, player: Player, quests: List[DailyQuest]) -> List[EngineEvent]:
        return [
            EngineEvent(EVENT_QUEST_COMPLETED, {
                "player_id": player.id,
                "quest_id": q.id,
                "quest_type": q.quest_type.value,
                "reward_type": q.reward_type.value,
                "reward_amount": q.reward_amount,
            })
            for q in quests
        ]

    def _require_pet(self, player: Player, action: str) -> Pet:
        if player.pet is None:
            raise NoPet(action)
        return player.pet

    def _happy_pet_progress(self, player: Player, events: List[EngineEvent]):
        if player.pet is None or player.pet.is_away:
            return
        completed = daily_quests.progress_on_happiness(
            player.daily_quests, player.pet.happiness, self._today(), self.rules,
        )
        events.extend(self._quest_events(player, completed))

    # =========================================================================
    # PLAYERS
    # =========================================================================

    def create_player(self, name: str = "") -> Player:
        """New player seeded with the configured weekly workout goal."""
        player = Player(name=name, weekly_workout_goal=self.rules.streaks.default_weekly_goal)
        logger.info(f"Created player {player.id}")
        return player

    # =========================================================================
    # PET LIFECYCLE
    # =========================================================================

    def adopt_pet(self, player: Player, name: str, species: PetSpecies) -> Pet:
        """Give the player a new pet (replacing any previous one)."""
        pet = Pet(name=name, species=PetSpecies(species), last_happiness_update_at=self._now())
        player.pet = pet
        logger.info(f"Player {player.id} adopted a {pet.species.value} named {name}")
        return pet

    def refresh_pet(self, player: Player) -> ActionResult:
        """Bring pet happiness up to date. value = happiness after decay."""
        def action(events):
            pet = self._require_pet(player, "refresh pet")
            self._refresh_pet(player, self._now(), events)
            return pet.happiness
        return self._run("refresh_pet", action)

    # =========================================================================
    # WORKOUTS
    # =========================================================================

    def log_workout(
        self,
        player: Player,
        workout_type: WorkoutType,
        name: str = "",
        template: Optional[WorkoutTemplate] = None,
        strength: Optional[StrengthMetrics] = None,
        cardio: Optional[CardioMetrics] = None,
        at: Optional[datetime] = None,
    ) -> WorkoutOutcome:
        """
        Record a workout and apply every consequence.

        Args:
            player: Aggregate to update
            workout_type: strength or cardio
            name: Workout name, used for base XP when no template is given
            template: Template supplying the base XP
            strength: Strength metrics
            cardio: Cardio metrics
            at: When the workout happened (defaults to now)

        Returns:
            WorkoutOutcome; on invalid input ok=False and nothing changed
        """
        rules = self.rules
        tz = self.clock.tz
        now = self._now()
        at = ensure_aware(at, tz) if at is not None else now
        today = local_date(now, tz)

        # Validate and price the workout before anything is mutated
        try:
            workout_type = WorkoutType(workout_type)
            if template is not None:
                base_xp = template.base_xp
                name = name or template.name
            else:
                base_xp = base_xp_for(name or None, rules)

            update = streak_tracker.track_workout(
                player.current_streak, player.highest_streak, player.last_workout_date, at, tz,
            )
            xp = compute_xp(
                base_xp, workout_type, update.current_streak, update.is_first_workout_of_day,
                strength=strength, cardio=cardio, rules=rules,
            )
        except EngineError as e:
            logger.info(f"log_workout refused: {e.error_code} {e.detail}")
            return WorkoutOutcome(ok=False, error=e)
        except ValueError as e:
            error = EngineError(str(e), error_code="INVALID_WORKOUT")
            return WorkoutOutcome(ok=False, error=error)

        events: List[EngineEvent] = []
        pet = player.pet

        # Decay up to now, then read the happiness bonus before any boost
        self._refresh_pet(player, now, events)
        happiness_multiplier = 1.0
        if pet is not None:
            happiness_multiplier = pet_sim.happiness_xp_multiplier(pet.happiness, rules)

        workout = Workout(
            workout_type=workout_type,
            timestamp=at,
            xp_earned=xp,
            name=name,
            strength=strength,
            cardio=cardio,
            template_id=template.id if template is not None else None,
        )
        player.workouts.append(workout)

        player.current_streak = update.current_streak
        player.highest_streak = update.highest_streak
        player.last_workout_date = update.last_workout_date

        xp_before = player.total_xp
        level_before = level_resolver.level_for(xp_before, rules)
        player.total_xp += xp
        essence = economy_ledger.essence_for_xp(xp, rules)
        economy_ledger.credit(player, essence)
        events.extend(self._player_growth_events(player, xp_before))

        if streak_tracker.record_weekly_workout(player, local_date(at, tz), update.is_first_workout_of_day):
            events.append(EngineEvent(EVENT_WEEKLY_GOAL_MET, {
                "player_id": player.id, "weekly_streak": player.current_weekly_streak,
            }))

        # Pet grows even while away; only present pets get the happiness boost
        pet_xp = 0
        if pet is not None:
            pet_level = pet_sim.pet_level_for(pet.total_xp, rules)
            pet_xp = pet_sim.pet_xp_for_workout(
                xp, pet.species, workout_type, pet_level, happiness_multiplier, rules,
            )
            pet_xp_before = pet.total_xp
            pet.total_xp += pet_xp
            events.extend(self._pet_growth_events(pet, pet_xp_before))
            pet_sim.apply_workout_boost(pet, now, rules)

        new_unlocks = unlock_evaluator.evaluate(
            level_resolver.level_for(player.total_xp, rules),
            player.highest_streak,
            player.workout_count,
            player.unlocked_cosmetic_keys,
            rules,
        )
        player.unlocked_cosmetic_keys |= new_unlocks
        for key in sorted(new_unlocks):
            events.append(EngineEvent(EVENT_UNLOCK_GRANTED, {"player_id": player.id, "key": key}))

        stats = unlock_evaluator.achievement_stats_for(player, tz, rules)
        new_achievements = unlock_evaluator.evaluate_achievements(stats, player.earned_achievement_ids)
        player.earned_achievement_ids |= new_achievements
        for achievement_id in sorted(new_achievements):
            events.append(EngineEvent(EVENT_ACHIEVEMENT_EARNED, {
                "player_id": player.id, "achievement_id": achievement_id,
            }))

        daily_quests.refresh_if_needed(player, today, self.rng, rules)
        completed: List[DailyQuest] = []
        if local_date(at, tz) == today:
            completed = daily_quests.progress_on_workout(player.daily_quests, workout, today, tz, rules)
        if pet is not None and not pet.is_away:
            completed += daily_quests.progress_on_happiness(player.daily_quests, pet.happiness, today, rules)
        events.extend(self._quest_events(player, completed))

        logger.info(
            f"Player {player.id} logged {workout_type.value} workout: {xp} XP, "
            f"streak {player.current_streak}, {essence} essence"
        )

        return WorkoutOutcome(
            ok=True,
            workout=workout,
            xp_earned=xp,
            essence_earned=essence,
            pet_xp_earned=pet_xp,
            streak=update,
            level_before=level_before,
            level_after=level_resolver.level_for(player.total_xp, rules),
            new_unlocks=new_unlocks,
            new_achievements=new_achievements,
            completed_quests=completed,
            events=events,
        )

    def use_rest_day(self, player: Player) -> ActionResult:
        """Protect the streak for today. value = rest days left this week."""
        def action(events):
            return streak_tracker.use_rest_day(player, self._today(), self.rules)
        return self._run("use_rest_day", action)

    # =========================================================================
    # PET CARE
    # =========================================================================

    def feed_treat(self, player: Player, treat: PetTreat) -> ActionResult:
        """value = happiness after feeding."""
        def action(events):
            now = self._now()
            self._require_pet(player, "feed a treat")
            self._refresh_pet(player, now, events)
            happiness = pet_sim.feed_treat(player.pet, player, PetTreat(treat), now, self.rules)

            daily_quests.refresh_if_needed(player, self._today(), self.rng, self.rules)
            completed = daily_quests.progress_on_treat(player.daily_quests, self._today())
            events.extend(self._quest_events(player, completed))
            self._happy_pet_progress(player, events)
            return happiness
        return self._run("feed_treat", action)

    def _recover(self, player: Player, method: str, recover_fn) -> ActionResult:
        def action(events):
            now = self._now()
            pet = self._require_pet(player, "recover pet")
            self._refresh_pet(player, now, events)
            recover_fn(pet, player, now, self.rules)
            events.append(EngineEvent(EVENT_PET_RECOVERED, {"pet_id": pet.id, "method": method}))
            return pet.happiness
        return self._run(f"recover_pet_with_{method}", action)

    def recover_pet_with_workouts(self, player: Player) -> ActionResult:
        return self._recover(player, "workouts", pet_sim.recover_with_workouts)

    def recover_pet_with_essence(self, player: Player) -> ActionResult:
        return self._recover(player, "essence", pet_sim.recover_with_essence)

    def play_with_pet(self, player: Player) -> ActionResult:
        """One tap. value = TapResult; a finished session counts for quests."""
        def action(events):
            now = self._now()
            pet = self._require_pet(player, "play")
            self._refresh_pet(player, now, events)
            result: TapResult = pet_sim.handle_tap(pet, now, self.clock.tz, self.rules)
            if result.outcome == TapOutcome.PET_AWAY:
                raise PetAway("play")

            if result.session_completed:
                daily_quests.refresh_if_needed(player, self._today(), self.rng, self.rules)
                completed = daily_quests.progress_on_play(player.daily_quests, self._today())
                events.extend(self._quest_events(player, completed))
                self._happy_pet_progress(player, events)
            return result
        return self._run("play_with_pet", action)

    # =========================================================================
    # ACCESSORIES
    # =========================================================================

    def purchase_accessory(self, player: Player, accessory_id: str) -> ActionResult:
        """value = PurchaseResult."""
        result = economy_ledger.purchase_accessory(player, accessory_id, self.rules)
        if not result.ok:
            logger.info(f"purchase_accessory refused: {result.error.error_code} {result.error.detail}")
        return ActionResult(ok=result.ok, error=result.error, value=result)

    def equip_accessory(self, player: Player, accessory_id: str) -> ActionResult:
        def action(events):
            economy_ledger.equip(player, accessory_id)
            return set(player.pet.equipped_accessory_ids)
        return self._run("equip_accessory", action)

    def unequip_accessory(self, player: Player, accessory_id: str) -> ActionResult:
        def action(events):
            economy_ledger.unequip(player, accessory_id)
            return set(player.pet.equipped_accessory_ids)
        return self._run("unequip_accessory", action)

    # =========================================================================
    # DAILY QUESTS
    # =========================================================================

    def refresh_daily_quests(self, player: Player) -> ActionResult:
        """value = True if a new set of quests was generated."""
        def action(events):
            refreshed = daily_quests.refresh_if_needed(player, self._today(), self.rng, self.rules)
            self._happy_pet_progress(player, events)
            return refreshed
        return self._run("refresh_daily_quests", action)

    def claim_quest(self, player: Player, quest_id: str) -> ActionResult:
        """value = (reward type, amount)."""
        def action(events):
            quest = daily_quests.find_quest(player, quest_id)
            player_xp_before = player.total_xp
            pet_xp_before = player.pet.total_xp if player.pet is not None else 0

            reward = daily_quests.claim_reward(player, quest)
            if quest.reward_type == QuestRewardType.XP:
                if player.pet is not None:
                    events.extend(self._pet_growth_events(player.pet, pet_xp_before))
                else:
                    events.extend(self._player_growth_events(player, player_xp_before))
            return reward
        return self._run("claim_quest", action)

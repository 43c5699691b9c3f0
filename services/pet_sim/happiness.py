"""
Pet happiness: decay, boosts, treats, recovery and play.

Happiness is a float clamped to [0, 100]. It decays lazily: nothing ticks in
the background, apply_passive_decay() works out how much time passed since
the last update whenever the pet is looked at. At the default 33.33 points
per day a full pet leaves after three days without attention. A pet that
reaches 0 is "away" until it is recovered, either by working out (3 sessions
in the trailing 7 days) or by paying essence.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Optional

from core.clock import ensure_aware, local_date
from core.exceptions import InsufficientCurrency, PetAway, RecoveryIneligible
from models import Pet, Player
from services.constants import PetTreat, MAX_HAPPINESS, MIN_HAPPINESS
from services.economy_ledger import debit
from services.rules import ProgressionRules, get_rules

logger = logging.getLogger(__name__)


def modify_happiness(pet: Pet, amount: float, now: datetime) -> bool:
    """
    Add `amount` (may be negative) and clamp to [0, 100].

    Returns:
        True if this change sent the pet away
    """
    pet.happiness = max(MIN_HAPPINESS, min(MAX_HAPPINESS, pet.happiness + amount))

    if pet.happiness <= MIN_HAPPINESS and not pet.is_away:
        pet.happiness = MIN_HAPPINESS
        pet.is_away = True
        pet.away_since = now
        logger.info(f"Pet {pet.id} ran away")
        return True
    return False


def _last_update(pet: Pet, now: datetime) -> Optional[datetime]:
    """Stored update time, read as wall time in now's zone if it was saved naive."""
    if pet.last_happiness_update_at is None:
        return None
    return ensure_aware(pet.last_happiness_update_at, now.tzinfo)


def apply_passive_decay(pet: Pet, now: datetime, rules: Optional[ProgressionRules] = None) -> bool:
    """
    Bring happiness up to date for the time elapsed since the last update.

    The update timestamp only ever moves forward; a `now` earlier than the
    stored timestamp decays nothing. Away pets don't decay further.

    Returns:
        True if the pet left during this update
    """
    rules = rules or get_rules()
    last = _last_update(pet, now)
    if last is None:
        pet.last_happiness_update_at = now
        return False
    if now <= last:
        return False

    pet.last_happiness_update_at = now
    if pet.is_away:
        return False

    hours = (now - last).total_seconds() / 3600.0
    decay = (hours / 24.0) * rules.pet.decay_per_day
    if decay <= 0:
        return False
    return modify_happiness(pet, -decay, now)


def apply_workout_boost(pet: Pet, now: datetime, rules: Optional[ProgressionRules] = None) -> bool:
    """+15 happiness for a completed workout. Away pets get nothing."""
    rules = rules or get_rules()
    if pet.is_away:
        return False
    modify_happiness(pet, rules.pet.workout_happiness_boost, now)
    return True


def happiness_xp_multiplier(happiness: float, rules: Optional[ProgressionRules] = None) -> float:
    rules = rules or get_rules()
    if happiness >= rules.pet.happiness_bonus_threshold:
        return rules.pet.happiness_bonus_multiplier
    return 1.0


def has_xp_bonus(happiness: float, rules: Optional[ProgressionRules] = None) -> bool:
    rules = rules or get_rules()
    return happiness >= rules.pet.happiness_bonus_threshold


# =============================================================================
# TREATS
# =============================================================================

def treat_cost(treat: PetTreat, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return rules.pet.treats[PetTreat(treat)].cost


def feed_treat(
    pet: Pet,
    player: Player,
    treat: PetTreat,
    now: datetime,
    rules: Optional[ProgressionRules] = None,
) -> float:
    """
    Spend essence on a treat and boost happiness. Resets the decay timer.

    Returns:
        Happiness after feeding

    Raises:
        PetAway: The pet has left
        InsufficientCurrency: Balance below the treat's cost
    """
    rules = rules or get_rules()
    rule = rules.pet.treats[PetTreat(treat)]
    if pet.is_away:
        raise PetAway("feed a treat")
    if player.essence_currency < rule.cost:
        raise InsufficientCurrency(rule.cost, player.essence_currency)

    debit(player, rule.cost)
    modify_happiness(pet, rule.happiness_boost, now)
    last = _last_update(pet, now)
    if last is None or now > last:
        pet.last_happiness_update_at = now
    return pet.happiness


# =============================================================================
# RECOVERY
# =============================================================================

def recent_workout_count(player: Player, now: datetime, window_days: int) -> int:
    since = now - timedelta(days=window_days)
    return sum(1 for w in player.workouts if since <= ensure_aware(w.timestamp, now.tzinfo) <= now)


def can_recover_with_workouts(
    pet: Pet,
    player: Player,
    now: datetime,
    rules: Optional[ProgressionRules] = None,
) -> bool:
    rules = rules or get_rules()
    if not pet.is_away:
        return False
    recent = recent_workout_count(player, now, rules.pet.recovery_window_days)
    return recent >= rules.pet.recovery_workouts_required


def can_recover_with_essence(pet: Pet, player: Player, rules: Optional[ProgressionRules] = None) -> bool:
    rules = rules or get_rules()
    return pet.is_away and player.essence_currency >= rules.pet.essence_recovery_cost


def _bring_back(pet: Pet, now: datetime, rules: ProgressionRules):
    pet.is_away = False
    pet.away_since = None
    pet.happiness = rules.pet.recovery_happiness
    last = _last_update(pet, now)
    if last is None or now > last:
        pet.last_happiness_update_at = now


def recover_with_workouts(
    pet: Pet,
    player: Player,
    now: datetime,
    rules: Optional[ProgressionRules] = None,
):
    """
    Bring an away pet back for free after enough recent workouts.

    Raises:
        RecoveryIneligible: Pet is not away, or too few recent workouts
    """
    rules = rules or get_rules()
    if not pet.is_away:
        raise RecoveryIneligible("Pet is not away")
    if not can_recover_with_workouts(pet, player, now, rules):
        raise RecoveryIneligible(
            f"Need {rules.pet.recovery_workouts_required} workouts in the last "
            f"{rules.pet.recovery_window_days} days"
        )
    _bring_back(pet, now, rules)
    logger.info(f"Pet {pet.id} recovered with workouts")


def recover_with_essence(
    pet: Pet,
    player: Player,
    now: datetime,
    rules: Optional[ProgressionRules] = None,
):
    """
    Pay essence to bring an away pet back.

    Raises:
        RecoveryIneligible: Pet is not away
        InsufficientCurrency: Balance below the recovery cost
    """
    rules = rules or get_rules()
    if not pet.is_away:
        raise RecoveryIneligible("Pet is not away")
    cost = rules.pet.essence_recovery_cost
    if player.essence_currency < cost:
        raise InsufficientCurrency(cost, player.essence_currency)

    debit(player, cost)
    _bring_back(pet, now, rules)
    logger.info(f"Pet {pet.id} recovered for {cost} essence")


# =============================================================================
# PLAY
# =============================================================================

class TapOutcome(str, Enum):
    TAP_REGISTERED = "tap_registered"
    SESSION_COMPLETE = "session_complete"
    NO_SESSIONS_REMAINING = "no_sessions_remaining"
    PET_AWAY = "pet_away"


@dataclass(frozen=True)
class TapResult:
    outcome: TapOutcome
    taps_remaining: int = 0
    sessions_remaining: int = 0

    @property
    def session_completed(self) -> bool:
        return self.outcome == TapOutcome.SESSION_COMPLETE


def _reset_play_sessions_if_needed(pet: Pet, now: datetime, tz: tzinfo):
    today = local_date(now, tz)
    if pet.last_play_date is not None and pet.last_play_date != today:
        pet.play_sessions_today = 0
        pet.tap_count = 0


def play_sessions_remaining(pet: Pet, now: datetime, tz: tzinfo, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    used = pet.play_sessions_today
    if pet.last_play_date is not None and pet.last_play_date != local_date(now, tz):
        used = 0
    return max(0, rules.pet.max_play_sessions_per_day - used)


def handle_tap(pet: Pet, now: datetime, tz: tzinfo, rules: Optional[ProgressionRules] = None) -> TapResult:
    """
    Register one tap on the pet.

    Every `taps_per_play_session` taps complete a session worth a small
    happiness boost, up to `max_play_sessions_per_day` sessions per local day.
    """
    rules = rules or get_rules()
    if pet.is_away:
        return TapResult(TapOutcome.PET_AWAY)

    _reset_play_sessions_if_needed(pet, now, tz)
    max_sessions = rules.pet.max_play_sessions_per_day
    if pet.play_sessions_today >= max_sessions:
        return TapResult(TapOutcome.NO_SESSIONS_REMAINING)

    pet.tap_count += 1
    pet.last_play_date = local_date(now, tz)

    if pet.tap_count >= rules.pet.taps_per_play_session:
        pet.tap_count = 0
        pet.play_sessions_today += 1
        modify_happiness(pet, rules.pet.happiness_per_play_session, now)
        return TapResult(
            TapOutcome.SESSION_COMPLETE,
            sessions_remaining=max_sessions - pet.play_sessions_today,
        )

    return TapResult(
        TapOutcome.TAP_REGISTERED,
        taps_remaining=rules.pet.taps_per_play_session - pet.tap_count,
        sessions_remaining=max_sessions - pet.play_sessions_today,
    )

# Pet Life Simulation
#
# Time-driven state for the player's pet:
# - Lazy happiness decay, computed whenever the pet is looked at
# - Mood bands over happiness
# - Workout, treat and play boosts
# - Away / recovery transitions
# - Pet level, evolution stage and species XP multipliers

from .mood import mood_for, mood_description
from .happiness import (
    TapOutcome,
    TapResult,
    apply_passive_decay,
    apply_workout_boost,
    can_recover_with_essence,
    can_recover_with_workouts,
    feed_treat,
    handle_tap,
    happiness_xp_multiplier,
    has_xp_bonus,
    modify_happiness,
    play_sessions_remaining,
    recent_workout_count,
    recover_with_essence,
    recover_with_workouts,
    treat_cost,
)
from .evolution import (
    bonus_description,
    next_stage,
    pet_level_for,
    pet_xp_for_workout,
    pet_xp_required_for,
    species_multiplier,
    stage_for,
    stage_for_xp,
)

__all__ = [
    # Mood
    'mood_for',
    'mood_description',

    # Happiness
    'modify_happiness',
    'apply_passive_decay',
    'apply_workout_boost',
    'happiness_xp_multiplier',
    'has_xp_bonus',
    'feed_treat',
    'treat_cost',

    # Recovery
    'recent_workout_count',
    'can_recover_with_workouts',
    'can_recover_with_essence',
    'recover_with_workouts',
    'recover_with_essence',

    # Play
    'TapOutcome',
    'TapResult',
    'handle_tap',
    'play_sessions_remaining',

    # Growth
    'pet_xp_required_for',
    'pet_level_for',
    'pet_xp_for_workout',
    'stage_for',
    'stage_for_xp',
    'next_stage',
    'species_multiplier',
    'bonus_description',
]

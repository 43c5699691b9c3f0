"""
Pet growth: level, evolution stage and species XP multipliers.

Pet XP is a separate track from the player's. It uses its own curve
(int(120 * level ** 1.7) by default), and the evolution stage is derived
from the resulting level:

    Baby 1-5, Child 6-15, Teen 16-30, Adult 31+

Species give a small XP bonus for the workout types they favour, growing
with pet level. Dragons favour strength, cats (and legacy wolves) favour
cardio, dogs and plants are balanced. The multiplier is never below 1.0.
"""
import logging
from typing import Optional

from services.constants import EvolutionStage, PetSpecies, WorkoutType, STAGE_ORDER
from services.level_resolver import curve_level_for, curve_xp_required
from services.rules import ProgressionRules, get_rules
from services.xp_calculator import round_half_up

logger = logging.getLogger(__name__)


def pet_xp_required_for(level: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return curve_xp_required(rules.pet.level_curve, level)


def pet_level_for(total_xp: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return curve_level_for(rules.pet.level_curve, total_xp)


def stage_for(level: int, rules: Optional[ProgressionRules] = None) -> EvolutionStage:
    rules = rules or get_rules()
    bands = rules.pet.stage_min_levels
    current = EvolutionStage.BABY
    for stage in STAGE_ORDER:
        if level >= bands[stage]:
            current = stage
    return current


def stage_for_xp(total_xp: int, rules: Optional[ProgressionRules] = None) -> EvolutionStage:
    rules = rules or get_rules()
    return stage_for(pet_level_for(total_xp, rules), rules)


def next_stage(stage: EvolutionStage) -> Optional[EvolutionStage]:
    idx = STAGE_ORDER.index(EvolutionStage(stage))
    if idx + 1 < len(STAGE_ORDER):
        return STAGE_ORDER[idx + 1]
    return None


def species_multiplier(
    species: PetSpecies,
    workout_type: WorkoutType,
    pet_level: int,
    rules: Optional[ProgressionRules] = None,
) -> float:
    """
    XP multiplier a pet grants for one workout type.

    Returns 1 + bonus + per_level * (level - 1) when the species has a bonus
    for the type, otherwise exactly 1.0.
    """
    rules = rules or get_rules()
    bonus = rules.pet.species.get(PetSpecies(species))
    if bonus is None:
        return 1.0

    base = bonus.strength if WorkoutType(workout_type) == WorkoutType.STRENGTH else bonus.cardio
    if base <= 0:
        return 1.0
    return 1.0 + base + bonus.per_level * (max(pet_level, 1) - 1)


def bonus_description(
    species: PetSpecies,
    pet_level: int,
    rules: Optional[ProgressionRules] = None,
) -> str:
    """E.g. "+5.0% strength XP" or "+2.5% all XP" for balanced species."""
    strength = species_multiplier(species, WorkoutType.STRENGTH, pet_level, rules)
    cardio = species_multiplier(species, WorkoutType.CARDIO, pet_level, rules)
    if strength > 1.0 and cardio > 1.0 and abs(strength - cardio) < 1e-9:
        return f"+{(strength - 1.0) * 100:.1f}% all XP"
    parts = []
    if strength > 1.0:
        parts.append(f"+{(strength - 1.0) * 100:.1f}% strength XP")
    if cardio > 1.0:
        parts.append(f"+{(cardio - 1.0) * 100:.1f}% cardio XP")
    return ", ".join(parts) or "No bonus"


def pet_xp_for_workout(
    workout_xp: int,
    species: PetSpecies,
    workout_type: WorkoutType,
    pet_level: int,
    happiness_multiplier: float = 1.0,
    rules: Optional[ProgressionRules] = None,
) -> int:
    """
    Pet XP earned from one workout: the player's award scaled by the species
    multiplier and the happiness bonus, rounded half-up.
    """
    multiplier = species_multiplier(species, workout_type, pet_level, rules)
    return max(0, round_half_up(workout_xp * multiplier * happiness_multiplier))

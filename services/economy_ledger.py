"""
Economy Ledger

Essence is the soft currency: earned from workouts (1 per 10 XP by default)
and quest rewards, spent on treats, pet recovery and accessories.

Rules:
- The balance never goes below zero; a debit that would overdraw fails
  with InsufficientCurrency and leaves the balance untouched.
- Accessory price = int(base_cost * rarity multiplier)
  (common x1.0, rare x2.5, legendary x5.0).
- An accessory can be bought once. Only owned accessories can be equipped.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.exceptions import (
    AlreadyUnlocked,
    EngineError,
    InsufficientCurrency,
    InvalidMetric,
    NoPet,
    NotUnlocked,
    UnknownItem,
)
from models import Player
from services.constants import AccessoryCategory
from services.rules import AccessoryDefinition, ProgressionRules, get_rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    ok: bool
    new_balance: int
    cost: int = 0
    error: Optional[EngineError] = None


def essence_for_xp(xp: int, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return max(0, xp) // rules.economy.essence_per_xp


def credit(player: Player, amount: int) -> int:
    """Add essence. Returns the new balance."""
    if amount < 0:
        raise InvalidMetric("amount", amount)
    player.essence_currency += amount
    return player.essence_currency


def debit(player: Player, amount: int) -> int:
    """
    Remove essence. Returns the new balance.

    Raises:
        InsufficientCurrency: Balance below `amount` (balance unchanged)
    """
    if amount < 0:
        raise InvalidMetric("amount", amount)
    if player.essence_currency < amount:
        raise InsufficientCurrency(amount, player.essence_currency)
    player.essence_currency -= amount
    return player.essence_currency


# =============================================================================
# ACCESSORY CATALOG
# =============================================================================

def accessory_cost(accessory: AccessoryDefinition, rules: Optional[ProgressionRules] = None) -> int:
    rules = rules or get_rules()
    return int(accessory.base_cost * rules.economy.rarity_multipliers[accessory.rarity])


def get_accessory(accessory_id: str, rules: Optional[ProgressionRules] = None) -> AccessoryDefinition:
    """
    Raises:
        UnknownItem: No accessory with this id in the catalog
    """
    rules = rules or get_rules()
    accessory = rules.economy.get_accessory(accessory_id)
    if accessory is None:
        raise UnknownItem("Accessory", accessory_id)
    return accessory


def accessories_for(
    category: Optional[AccessoryCategory] = None,
    rules: Optional[ProgressionRules] = None,
) -> List[AccessoryDefinition]:
    rules = rules or get_rules()
    if category is None:
        return list(rules.economy.accessories)
    category = AccessoryCategory(category)
    return [a for a in rules.economy.accessories if a.category == category]


def unlocked_accessories(
    player: Player,
    category: Optional[AccessoryCategory] = None,
    rules: Optional[ProgressionRules] = None,
) -> List[AccessoryDefinition]:
    # Ids no longer in the catalog are skipped
    return [a for a in accessories_for(category, rules) if a.id in player.unlocked_accessory_ids]


def locked_accessories(
    player: Player,
    category: Optional[AccessoryCategory] = None,
    rules: Optional[ProgressionRules] = None,
) -> List[AccessoryDefinition]:
    return [a for a in accessories_for(category, rules) if a.id not in player.unlocked_accessory_ids]


# =============================================================================
# PURCHASE / EQUIP
# =============================================================================

def purchase(
    accessory: AccessoryDefinition,
    balance: int,
    unlocked_ids: Iterable[str],
    rules: Optional[ProgressionRules] = None,
) -> PurchaseResult:
    """
    Decide a purchase without touching any state.

    Returns:
        PurchaseResult with the balance after the purchase, or the unchanged
        balance and an AlreadyUnlocked / InsufficientCurrency error
    """
    cost = accessory_cost(accessory, rules)
    if accessory.id in set(unlocked_ids):
        return PurchaseResult(ok=False, new_balance=balance, cost=cost, error=AlreadyUnlocked(accessory.id))
    if balance < cost:
        return PurchaseResult(ok=False, new_balance=balance, cost=cost, error=InsufficientCurrency(cost, balance))
    return PurchaseResult(ok=True, new_balance=balance - cost, cost=cost)


def can_purchase(player: Player, accessory_id: str, rules: Optional[ProgressionRules] = None) -> bool:
    rules = rules or get_rules()
    accessory = rules.economy.get_accessory(accessory_id)
    if accessory is None:
        return False
    return purchase(accessory, player.essence_currency, player.unlocked_accessory_ids, rules).ok


def purchase_accessory(
    player: Player,
    accessory_id: str,
    rules: Optional[ProgressionRules] = None,
) -> PurchaseResult:
    """
    Buy an accessory for `player`: deduct the price and unlock it, or change
    nothing at all.
    """
    rules = rules or get_rules()
    try:
        accessory = get_accessory(accessory_id, rules)
    except UnknownItem as e:
        return PurchaseResult(ok=False, new_balance=player.essence_currency, error=e)

    result = purchase(accessory, player.essence_currency, player.unlocked_accessory_ids, rules)
    if result.ok:
        player.essence_currency = result.new_balance
        player.unlocked_accessory_ids.add(accessory.id)
        logger.info(f"Player {player.id} bought {accessory.id} for {result.cost} essence")
    return result


def equip(player: Player, accessory_id: str):
    """
    Put an owned accessory on the pet. Allowed while the pet is away.

    Raises:
        NoPet: Player has no pet
        NotUnlocked: Accessory not owned
    """
    if player.pet is None:
        raise NoPet("equip an accessory")
    if accessory_id not in player.unlocked_accessory_ids:
        raise NotUnlocked(accessory_id)
    player.pet.equipped_accessory_ids.add(accessory_id)


def unequip(player: Player, accessory_id: str):
    """
    Take an accessory off the pet (no-op if it isn't worn).

    Raises:
        NoPet: Player has no pet
        NotUnlocked: Accessory not owned
    """
    if player.pet is None:
        raise NoPet("unequip an accessory")
    if accessory_id not in player.unlocked_accessory_ids:
        raise NotUnlocked(accessory_id)
    player.pet.equipped_accessory_ids.discard(accessory_id)

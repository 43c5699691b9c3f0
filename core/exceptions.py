"""
Engine error taxonomy.

Every domain failure the engine can report is an EngineError subclass with a
stable error_code. Pure helpers raise these; the ProgressionEngine facade
catches them and hands them back as the `error` value of its result objects,
so the presentation layer decides what the user sees.
"""
from typing import Optional, Dict, Any


class EngineError(Exception):
    """Base engine error with consistent structure."""

    error_code = "ENGINE_ERROR"

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code is not None:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error_code": self.error_code, "detail": self.detail}


class InvalidMetric(EngineError):
    """Malformed workout input (negative, non-finite or non-numeric)."""

    error_code = "INVALID_METRIC"

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid value for {field}: {value!r}")
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class InsufficientCurrency(EngineError):
    """Purchase exceeds the essence balance."""

    error_code = "INSUFFICIENT_CURRENCY"

    def __init__(self, required: int, available: int):
        super().__init__(f"Need {required} essence, have {available}")
        self.required = required
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(required=self.required, available=self.available)
        return data


class AlreadyUnlocked(EngineError):
    """Accessory is already owned."""

    error_code = "ALREADY_UNLOCKED"

    def __init__(self, accessory_id: str):
        super().__init__(f"Accessory already unlocked: {accessory_id}")
        self.accessory_id = accessory_id


class NotUnlocked(EngineError):
    """Accessory must be owned before it can be equipped or unequipped."""

    error_code = "NOT_UNLOCKED"

    def __init__(self, accessory_id: str):
        super().__init__(f"Accessory not unlocked: {accessory_id}")
        self.accessory_id = accessory_id


class PetAway(EngineError):
    """Action requires the pet to be present."""

    error_code = "PET_AWAY"

    def __init__(self, action: str):
        super().__init__(f"Pet is away; cannot {action}")
        self.action = action


class NoPet(EngineError):
    """Action needs a pet and the player has none."""

    error_code = "NO_PET"

    def __init__(self, action: str):
        super().__init__(f"No pet; cannot {action}")
        self.action = action


class RecoveryIneligible(EngineError):
    """Recovery attempted without meeting its precondition."""

    error_code = "RECOVERY_INELIGIBLE"


class RestDayUnavailable(EngineError):
    """Rest day refused (weekly allowance used, no streak, or streak already broken)."""

    error_code = "REST_DAY_UNAVAILABLE"


class QuestNotClaimable(EngineError):
    """Quest reward requested before completion, or claimed twice."""

    error_code = "QUEST_NOT_CLAIMABLE"


class UnknownItem(EngineError):
    """Identifier not present in the configured catalog."""

    error_code = "UNKNOWN_ITEM"

    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id


class RulesConfigError(EngineError):
    """Progression rules file could not be loaded or validated."""

    error_code = "RULES_CONFIG_ERROR"

"""
Pet mood bands.

    Ecstatic  90-100
    Happy     70-89
    Content   50-69
    Sad       30-49
    Unhappy   10-29
    Miserable  0-9
"""
from services.constants import PetMood, MOOD_THRESHOLDS

MOOD_DESCRIPTIONS = {
    PetMood.ECSTATIC: "Ecstatic",
    PetMood.HAPPY: "Happy",
    PetMood.CONTENT: "Content",
    PetMood.SAD: "Sad",
    PetMood.UNHAPPY: "Unhappy",
    PetMood.MISERABLE: "Miserable",
}


def mood_for(happiness: float) -> PetMood:
    for lower_bound, mood in MOOD_THRESHOLDS:
        if happiness >= lower_bound:
            return mood
    return PetMood.MISERABLE


def mood_description(happiness: float) -> str:
    return MOOD_DESCRIPTIONS[mood_for(happiness)]

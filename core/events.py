"""
Engine Events

Engine operations never call notification, sound or rendering code. Instead
every result carries a list of EngineEvent values describing what changed
(level up, evolution, pet left, ...). The hosting application can hand
those lists to publish() to fan them out to subscribed handlers.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Any, Iterable

logger = logging.getLogger(__name__)

# Event registry: event_name -> list of handlers
_event_handlers: Dict[str, List[Callable]] = {}


@dataclass(frozen=True)
class EngineEvent:
    """Something observable happened to a player aggregate."""
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


def subscribe(event_name: str, handler: Callable[[EngineEvent], None]):
    """
    Subscribe a handler function to an event.

    Args:
        event_name: Name of the event (e.g., 'player.level_up', 'pet.evolved')
        handler: Called with the EngineEvent when it is published
    """
    if event_name not in _event_handlers:
        _event_handlers[event_name] = []

    _event_handlers[event_name].append(handler)
    logger.debug("Subscribed handler to event: %s", event_name)


def unsubscribe_all():
    """Drop every registered handler."""
    _event_handlers.clear()


def publish(events: Iterable[EngineEvent]) -> int:
    """
    Deliver engine events to subscribed handlers.

    A failing handler is logged and does not stop delivery to the others.

    Returns:
        Number of handler invocations that completed
    """
    delivered = 0
    for event in events:
        for handler in _event_handlers.get(event.name, []):
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error("Error in event handler for %s: %s", event.name, e, exc_info=True)
    return delivered


# Common event names
EVENT_PLAYER_LEVEL_UP = 'player.level_up'
EVENT_PLAYER_RANK_UP = 'player.rank_up'
EVENT_PLAYER_MILESTONE = 'player.milestone'
EVENT_PET_LEVEL_UP = 'pet.level_up'
EVENT_PET_EVOLVED = 'pet.evolved'
EVENT_PET_LEFT = 'pet.left'
EVENT_PET_RECOVERED = 'pet.recovered'
EVENT_UNLOCK_GRANTED = 'unlock.granted'
EVENT_ACHIEVEMENT_EARNED = 'achievement.earned'
EVENT_QUEST_COMPLETED = 'quest.completed'
EVENT_WEEKLY_GOAL_MET = 'streak.weekly_goal_met'

"""
Pytest configuration and fixtures

Every test gets the default progression rules and a clock frozen at a known
instant, so nothing depends on the wall clock or a local rules file.
"""
import pytest
import random
import sys
import os
from datetime import datetime, timezone

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.clock import FixedClock
from core.events import unsubscribe_all
from models import Pet, Player
from services.constants import PetSpecies
from services.progression_engine import ProgressionEngine
from services.rules import ProgressionRules, RulesService

# Monday 2024-01-15, 10:00 UTC
START = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _default_rules():
    """Pin the process-wide rules to the defaults for every test."""
    RulesService.set(ProgressionRules())
    yield
    RulesService.reset()
    unsubscribe_all()


@pytest.fixture
def rules():
    return ProgressionRules()


@pytest.fixture
def clock():
    return FixedClock(START, tz=timezone.utc)


@pytest.fixture
def engine(rules, clock):
    return ProgressionEngine(rules=rules, clock=clock, rng=random.Random(42))


@pytest.fixture
def player():
    return Player(name="Test Player")


@pytest.fixture
def pet():
    return Pet(name="Sparky", species=PetSpecies.DRAGON, last_happiness_update_at=START)


@pytest.fixture
def player_with_pet(player, pet):
    player.pet = pet
    return player

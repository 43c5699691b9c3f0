"""
Tests for player snapshots (schemas.py)
"""

import pytest
from datetime import date, datetime, timezone
from pydantic import ValidationError

from models import CardioMetrics, StrengthMetrics
from schemas import PetSnapshot, PlayerSnapshot
from services.constants import PetSpecies, PetTreat, WorkoutType


@pytest.fixture
def played_player(engine, player_with_pet, clock):
    """A player with some history: workouts, quests, purchases."""
    player = player_with_pet
    engine.log_workout(player, WorkoutType.STRENGTH, name="Bench Press",
                       strength=StrengthMetrics(weight=100, reps=8, sets=4))
    clock.advance(days=1)
    engine.log_workout(player, WorkoutType.CARDIO, name="Run",
                       cardio=CardioMetrics(duration_minutes=45, steps=6000))
    player.essence_currency += 100
    engine.purchase_accessory(player, "hat_crown")
    engine.purchase_accessory(player, "bg_gradient_blue")
    engine.equip_accessory(player, "hat_crown")
    engine.feed_treat(player, PetTreat.SMALL)
    return player


class TestPlayerSnapshot:

    def test_round_trip(self, played_player):
        snapshot = PlayerSnapshot.from_model(played_player)
        restored = snapshot.to_model()
        assert restored == played_player

    def test_round_trip_through_json(self, played_player):
        payload = PlayerSnapshot.from_model(played_player).model_dump_json()
        restored = PlayerSnapshot.model_validate_json(payload).to_model()
        assert restored.total_xp == played_player.total_xp
        assert restored.pet.equipped_accessory_ids == {"hat_crown"}
        assert restored.workouts[1].cardio.steps == 6000
        assert restored.daily_quests == played_player.daily_quests

    def test_sets_dumped_sorted(self, played_player):
        snapshot = PlayerSnapshot.from_model(played_player)
        assert snapshot.unlocked_accessory_ids == ["bg_gradient_blue", "hat_crown"]
        assert snapshot.earned_achievement_ids == sorted(played_player.earned_achievement_ids)

    def test_stable_output(self, played_player):
        first = PlayerSnapshot.from_model(played_player).model_dump_json()
        second = PlayerSnapshot.from_model(played_player).model_dump_json()
        assert first == second

    def test_player_without_pet(self, player):
        snapshot = PlayerSnapshot.from_model(player)
        assert snapshot.pet is None
        assert snapshot.to_model() == player

    def test_highest_below_current_rejected(self):
        with pytest.raises(ValidationError, match="highest_streak"):
            PlayerSnapshot(id="p1", current_streak=5, highest_streak=3)

    def test_negative_currency_rejected(self):
        with pytest.raises(ValidationError):
            PlayerSnapshot(id="p1", essence_currency=-1)


class TestPetSnapshot:

    def test_happiness_bounds(self):
        with pytest.raises(ValidationError):
            PetSnapshot(id="x", name="Rex", species=PetSpecies.DOG, happiness=120)

    def test_to_model(self):
        snapshot = PetSnapshot(
            id="x", name="Rex", species="dog",
            equipped_accessory_ids=["hat_star", "hat_crown"],
            last_play_date=date(2024, 1, 15),
        )
        pet = snapshot.to_model()
        assert pet.species == PetSpecies.DOG
        assert pet.equipped_accessory_ids == {"hat_star", "hat_crown"}
        assert pet.last_play_date == date(2024, 1, 15)


class TestNaiveTimestamps:
    """Stores without time zone support hand back naive datetimes."""

    def _naive_snapshot(self, player):
        snapshot = PlayerSnapshot.from_model(player)
        snapshot.pet.last_happiness_update_at = datetime(2024, 1, 15, 10, 0)
        for workout in snapshot.workouts:
            workout.timestamp = workout.timestamp.replace(tzinfo=None)
        return snapshot

    def test_restored_as_aware(self, played_player):
        restored = self._naive_snapshot(played_player).to_model(tz=timezone.utc)
        assert restored.pet.last_happiness_update_at == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        assert all(w.timestamp.tzinfo is not None for w in restored.workouts)

    def test_default_zone_from_settings(self, played_player):
        restored = self._naive_snapshot(played_player).to_model()
        assert restored.pet.last_happiness_update_at.tzinfo is not None

    def test_engine_accepts_restored_player(self, engine, clock, played_player):
        restored = self._naive_snapshot(played_player).to_model(tz=timezone.utc)
        clock.advance(days=1)
        result = engine.refresh_pet(restored)
        assert result.ok
        assert 0.0 <= result.value <= 100.0

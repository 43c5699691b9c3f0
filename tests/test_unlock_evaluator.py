"""
Unit tests for the Unlock Evaluator

Cosmetic unlock table, achievements and rank-gated backgrounds.
"""

import pytest
from datetime import datetime, timedelta, timezone

from models import Player, Workout
from services.constants import CharacterBackground, PlayerRank, UnlockKind, WorkoutType
from services.rules import ProgressionRules, UnlockRequirement, UnlockRules
from services.unlock_evaluator import (
    ACHIEVEMENTS,
    AchievementStats,
    UnlockStats,
    achievement_stats_for,
    background_unlocked,
    evaluate,
    evaluate_achievements,
    get_achievement,
    is_unlocked,
    requirement_text,
    unlocked_backgrounds,
)

UTC = timezone.utc


class TestCosmeticUnlocks:

    def test_nothing_at_start(self):
        assert evaluate(level=1, highest_streak=0, workout_count=0) == frozenset()

    def test_level_five(self):
        assert evaluate(level=5, highest_streak=0, workout_count=3) == frozenset({"headwear:1"})

    def test_level_ten(self):
        assert evaluate(level=10, highest_streak=0, workout_count=0) == frozenset(
            {"headwear:1", "headwear:2", "hairStyle:5"}
        )

    def test_streak_and_workout_requirements(self):
        unlocked = evaluate(level=1, highest_streak=7, workout_count=50)
        assert unlocked == frozenset({"top:3", "accessory:2"})

    def test_everything_at_high_stats(self):
        unlocked = evaluate(level=30, highest_streak=30, workout_count=100)
        assert len(unlocked) == 10

    def test_already_unlocked_excluded(self):
        unlocked = evaluate(level=10, highest_streak=0, workout_count=0,
                            already_unlocked={"headwear:1", "headwear:2"})
        assert unlocked == frozenset({"hairStyle:5"})

    def test_idempotent(self):
        first = evaluate(level=20, highest_streak=10, workout_count=60)
        second = evaluate(level=20, highest_streak=10, workout_count=60)
        assert first == second

    def test_monotonic_in_stats(self):
        """Better stats never unlock fewer keys."""
        lower = evaluate(level=10, highest_streak=3, workout_count=20)
        higher = evaluate(level=15, highest_streak=7, workout_count=50)
        assert lower <= higher

    def test_unknown_keys_are_free(self):
        stats = UnlockStats(level=1, highest_streak=0, workout_count=0)
        assert is_unlocked("hairStyle:1", stats)
        assert not is_unlocked("hairStyle:5", stats)

    def test_requirement_text(self):
        assert requirement_text("hairColor:7") == "Reach Level 25"
        assert requirement_text("top:3") == "7-day streak"
        assert requirement_text("accessory:2") == "50 total workouts"
        assert requirement_text("hairStyle:1") is None

    def test_custom_table(self):
        rules = ProgressionRules(unlocks=UnlockRules(requirements={
            "shoes:2": UnlockRequirement(kind=UnlockKind.WORKOUTS, threshold=3),
        }))
        assert evaluate(1, 0, 3, rules=rules) == frozenset({"shoes:2"})
        assert evaluate(1, 0, 2, rules=rules) == frozenset()


class TestAchievements:

    def test_catalog(self):
        ids = [a.id for a in ACHIEVEMENTS]
        assert len(ids) == 11
        assert "first_steps" in ids
        assert get_achievement("century").name == "Century"
        assert get_achievement("nope") is None

    def test_first_workout(self):
        stats = AchievementStats(workout_count=1, highest_streak=1, total_xp=50, level=1)
        assert evaluate_achievements(stats) == frozenset({"first_steps"})

    def test_streak_and_level_achievements(self):
        stats = AchievementStats(workout_count=120, highest_streak=30, total_xp=12_000, level=12)
        earned = evaluate_achievements(stats)
        assert {"week_warrior", "dedicated", "unstoppable", "century", "xp_hunter", "level_10"} <= earned
        assert "level_25" not in earned

    def test_already_earned_excluded(self):
        stats = AchievementStats(workout_count=1, highest_streak=1, total_xp=50, level=1)
        assert evaluate_achievements(stats, already_earned={"first_steps"}) == frozenset()

    def test_time_of_day_from_local_hours(self):
        player = Player()
        morning = datetime(2024, 1, 15, 7, 30, tzinfo=UTC)
        player.workouts.append(Workout(workout_type=WorkoutType.CARDIO, timestamp=morning))
        stats = achievement_stats_for(player, UTC)
        assert stats.has_early_workout
        assert not stats.has_late_workout

        # Same instant seen from UTC+14 is 21:30 local
        far_east = timezone(timedelta(hours=14))
        stats = achievement_stats_for(player, far_east)
        assert stats.has_late_workout
        assert not stats.has_early_workout

    def test_stats_from_player(self):
        player = Player(total_xp=400, highest_streak=2)
        stats = achievement_stats_for(player, UTC)
        assert stats.level == 2
        assert stats.workout_count == 0


class TestBackgrounds:

    def test_default_always_available(self):
        assert background_unlocked(CharacterBackground.DEFAULT_DARK, PlayerRank.BRONZE)

    @pytest.mark.parametrize("background,rank,expected", [
        (CharacterBackground.GYM, PlayerRank.BRONZE, False),
        (CharacterBackground.GYM, PlayerRank.SILVER, True),
        (CharacterBackground.OUTDOOR, PlayerRank.SILVER, False),
        (CharacterBackground.OUTDOOR, PlayerRank.GOLD, True),
        (CharacterBackground.PREMIUM, PlayerRank.GOLD, False),
        (CharacterBackground.PREMIUM, PlayerRank.PLATINUM, True),
        (CharacterBackground.PREMIUM, PlayerRank.DIAMOND, True),
    ])
    def test_rank_gates(self, background, rank, expected):
        assert background_unlocked(background, rank) is expected

    def test_unlocked_list(self):
        assert unlocked_backgrounds(PlayerRank.GOLD) == [
            CharacterBackground.DEFAULT_DARK,
            CharacterBackground.GYM,
            CharacterBackground.OUTDOOR,
        ]

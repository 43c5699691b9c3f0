"""
Tests for progression rules loading and validation.

Verifies the defaults, that malformed tuning is rejected at load time, and
that YAML overrides are layered over the defaults.
"""

import pytest
from pathlib import Path
from pydantic import ValidationError

from core.config import settings
from core.exceptions import RulesConfigError
from services.constants import AccessoryRarity, PetTreat, PlayerRank, QuestType, UnlockKind, WorkoutType
from services.rules import (
    LevelCurve,
    LevelRules,
    ProgressionRules,
    QuestRules,
    RulesService,
    StreakTier,
    XPRules,
    get_rules,
    load_rules_file,
)
from services.xp_calculator import default_templates


class TestDefaults:

    def test_defaults_are_valid(self):
        rules = ProgressionRules()
        assert rules.xp.first_workout_multiplier == 1.25
        assert rules.levels.curve.base == 100.0
        assert rules.levels.curve.exponent == 1.8
        assert rules.pet.level_curve.base == 120.0
        assert rules.economy.essence_per_xp == 10
        assert rules.quests.quests_per_day == 3

    def test_default_accessory_lookup(self):
        rules = ProgressionRules()
        assert rules.economy.get_accessory("hat_halo").rarity == AccessoryRarity.LEGENDARY
        assert rules.economy.get_accessory("nope") is None

    def test_round_trip_through_json_dump(self):
        rules = ProgressionRules()
        again = ProgressionRules.model_validate(rules.model_dump(mode="json"))
        assert again == rules


class TestValidation:

    def test_first_tier_must_start_at_zero(self):
        with pytest.raises(ValidationError, match="start at 0"):
            XPRules(streak_tiers=[StreakTier(min_streak=1, multiplier=1.0)])

    def test_tiers_must_not_decrease(self):
        with pytest.raises(ValidationError, match="never decrease"):
            XPRules(streak_tiers=[
                StreakTier(min_streak=0, multiplier=1.5),
                StreakTier(min_streak=5, multiplier=1.2),
            ])

    def test_tiers_must_be_sorted(self):
        with pytest.raises(ValidationError, match="strictly increasing"):
            XPRules(streak_tiers=[
                StreakTier(min_streak=0, multiplier=1.0),
                StreakTier(min_streak=7, multiplier=1.2),
                StreakTier(min_streak=3, multiplier=1.3),
            ])

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValidationError):
            StreakTier(min_streak=0, multiplier=0.9)

    def test_negative_base_xp_rejected(self):
        with pytest.raises(ValidationError, match="Negative base XP"):
            XPRules(base_xp_values={"Run": -5})

    def test_flat_level_curve_rejected(self):
        with pytest.raises(ValidationError):
            LevelCurve(base=100, exponent=0.5)
        with pytest.raises(ValidationError):
            LevelCurve(base=0.5, exponent=1.8)

    def test_rank_bands_must_increase(self):
        bands = {
            PlayerRank.BRONZE: 1,
            PlayerRank.SILVER: 20,
            PlayerRank.GOLD: 15,
            PlayerRank.PLATINUM: 51,
            PlayerRank.DIAMOND: 101,
        }
        with pytest.raises(ValidationError, match="strictly increasing"):
            LevelRules(rank_min_levels=bands)

    def test_rank_bands_complete(self):
        with pytest.raises(ValidationError, match="Missing rank bands"):
            LevelRules(rank_min_levels={PlayerRank.BRONZE: 1})

    def test_milestones_sorted_and_deduplicated(self):
        assert LevelRules(milestone_levels=[10, 5, 10]).milestone_levels == [5, 10]

    def test_quest_pool_must_cover_daily_count(self):
        with pytest.raises(ValidationError, match="quests_per_day"):
            QuestRules(quests_per_day=len(QuestType) + 1)


class TestLoadRulesFile:

    def test_partial_override(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "version: custom-2\n"
            "xp:\n"
            "  first_workout_multiplier: 1.5\n"
            "  base_xp_values:\n"
            "    Rowing: 180\n"
            "pet:\n"
            "  treats:\n"
            "    large:\n"
            "      cost: 45\n"
            "unlocks:\n"
            "  requirements:\n"
            "    \"top:4\":\n"
            "      kind: workouts\n"
            "      threshold: 25\n"
        )
        rules = load_rules_file(path)
        assert rules.version == "custom-2"
        assert rules.xp.first_workout_multiplier == 1.5
        # Mappings merge: new keys added, existing ones kept
        assert rules.xp.base_xp_values["Rowing"] == 180
        assert rules.xp.base_xp_values["Run"] == 200
        assert rules.pet.treats[PetTreat.LARGE].cost == 45
        assert rules.pet.treats[PetTreat.LARGE].happiness_boost == 30.0
        assert rules.unlocks.requirements["top:4"].kind == UnlockKind.WORKOUTS
        assert "headwear:1" in rules.unlocks.requirements
        # Untouched sections keep their defaults
        assert rules.levels == ProgressionRules().levels

    def test_example_file(self):
        path = Path(__file__).resolve().parent.parent / "config" / "progression_rules.example.yaml"
        rules = load_rules_file(path)
        templates = {t.name: t for t in default_templates(rules)}
        assert templates["Rowing"].workout_type == WorkoutType.CARDIO
        assert templates["Run"].workout_type == WorkoutType.CARDIO
        assert templates["Squats"].workout_type == WorkoutType.STRENGTH

    def test_lists_replace_defaults(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("levels:\n  milestone_levels: [10, 20]\n")
        assert load_rules_file(path).levels.milestone_levels == [10, 20]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("")
        assert load_rules_file(path) == ProgressionRules()

    def test_missing_file(self, tmp_path):
        with pytest.raises(RulesConfigError, match="not found"):
            load_rules_file(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("xp: [unclosed\n")
        with pytest.raises(RulesConfigError, match="Could not parse"):
            load_rules_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(RulesConfigError, match="mapping"):
            load_rules_file(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("xp:\n  streak_tiers:\n    - {min_streak: 2, multiplier: 1.0}\n")
        with pytest.raises(RulesConfigError) as exc_info:
            load_rules_file(path)
        assert exc_info.value.error_code == "RULES_CONFIG_ERROR"


class TestRulesService:

    def test_set_and_get(self):
        custom = ProgressionRules(version="pinned")
        RulesService.set(custom)
        assert get_rules() is custom

    def test_defaults_without_file(self, monkeypatch):
        monkeypatch.setattr(settings, "PROGRESSION_RULES_PATH", None)
        RulesService.reset()
        assert get_rules() == ProgressionRules()

    def test_reload_reads_configured_file(self, tmp_path, monkeypatch):
        path = tmp_path / "rules.yaml"
        path.write_text("version: from-file\n")
        monkeypatch.setattr(settings, "PROGRESSION_RULES_PATH", str(path))

        assert RulesService.reload().version == "from-file"
        path.write_text("version: edited\n")
        assert get_rules().version == "from-file"
        assert RulesService.reload().version == "edited"

    def test_bad_file_raises(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "PROGRESSION_RULES_PATH", str(tmp_path / "missing.yaml"))
        RulesService.reset()
        with pytest.raises(RulesConfigError):
            get_rules()

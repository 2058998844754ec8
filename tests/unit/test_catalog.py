"""Unit tests for the progression catalog (progression/gamification/catalog.py)"""
import json
import pytest

from progression.exceptions import CatalogError
from progression.gamification.catalog import Catalog, load_catalog
from progression.models.achievement import AchievementRequirement, RequirementType, TimeFrame
from progression.models.challenge import ChallengeDifficulty
from tests.helpers import make_achievement


def test_bundled_catalog_loads(catalog):
    assert catalog.version == 1
    assert catalog.get_achievement("daily_logger").requirements[0].type == RequirementType.CONSECUTIVE_DAYS_LOGGING
    assert catalog.get_achievement("daily_logger").requirements[0].target == 7
    assert catalog.get_quest("dosage_basics").xp_reward == 75
    assert catalog.get_achievement("nope") is None
    assert catalog.get_quest("nope") is None


def test_every_difficulty_has_a_template(catalog):
    for difficulty in ChallengeDifficulty:
        assert catalog.templates_for_difficulty(difficulty)


def test_catalog_is_immutable(catalog):
    with pytest.raises(Exception):
        catalog.version = 2


def test_duplicate_achievement_ids_rejected():
    achievement = make_achievement("dup", RequirementType.EXPERIENCES_LOGGED, 1)
    with pytest.raises(ValueError):
        Catalog(achievements=(achievement, achievement))


def test_unknown_prerequisite_rejected():
    with pytest.raises(ValueError):
        Catalog(achievements=(
            make_achievement("orphan", RequirementType.EXPERIENCES_LOGGED, 1, prerequisites=["ghost"]),
        ))


def test_windowed_requirement_rejected():
    achievement = make_achievement("weekly_logs", RequirementType.EXPERIENCES_LOGGED, 3)
    windowed = achievement.model_copy(update={
        "requirements": [AchievementRequirement(type=RequirementType.EXPERIENCES_LOGGED, target=3,
                                                time_frame=TimeFrame.WEEKLY)],
    })

    with pytest.raises(ValueError, match="time frame"):
        Catalog(achievements=(windowed,))


def test_all_time_requirement_accepted():
    achievement = make_achievement("lifetime_logs", RequirementType.EXPERIENCES_LOGGED, 3)
    lifetime = achievement.model_copy(update={
        "requirements": [AchievementRequirement(type=RequirementType.EXPERIENCES_LOGGED, target=3,
                                                time_frame=TimeFrame.ALL_TIME)],
    })

    assert Catalog(achievements=(lifetime,)).get_achievement("lifetime_logs") == lifetime


def test_load_synthetic_catalog(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "version": 7,
        "achievements": [make_achievement("one", RequirementType.EXPERIENCES_LOGGED, 1).model_dump(mode="json")],
    }))

    loaded = load_catalog(path)

    assert loaded.version == 7
    assert [a.id for a in loaded.achievements] == ["one"]


def test_load_missing_catalog(tmp_path):
    with pytest.raises(CatalogError) as exc_info:
        load_catalog(tmp_path / "missing.json")
    assert exc_info.value.path.endswith("missing.json")


def test_load_invalid_catalog(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"version": 1, "achievements": [{"id": "broken"}]}))

    with pytest.raises(CatalogError):
        load_catalog(path)

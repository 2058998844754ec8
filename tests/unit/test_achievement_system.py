"""Unit tests for Achievement System (progression/gamification/achievement_system.py)"""
import pytest

from progression.gamification.achievement_system import (
    METRICS,
    calculate_achievement_progress,
    check_and_award_achievements,
    get_achievement_progress,
    get_achievement_recommendations,
    is_achievement_completed,
    metric_value,
)
from progression.gamification.catalog import Catalog
from progression.models.achievement import RequirementType
from progression.models.quest import UserQuestProgress
from progression.models.safety import SafetyScore
from progression.models.state import ProgressionState
from progression.models.streak import Streak, StreakType
from tests.helpers import BASE_TIME, make_achievement


def _state_with_logs(count: int) -> ProgressionState:
    state = ProgressionState()
    state.counters.experiences_logged = count
    return state


# ============================================================================
# Metric Tests
# ============================================================================

def test_metric_values_read_state():
    state = ProgressionState()
    state.counters.integration_sessions = 4
    state.counters.substances_researched = ["lsd", "psilocybin"]
    state.streaks[StreakType.DAILY_LOGGING] = Streak(type=StreakType.DAILY_LOGGING, current_count=6)
    state.safety_score = SafetyScore(overall_score=91.7, last_updated=BASE_TIME)
    state.quest_progress.append(UserQuestProgress(quest_id="q", started_at=BASE_TIME, is_completed=True))

    assert metric_value(state, RequirementType.INTEGRATION_SESSIONS) == 4
    assert metric_value(state, RequirementType.SUBSTANCES_RESEARCHED) == 2
    assert metric_value(state, RequirementType.CONSECUTIVE_DAYS_LOGGING) == 6
    assert metric_value(state, RequirementType.SAFETY_SCORE_MAINTAINED) == 91
    assert metric_value(state, RequirementType.KNOWLEDGE_QUESTS_COMPLETED) == 1
    assert metric_value(state, RequirementType.LEVEL_REACHED) == 1


def test_missing_streak_and_score_read_as_zero():
    state = ProgressionState()
    assert metric_value(state, RequirementType.CONSECUTIVE_DAYS_LOGGING) == 0
    assert metric_value(state, RequirementType.SAFETY_SCORE_MAINTAINED) == 0


def test_every_requirement_type_has_a_metric():
    assert set(METRICS) == set(RequirementType)


# ============================================================================
# Unlock Tests
# ============================================================================

def test_unlock_awards_xp_once(small_catalog):
    state = _state_with_logs(2)

    unlocked = check_and_award_achievements(small_catalog, state, BASE_TIME)

    assert [a.id for a in unlocked] == ["two_logs", "after_two_logs"]
    assert state.level.total_xp == 25
    assert state.counters.xp_by_source["achievement"] == 25
    assert all(ua.unlocked_at == BASE_TIME for ua in state.achievements)

    # Second evaluation unlocks nothing new
    assert check_and_award_achievements(small_catalog, state, BASE_TIME) == []
    assert state.level.total_xp == 25
    assert len(state.achievements) == 2


def test_prerequisite_blocks_unlock(small_catalog):
    state = _state_with_logs(2)
    chained = small_catalog.get_achievement("after_two_logs")

    assert is_achievement_completed(state, chained) is False


def test_requirement_below_target_stays_locked(small_catalog):
    state = _state_with_logs(1)
    assert check_and_award_achievements(small_catalog, state, BASE_TIME) == []
    assert state.achievements == []


def test_all_requirements_must_hold(catalog):
    """integration_expert needs both integration sessions and detailed experiences"""
    state = ProgressionState()
    state.counters.integration_sessions = 50
    achievement = catalog.get_achievement("integration_expert")

    assert is_achievement_completed(state, achievement) is False
    state.counters.detailed_experiences = 10
    assert is_achievement_completed(state, achievement) is True


def test_level_achievement_unlocks_from_achievement_xp():
    """XP from one unlock can satisfy a level requirement later in the same call"""
    catalog = Catalog(achievements=(
        make_achievement("level_2", RequirementType.LEVEL_REACHED, 2, xp_reward=0),
        make_achievement("big_reward", RequirementType.EXPERIENCES_LOGGED, 1, xp_reward=150),
    ))
    state = _state_with_logs(1)

    unlocked = check_and_award_achievements(catalog, state, BASE_TIME)

    assert [a.id for a in unlocked] == ["big_reward", "level_2"]
    assert state.level.current_level == 2


# ============================================================================
# Progress & Recommendation Tests
# ============================================================================

def test_achievement_progress(catalog):
    state = ProgressionState()
    state.counters.safety_practices_used = 4
    achievement = catalog.get_achievement("safety_conscious")

    assert get_achievement_progress(state, achievement) == {"safety_practices_used": 4}
    progress = calculate_achievement_progress(state, achievement)
    assert progress == {'current': 4, 'required': 10, 'percentage': 40, 'description': "4/10"}


def test_progress_is_clamped(catalog):
    state = ProgressionState()
    state.counters.safety_practices_used = 25
    progress = calculate_achievement_progress(state, catalog.get_achievement("safety_conscious"))

    assert progress['current'] == 10
    assert progress['percentage'] == 100


def test_recommendations_only_close_achievements(catalog):
    state = ProgressionState()
    state.counters.safety_practices_used = 6  # safety_conscious 60%
    state.counters.dosage_precision = 4  # precise_measurer 80%
    state.counters.set_setting_documented = 1  # mindful_preparer 20%

    recommendations = get_achievement_recommendations(catalog, state, limit=5)
    ids = [r['achievement'].id for r in recommendations]

    assert ids[:2] == ["precise_measurer", "safety_conscious"]
    assert "mindful_preparer" not in ids


def test_recommendations_respect_limit(catalog):
    state = ProgressionState()
    state.counters.safety_practices_used = 9
    state.counters.dosage_precision = 4
    state.counters.set_setting_documented = 4

    assert len(get_achievement_recommendations(catalog, state, limit=2)) == 2

"""Unit tests for XP and Leveling System (progression/gamification/xp_system.py)"""
import pytest

from progression.exceptions import InvalidXPError
from progression.gamification.xp_system import (
    award_xp,
    level_from_total_xp,
    required_xp,
    total_xp_for_level,
    xp_for_event,
)
from progression.models.events import GamificationEventType
from progression.models.level import UserLevel


# ============================================================================
# Leveling Curve Tests
# ============================================================================

def test_required_xp_curve():
    """Test quadratic curve with a floor of 100"""
    assert required_xp(1) == 100
    assert required_xp(2) == 400
    assert required_xp(3) == 900
    assert required_xp(10) == 10000


def test_required_xp_strictly_increasing():
    """Each level costs more than the previous one"""
    for level in range(1, 100):
        assert required_xp(level + 1) > required_xp(level)


def test_total_xp_for_level():
    assert total_xp_for_level(1) == 0
    assert total_xp_for_level(2) == 100
    assert total_xp_for_level(3) == 500
    assert total_xp_for_level(4) == 1400


# ============================================================================
# Level Calculation Tests
# ============================================================================

def test_level_from_total_xp_zero():
    """Test level 1 with 0 XP"""
    level = level_from_total_xp(0)

    assert level.current_level == 1
    assert level.current_xp == 0
    assert level.xp_to_next_level == 100
    assert level.total_xp == 0


def test_level_from_total_xp_boundaries():
    """Reaching the threshold exactly moves to the next level"""
    assert level_from_total_xp(99).current_level == 1
    assert level_from_total_xp(100).current_level == 2
    assert level_from_total_xp(100).current_xp == 0
    assert level_from_total_xp(499).current_level == 2
    assert level_from_total_xp(500).current_level == 3


def test_level_from_total_xp_remainder_adds_up():
    """current_xp plus the cost of all completed levels equals total"""
    for total in list(range(0, 3000, 37)) + [100, 500, 1400, 3000]:
        level = level_from_total_xp(total)
        completed = sum(required_xp(lvl) for lvl in range(1, level.current_level))
        assert level.current_xp + completed == total
        assert 0 <= level.current_xp < level.xp_to_next_level
        assert level.xp_to_next_level == required_xp(level.current_level)


def test_level_from_total_xp_negative_rejected():
    with pytest.raises(InvalidXPError):
        level_from_total_xp(-1)


# ============================================================================
# XP Award Tests
# ============================================================================

def test_award_xp_fresh_level():
    """250 XP on a fresh level reaches level 2 with 150 XP into it"""
    level = award_xp(UserLevel(), 250)

    assert level.current_level == 2
    assert level.current_xp == 150
    assert level.total_xp == 250
    assert level.xp_to_next_level == 400


def test_award_xp_zero_is_noop():
    level = award_xp(UserLevel(), 0)
    assert level == UserLevel()


def test_award_xp_negative_rejected():
    with pytest.raises(InvalidXPError) as exc_info:
        award_xp(UserLevel(), -5)

    assert exc_info.value.value == -5
    assert exc_info.value.field == "xp"


def test_award_xp_does_not_mutate_input():
    original = UserLevel()
    award_xp(original, 150)
    assert original.total_xp == 0


def test_progress_percentage_clamped():
    level = level_from_total_xp(300)  # level 2, 200 of 400
    assert level.progress_percentage() == pytest.approx(0.5)
    assert UserLevel(current_xp=500, xp_to_next_level=100).progress_percentage() == 1.0


# ============================================================================
# Base XP Table Tests
# ============================================================================

@pytest.mark.parametrize("event_type,expected", [
    (GamificationEventType.EXPERIENCE_CREATED, 25),
    (GamificationEventType.EXPERIENCE_DETAILED, 50),
    (GamificationEventType.SAFETY_PRACTICE_USED, 10),
    (GamificationEventType.INTEGRATION_COMPLETED, 30),
    (GamificationEventType.QUEST_COMPLETED, 75),
    (GamificationEventType.KNOWLEDGE_GAINED, 15),
    (GamificationEventType.APP_LAUNCHED, 5),
    (GamificationEventType.WEEKLY_GOAL_MET, 0),
    (GamificationEventType.ACHIEVEMENT_UNLOCKED, 0),
])
def test_xp_for_event(event_type, expected):
    assert xp_for_event(event_type) == expected

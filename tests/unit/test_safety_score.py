"""Unit tests for metric counters and the safety score"""
import pytest
from datetime import date, timedelta

from progression.gamification.counters import apply_event, record_xp, safety_inputs_changed
from progression.gamification.safety_score import calculate_safety_score
from progression.models.events import GamificationEventType
from progression.models.safety import SafetyComponent, SafetyScore, ScoreTrend
from progression.models.state import MetricCounters
from tests.helpers import BASE_TIME, make_event


# ============================================================================
# Counter Tests
# ============================================================================

def test_experience_created_counts_log_and_active_day():
    counters = apply_event(MetricCounters(), make_event(GamificationEventType.EXPERIENCE_CREATED))

    assert counters.experiences_logged == 1
    assert counters.app_days_active == 1
    assert counters.last_active_date == date(2024, 1, 1)


def test_active_days_count_distinct_days():
    counters = MetricCounters()
    for hours in (0, 3, 30):
        counters = apply_event(counters, make_event(GamificationEventType.APP_LAUNCHED,
                                                    BASE_TIME + timedelta(hours=hours)))
    assert counters.app_days_active == 2


@pytest.mark.parametrize("practice,field", [
    ("reagent", "substance_tests"),
    ("testing", "substance_tests"),
    ("scale", "dosage_precision"),
    ("preparation", "set_setting_documented"),
    ("sitter", "harm_reduction_tools"),
])
def test_safety_practice_metadata(practice, field):
    counters = apply_event(MetricCounters(), make_event(
        GamificationEventType.SAFETY_PRACTICE_USED, practice_type=practice))

    assert counters.safety_practices_used == 1
    assert getattr(counters, field) == 1


def test_unknown_practice_only_counts_practice():
    counters = apply_event(MetricCounters(), make_event(
        GamificationEventType.SAFETY_PRACTICE_USED, practice_type="meditation"))

    assert counters.safety_practices_used == 1
    assert counters.substance_tests == 0
    assert counters.harm_reduction_tools == 0


def test_researched_substances_are_distinct():
    counters = MetricCounters()
    for substance in ("LSD", "lsd ", "psilocybin"):
        counters = apply_event(counters, make_event(
            GamificationEventType.KNOWLEDGE_GAINED, substance=substance))
    counters = apply_event(counters, make_event(
        GamificationEventType.RESEARCH_DOCUMENTED, substance="ketamine"))

    assert counters.substances_researched == ["lsd", "psilocybin", "ketamine"]
    assert counters.research_documented == 1


def test_apply_event_does_not_mutate_input():
    original = MetricCounters()
    apply_event(original, make_event(GamificationEventType.EXPERIENCE_CREATED))
    assert original.experiences_logged == 0


def test_record_xp_and_safety_inputs():
    counters = MetricCounters()
    record_xp(counters, "achievement", 50)
    record_xp(counters, "achievement", 25)
    record_xp(counters, "manual", 0)

    assert counters.xp_by_source == {"achievement": 75}
    assert safety_inputs_changed(MetricCounters(), MetricCounters(integration_sessions=1)) is True
    assert safety_inputs_changed(MetricCounters(), MetricCounters(app_days_active=3)) is False


# ============================================================================
# Safety Score Tests
# ============================================================================

def test_no_experiences_no_score():
    assert calculate_safety_score(MetricCounters(), None, BASE_TIME) is None


def test_score_components():
    counters = MetricCounters(
        experiences_logged=4,
        dosage_precision=4,
        substance_tests=2,
        set_setting_documented=1,
        integration_sessions=8,  # clamped to 100
    )

    score = calculate_safety_score(counters, None, BASE_TIME)

    assert score.components[SafetyComponent.DOSAGE_PRECISION] == 100.0
    assert score.components[SafetyComponent.TESTING_FREQUENCY] == 50.0
    assert score.components[SafetyComponent.SET_SETTING_PREP] == 25.0
    assert score.components[SafetyComponent.INTEGRATION_PRACTICE] == 100.0
    assert score.components[SafetyComponent.HARM_REDUCTION_TOOLS] == 0.0
    assert score.overall_score == pytest.approx(45.8)
    assert score.last_updated == BASE_TIME
    assert 0 <= score.overall_score <= 100


def test_improvement_areas_for_weak_components():
    counters = MetricCounters(experiences_logged=2, dosage_precision=2)
    score = calculate_safety_score(counters, None, BASE_TIME)

    assert len(score.improvement_areas) == 5
    assert any("scale" in area for area in score.improvement_areas) is False


def test_every_component_is_scored():
    score = calculate_safety_score(MetricCounters(experiences_logged=1), None, BASE_TIME)

    assert set(score.components) == set(SafetyComponent)


def test_trend_needs_history():
    counters = MetricCounters(experiences_logged=2, dosage_precision=2)
    previous = SafetyScore(overall_score=0.0, last_updated=BASE_TIME)

    assert calculate_safety_score(counters, previous, BASE_TIME).trend == ScoreTrend.INSUFFICIENT_DATA


@pytest.mark.parametrize("previous_score,trend", [
    (0.0, ScoreTrend.IMPROVING),
    (16.7, ScoreTrend.STABLE),
    (40.0, ScoreTrend.DECLINING),
])
def test_trend_against_previous(previous_score, trend):
    counters = MetricCounters(experiences_logged=3, dosage_precision=3)  # overall 16.7
    previous = SafetyScore(overall_score=previous_score, last_updated=BASE_TIME)

    assert calculate_safety_score(counters, previous, BASE_TIME).trend == trend

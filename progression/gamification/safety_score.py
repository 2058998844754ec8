"""
Safety Score

Derives a 0-100 harm-reduction score from the aggregate counters. Each
component is the share of logged experiences accompanied by that practice
(clamped to 100); the overall score is the mean of the components.
"""

from typing import Optional
from datetime import datetime
import logging

from progression.models.safety import SafetyComponent, SafetyScore, ScoreTrend
from progression.models.state import MetricCounters

logger = logging.getLogger(__name__)

# Below this many experiences the trend is not meaningful
MIN_EXPERIENCES_FOR_TREND = 3

# Score movement (points) that counts as a change in trend
TREND_THRESHOLD = 2.0

# Components under this value are reported as improvement areas
IMPROVEMENT_THRESHOLD = 50.0

COMPONENT_SOURCES = {
    SafetyComponent.DOSAGE_PRECISION: "dosage_precision",
    SafetyComponent.TESTING_FREQUENCY: "substance_tests",
    SafetyComponent.SET_SETTING_PREP: "set_setting_documented",
    SafetyComponent.INTEGRATION_PRACTICE: "integration_sessions",
    SafetyComponent.HARM_REDUCTION_TOOLS: "harm_reduction_tools",
    SafetyComponent.RESEARCH_QUALITY: "research_documented",
}

IMPROVEMENT_HINTS = {
    SafetyComponent.DOSAGE_PRECISION: "Measure doses with a scale and record them",
    SafetyComponent.TESTING_FREQUENCY: "Test substances with reagent kits before use",
    SafetyComponent.SET_SETTING_PREP: "Document your set and setting before experiences",
    SafetyComponent.INTEGRATION_PRACTICE: "Reflect on experiences afterwards",
    SafetyComponent.HARM_REDUCTION_TOOLS: "Use harm reduction tools such as sitters or supplements",
    SafetyComponent.RESEARCH_QUALITY: "Research substances before trying them",
}


def calculate_safety_score(
    counters: MetricCounters,
    previous: Optional[SafetyScore],
    now: datetime
) -> Optional[SafetyScore]:
    """
    Compute the safety score from counters

    Args:
        counters: Aggregate metric counters
        previous: Last score, used to derive the trend
        now: Timestamp for last_updated

    Returns:
        New SafetyScore, or None while no experience has been logged
    """
    experiences = counters.experiences_logged
    if experiences == 0:
        return None

    components = {
        component: round(min(1.0, getattr(counters, source) / experiences) * 100, 1)
        for component, source in COMPONENT_SOURCES.items()
    }
    overall = round(sum(components.values()) / len(components), 1)

    if experiences < MIN_EXPERIENCES_FOR_TREND or previous is None:
        trend = ScoreTrend.INSUFFICIENT_DATA
    elif overall - previous.overall_score > TREND_THRESHOLD:
        trend = ScoreTrend.IMPROVING
    elif previous.overall_score - overall > TREND_THRESHOLD:
        trend = ScoreTrend.DECLINING
    else:
        trend = ScoreTrend.STABLE

    improvement_areas = [
        IMPROVEMENT_HINTS[component]
        for component, value in components.items()
        if value < IMPROVEMENT_THRESHOLD
    ]

    logger.debug(f"Safety score recalculated: {overall} ({trend.value})")

    return SafetyScore(
        overall_score=overall,
        components=components,
        trend=trend,
        last_updated=now,
        improvement_areas=improvement_areas,
    )

"""
Aggregate metric counters

Translates each processed event (type + metadata) into increments on the
MetricCounters that achievement and challenge requirements are evaluated
against.

Recognised metadata:
- SAFETY_PRACTICE_USED: "practice_type" (e.g. testing, reagent, scale, sitter, supplement)
- KNOWLEDGE_GAINED / RESEARCH_DOCUMENTED: "substance"
"""

import logging

from progression.models.events import GamificationEvent, GamificationEventType
from progression.models.state import MetricCounters

logger = logging.getLogger(__name__)

TESTING_PRACTICES = {"test", "testing", "reagent"}
DOSAGE_PRACTICES = {"dosage", "scale", "measured"}
SET_SETTING_PRACTICES = {"set", "setting", "preparation"}
HARM_REDUCTION_TOOLS = TESTING_PRACTICES | {
    "scale", "sitter", "supplement", "vitamin", "magnesium", "antioxidant",
}

# Counter fields the safety score is derived from
SAFETY_FIELDS = (
    "experiences_logged",
    "substance_tests",
    "dosage_precision",
    "set_setting_documented",
    "integration_sessions",
    "harm_reduction_tools",
    "research_documented",
)


def apply_event(counters: MetricCounters, event: GamificationEvent) -> MetricCounters:
    """
    Return counters updated for one event

    Args:
        counters: Current counters (not modified)
        event: Event being processed

    Returns:
        New MetricCounters
    """
    updated = counters.model_copy(deep=True)
    event_type = event.type

    if event_type == GamificationEventType.EXPERIENCE_CREATED:
        updated.experiences_logged += 1

    elif event_type == GamificationEventType.EXPERIENCE_DETAILED:
        updated.detailed_experiences += 1

    elif event_type == GamificationEventType.SAFETY_PRACTICE_USED:
        updated.safety_practices_used += 1
        practice = event.metadata.get("practice_type", "").strip().lower()
        if practice in TESTING_PRACTICES:
            updated.substance_tests += 1
        if practice in DOSAGE_PRACTICES:
            updated.dosage_precision += 1
        if practice in SET_SETTING_PRACTICES:
            updated.set_setting_documented += 1
        if practice in HARM_REDUCTION_TOOLS:
            updated.harm_reduction_tools += 1

    elif event_type == GamificationEventType.INTEGRATION_COMPLETED:
        updated.integration_sessions += 1

    elif event_type == GamificationEventType.QUEST_COMPLETED:
        updated.knowledge_quests_completed += 1

    elif event_type == GamificationEventType.WEEKLY_GOAL_MET:
        updated.weekly_goals_met += 1

    elif event_type == GamificationEventType.RESEARCH_DOCUMENTED:
        updated.research_documented += 1

    if event_type in (GamificationEventType.KNOWLEDGE_GAINED, GamificationEventType.RESEARCH_DOCUMENTED):
        substance = event.metadata.get("substance", "").strip().lower()
        if substance and substance not in updated.substances_researched:
            updated.substances_researched.append(substance)

    # Any event counts as app activity for its (UTC) day
    event_day = event.timestamp.date()
    if updated.last_active_date is None or event_day > updated.last_active_date:
        updated.app_days_active += 1
        updated.last_active_date = event_day

    return updated


def record_xp(counters: MetricCounters, source: str, amount: int) -> None:
    """Add XP to the per-source breakdown (in place, on a draft)"""
    if amount:
        counters.xp_by_source[source] = counters.xp_by_source.get(source, 0) + amount


def safety_inputs_changed(before: MetricCounters, after: MetricCounters) -> bool:
    """True if any counter feeding the safety score moved"""
    return any(getattr(before, name) != getattr(after, name) for name in SAFETY_FIELDS)

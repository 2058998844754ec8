"""
Multi-Category Streak Tracking System

Tracks streaks across different activity categories:
- daily_logging (experience documentation)
- integration_practice (post-experience reflection)
- app_usage
- safety_habits, learning_streak (no event maps to these; recorded through
  ProgressionEngine.update_streak)

Each streak is a two-state machine (dormant/active). Every qualifying
activity either continues the streak or, after a gap of more than one day,
resets it to 1. Only best_count survives a reset.
"""

from typing import Optional, Union
from datetime import datetime
import logging

from progression.exceptions import UnknownStreakTypeError
from progression.models.events import GamificationEventType
from progression.models.streak import Streak, StreakType
from progression.utils.datetime_helpers import ensure_utc, whole_days_between

logger = logging.getLogger(__name__)

# Gap (in whole days) above which a streak is reset
MAX_GAP_DAYS = 1

STREAK_MILESTONES = (7, 14, 30, 100)

EVENT_STREAKS: dict[GamificationEventType, StreakType] = {
    GamificationEventType.EXPERIENCE_CREATED: StreakType.DAILY_LOGGING,
    GamificationEventType.INTEGRATION_COMPLETED: StreakType.INTEGRATION_PRACTICE,
    GamificationEventType.APP_LAUNCHED: StreakType.APP_USAGE,
}


def streak_for_event(event_type: GamificationEventType) -> Optional[StreakType]:
    """Streak touched by an event type, if any"""
    return EVENT_STREAKS.get(event_type)


def parse_streak_type(value: Union[str, StreakType]) -> StreakType:
    """
    Resolve a streak type from an enum, value or name

    Raises:
        UnknownStreakTypeError: if nothing matches
    """
    if isinstance(value, StreakType):
        return value
    normalized = str(value).strip().lower()
    for streak_type in StreakType:
        if normalized in (streak_type.value, streak_type.name.lower()):
            return streak_type
    raise UnknownStreakTypeError(value, operation="parse_streak_type")


def should_reset(streak: Streak, at: datetime) -> bool:
    """True if an activity at `at` would break the streak"""
    if streak.last_activity_date is None:
        return False
    return whole_days_between(streak.last_activity_date, at) > MAX_GAP_DAYS


def is_expired(streak: Streak, now: datetime) -> bool:
    """Streak is dormant or would reset on the next activity"""
    return not streak.is_active or should_reset(streak, now)


def update_streak(streak: Optional[Streak], streak_type: StreakType, at: datetime) -> Streak:
    """
    Apply one qualifying activity to a streak

    Logic:
    - No previous activity: start at 1
    - Gap of more than 1 whole day since last activity: reset to 1
    - Otherwise: increment
    - best_count tracks the maximum current_count ever reached,
      including the count a reset discards

    Args:
        streak: Current streak state, or None if never created
        streak_type: Type of the streak
        at: Time of the activity

    Returns:
        New Streak state (input is not modified)
    """
    at = ensure_utc(at)
    if streak is None:
        streak = Streak(type=streak_type)

    if streak.last_activity_date is None:
        new_count = 1
        logger.debug(f"Started {streak_type.value} streak")
    elif should_reset(streak, at):
        new_count = 1
        logger.info(
            f"{streak_type.value} streak broken. Was {streak.current_count}, "
            f"gap was {whole_days_between(streak.last_activity_date, at)} days"
        )
    else:
        new_count = streak.current_count + 1

    return streak.model_copy(update={
        "current_count": new_count,
        "best_count": max(streak.best_count, streak.current_count, new_count),
        "last_activity_date": at,
        "is_active": True,
    })


def reached_milestone(before: Optional[Streak], after: Streak) -> Optional[int]:
    """Milestone crossed by this update, if the count just landed on one"""
    previous = before.current_count if before else 0
    if after.current_count != previous and after.current_count in STREAK_MILESTONES:
        return after.current_count
    return None

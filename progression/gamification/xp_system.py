"""
XP and Leveling System

Pure functions mapping total XP to level state.

Leveling Curve:
- XP required to complete level L: max(100, L^2 * 100)
- Level 1: 100 XP, level 2: 400 XP, level 3: 900 XP, ...

XP Award Rules (base XP per event type):
- Experience created: 25 XP
- Detailed experience: 50 XP
- Safety practice used: 10 XP
- Integration completed: 30 XP
- Quest completed: 75 XP
- Knowledge gained: 15 XP
- App launched: 5 XP
- Everything else: 0 XP (achievement and challenge rewards are awarded separately)
"""

import logging

from progression.exceptions import InvalidXPError
from progression.models.events import GamificationEventType
from progression.models.level import UserLevel

logger = logging.getLogger(__name__)

BASE_XP: dict[GamificationEventType, int] = {
    GamificationEventType.EXPERIENCE_CREATED: 25,
    GamificationEventType.EXPERIENCE_DETAILED: 50,
    GamificationEventType.SAFETY_PRACTICE_USED: 10,
    GamificationEventType.INTEGRATION_COMPLETED: 30,
    GamificationEventType.QUEST_COMPLETED: 75,
    GamificationEventType.KNOWLEDGE_GAINED: 15,
    GamificationEventType.APP_LAUNCHED: 5,
}


def required_xp(level: int) -> int:
    """XP needed to advance from `level` to `level + 1`"""
    return max(100, level * level * 100)


def level_from_total_xp(total_xp: int) -> UserLevel:
    """
    Calculate level state from total XP

    Args:
        total_xp: Lifetime XP, must be >= 0

    Returns:
        UserLevel where current_xp is the remainder inside the current level

    Raises:
        InvalidXPError: if total_xp is negative
    """
    if total_xp < 0:
        raise InvalidXPError(f"Total XP must not be negative, got {total_xp}", value=total_xp)

    level = 1
    accumulated = 0
    while accumulated + required_xp(level) <= total_xp:
        accumulated += required_xp(level)
        level += 1

    return UserLevel(
        current_level=level,
        current_xp=total_xp - accumulated,
        xp_to_next_level=required_xp(level),
        total_xp=total_xp,
    )


def total_xp_for_level(level: int) -> int:
    """Total XP at which `level` is first reached"""
    return sum(required_xp(lvl) for lvl in range(1, level))


def award_xp(level: UserLevel, amount: int) -> UserLevel:
    """
    Add XP to a level state

    Returns:
        New UserLevel recomputed from the new total

    Raises:
        InvalidXPError: if amount is negative
    """
    if amount < 0:
        raise InvalidXPError(f"XP amount must not be negative, got {amount}", value=amount)
    return level_from_total_xp(level.total_xp + amount)


def xp_for_event(event_type: GamificationEventType) -> int:
    """Base XP for an event type (0 for types without a reward)"""
    return BASE_XP.get(event_type, 0)

"""Shared test helpers for progression engine tests"""
from datetime import datetime, timedelta, timezone

from progression.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementRequirement,
    AchievementTier,
    RequirementType,
)
from progression.models.events import GamificationEvent, GamificationEventType


# A Monday, so the first challenge week is [BASE_TIME - 12h, BASE_TIME + 6.5d)
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for engine operations without an event timestamp"""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, hours: float = 0) -> datetime:
        self.now = self.now + timedelta(days=days, hours=hours)
        return self.now


def make_event(event_type: GamificationEventType, at: datetime = BASE_TIME, **metadata) -> GamificationEvent:
    """Build an event with string metadata"""
    return GamificationEvent(
        type=event_type,
        timestamp=at,
        metadata={k: str(v) for k, v in metadata.items()},
    )


def make_achievement(achievement_id: str, requirement_type: RequirementType, target: int,
                     xp_reward: int = 10, prerequisites=None) -> Achievement:
    return Achievement(
        id=achievement_id,
        name=achievement_id.replace("_", " ").title(),
        description=f"Reach {target} {requirement_type.value}",
        category=AchievementCategory.MILESTONE,
        tier=AchievementTier.BRONZE,
        xp_reward=xp_reward,
        requirements=[AchievementRequirement(type=requirement_type, target=target)],
        prerequisites=prerequisites or [],
    )

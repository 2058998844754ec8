"""Event and result models for the progression engine"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from progression.models.achievement import Achievement
from progression.models.challenge import WeeklyChallenge
from progression.models.level import UserLevel
from progression.models.streak import Streak
from progression.utils.datetime_helpers import ensure_utc, now_utc


class GamificationEventType(str, Enum):
    """Trackable user actions"""
    EXPERIENCE_CREATED = "experience_created"
    EXPERIENCE_DETAILED = "experience_detailed"  # High completeness score
    SAFETY_PRACTICE_USED = "safety_practice_used"
    INTEGRATION_COMPLETED = "integration_completed"
    STREAK_MILESTONE = "streak_milestone"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    QUEST_COMPLETED = "quest_completed"
    WEEKLY_GOAL_MET = "weekly_goal_met"
    KNOWLEDGE_GAINED = "knowledge_gained"
    APP_LAUNCHED = "app_launched"
    RESEARCH_DOCUMENTED = "research_documented"


class GamificationEvent(BaseModel):
    """Single input to the engine (immutable)"""
    model_config = ConfigDict(frozen=True)

    type: GamificationEventType
    timestamp: datetime = Field(default_factory=now_utc)
    experience_id: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)
    xp_awarded: int = 0

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store all event times as aware UTC"""
        return ensure_utc(v)


class NotificationType(str, Enum):
    """Kinds of user-facing notifications"""
    XP_GAINED = "xp_gained"
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    STREAK_MILESTONE = "streak_milestone"
    QUEST_AVAILABLE = "quest_available"
    CHALLENGE_COMPLETED = "challenge_completed"
    SAFETY_IMPROVEMENT = "safety_improvement"
    WEEKLY_SUMMARY = "weekly_summary"


class GamificationNotification(BaseModel):
    """Notification forwarded to the presentation layer"""
    type: NotificationType
    title: str
    message: str
    icon: Optional[str] = None
    action_label: Optional[str] = None
    action_data: dict[str, str] = Field(default_factory=dict)


class GamificationResult(BaseModel):
    """Outcome of processing one event"""
    xp_awarded: int = 0  # Base XP for the event itself
    bonus_xp: int = 0  # Achievement and challenge rewards earned on the way
    new_achievements: list[Achievement] = Field(default_factory=list)
    streak_updates: list[Streak] = Field(default_factory=list)
    level_up: bool = False
    new_level: Optional[UserLevel] = None
    notifications: list[GamificationNotification] = Field(default_factory=list)
    completed_challenge: Optional[WeeklyChallenge] = None

    @property
    def total_xp_awarded(self) -> int:
        return self.xp_awarded + self.bonus_xp

    def merge(self, other: "GamificationResult") -> "GamificationResult":
        """Combine two results; the later level wins"""
        return GamificationResult(
            xp_awarded=self.xp_awarded + other.xp_awarded,
            bonus_xp=self.bonus_xp + other.bonus_xp,
            new_achievements=self.new_achievements + other.new_achievements,
            streak_updates=self.streak_updates + other.streak_updates,
            level_up=self.level_up or other.level_up,
            new_level=other.new_level or self.new_level,
            notifications=self.notifications + other.notifications,
            completed_challenge=other.completed_challenge or self.completed_challenge,
        )

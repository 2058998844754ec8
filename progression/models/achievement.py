"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    SAFETY_FIRST = "safety_first"  # Testing, dosage precision, set/setting preparation
    KNOWLEDGE_SEEKER = "knowledge_seeker"  # Learning about substances and interactions
    CONSISTENCY = "consistency"  # Regular journaling and reflection habits
    INTEGRATION = "integration"  # Post-experience processing and insights
    COMMUNITY_CARE = "community_care"
    HARM_REDUCTION = "harm_reduction"
    MILESTONE = "milestone"  # General app usage milestones


class AchievementTier(str, Enum):
    """Achievement tiers/difficulty levels"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class RequirementType(str, Enum):
    """Aggregate metrics a requirement can target"""
    EXPERIENCES_LOGGED = "experiences_logged"
    CONSECUTIVE_DAYS_LOGGING = "consecutive_days_logging"
    DETAILED_EXPERIENCES = "detailed_experiences"
    SAFETY_PRACTICES_USED = "safety_practices_used"
    SUBSTANCES_RESEARCHED = "substances_researched"
    INTEGRATION_SESSIONS = "integration_sessions"
    DOSAGE_PRECISION = "dosage_precision"
    SET_SETTING_DOCUMENTED = "set_setting_documented"
    HARM_REDUCTION_TOOLS = "harm_reduction_tools"
    KNOWLEDGE_QUESTS_COMPLETED = "knowledge_quests_completed"
    WEEKLY_GOALS_MET = "weekly_goals_met"
    APP_DAYS_ACTIVE = "app_days_active"
    RESEARCH_DOCUMENTED = "research_documented"
    SAFETY_SCORE_MAINTAINED = "safety_score_maintained"
    LEVEL_REACHED = "level_reached"


class TimeFrame(str, Enum):
    """Window a requirement is measured over"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ALL_TIME = "all_time"


class AchievementRequirement(BaseModel):
    """Single unlock predicate: metric(type) >= target"""
    model_config = ConfigDict(frozen=True)

    type: RequirementType
    target: int = Field(ge=0)
    time_frame: Optional[TimeFrame] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class Achievement(BaseModel):
    """Achievement definition"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: AchievementCategory
    tier: AchievementTier
    xp_reward: int = Field(ge=0)
    icon: str = ""
    requirements: list[AchievementRequirement]
    is_hidden: bool = False  # Hidden until requirements are close to completion
    prerequisites: list[str] = Field(default_factory=list)  # Other achievement ids


class UserAchievement(BaseModel):
    """User's unlocked achievement"""
    achievement_id: str
    unlocked_at: datetime
    progress: dict[str, int] = Field(default_factory=dict)
    is_completed: bool = True

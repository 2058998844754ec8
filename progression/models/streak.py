"""Streak models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class StreakType(str, Enum):
    """Streak categories"""
    DAILY_LOGGING = "daily_logging"  # Daily experience documentation
    INTEGRATION_PRACTICE = "integration_practice"  # Post-experience reflection
    SAFETY_HABITS = "safety_habits"  # Safety practice documentation
    LEARNING_STREAK = "learning_streak"  # Knowledge quest completion
    APP_USAGE = "app_usage"  # Daily app engagement


class Streak(BaseModel):
    """Continuity state for one streak type"""
    type: StreakType
    current_count: int = Field(default=0, ge=0)
    best_count: int = Field(default=0, ge=0)
    last_activity_date: Optional[datetime] = None
    is_active: bool = False

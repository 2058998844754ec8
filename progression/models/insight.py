"""Progress insight models"""
from enum import Enum
from typing import Any
from pydantic import BaseModel, Field


class InsightType(str, Enum):
    """What an insight is about"""
    LEVEL_PROGRESS = "level_progress"
    ACHIEVEMENT_OPPORTUNITY = "achievement_opportunity"
    STREAK_ENCOURAGEMENT = "streak_encouragement"
    SAFETY_IMPROVEMENT = "safety_improvement"
    LEARNING_SUGGESTION = "learning_suggestion"
    CONSISTENCY_FEEDBACK = "consistency_feedback"


class ProgressInsight(BaseModel):
    """Short suggestion derived from the current progression state"""
    type: InsightType
    title: str
    description: str
    actionable: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)

"""Weekly challenge models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from progression.models.achievement import RequirementType


class ChallengeCategory(str, Enum):
    """Challenge focus areas"""
    SAFETY = "safety"
    KNOWLEDGE = "knowledge"
    MINDFULNESS = "mindfulness"
    DOCUMENTATION = "documentation"
    COMMUNITY = "community"


class ChallengeDifficulty(str, Enum):
    """Challenge difficulty levels"""
    BEGINNER = "beginner"  # Simple, single-action challenges
    INTERMEDIATE = "intermediate"  # Multi-step or consistency challenges
    ADVANCED = "advanced"  # Complex, long-term challenges
    EXPERT = "expert"


class ChallengeRequirement(BaseModel):
    """Metric target inside a challenge"""
    model_config = ConfigDict(frozen=True)

    type: RequirementType
    target: int = Field(gt=0)
    description: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)


class ChallengeTemplate(BaseModel):
    """Catalog form of a weekly challenge"""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    category: ChallengeCategory
    difficulty: ChallengeDifficulty
    xp_reward: int = Field(ge=0)
    requirements: list[ChallengeRequirement]


class WeeklyChallenge(BaseModel):
    """Time-boxed challenge instance"""
    id: str
    title: str
    description: str
    category: ChallengeCategory
    difficulty: ChallengeDifficulty
    xp_reward: int
    requirements: list[ChallengeRequirement]
    start_date: datetime
    end_date: datetime
    is_active: bool = True

    def covers(self, moment: datetime) -> bool:
        """True if moment falls inside [start_date, end_date)"""
        return self.start_date <= moment < self.end_date


class ChallengeProgress(BaseModel):
    """User's progress on the current challenge"""
    challenge_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    current_metrics: dict[RequirementType, int] = Field(default_factory=dict)
    is_completed: bool = False

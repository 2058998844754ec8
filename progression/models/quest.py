"""Knowledge quest models"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class QuestCategory(str, Enum):
    """Quest topics"""
    SUBSTANCE_KNOWLEDGE = "substance_knowledge"
    INTERACTION_SAFETY = "interaction_safety"
    DOSAGE_CALCULATION = "dosage_calculation"
    SET_SETTING = "set_setting"
    HARM_REDUCTION = "harm_reduction"
    INTEGRATION_SKILLS = "integration_skills"
    RISK_ASSESSMENT = "risk_assessment"


class QuestDifficulty(str, Enum):
    """Quest difficulty levels"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class QuestStepType(str, Enum):
    """Kinds of quest steps"""
    INFORMATION = "information"
    QUIZ = "quiz"
    PRACTICAL = "practical"
    REFLECTION = "reflection"
    SIMULATION = "simulation"


class QuestStep(BaseModel):
    """One ordered step of a quest"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    type: QuestStepType
    content: str = ""
    required_answer: Optional[str] = None  # For quiz steps


class KnowledgeQuest(BaseModel):
    """Quest definition"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    category: QuestCategory
    difficulty: QuestDifficulty
    xp_reward: int = Field(ge=0)
    estimated_time_minutes: int = 0
    prerequisites: list[str] = Field(default_factory=list)
    steps: list[QuestStep]


class UserQuestProgress(BaseModel):
    """User's progress through a quest"""
    quest_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    current_step_index: int = 0
    step_progress: dict[str, bool] = Field(default_factory=dict)
    is_completed: bool = False

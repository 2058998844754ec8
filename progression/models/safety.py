"""Safety score models"""
from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field


class SafetyComponent(str, Enum):
    """Harm-reduction practice areas contributing to the score"""
    DOSAGE_PRECISION = "dosage_precision"
    TESTING_FREQUENCY = "testing_frequency"
    SET_SETTING_PREP = "set_setting_prep"
    INTEGRATION_PRACTICE = "integration_practice"
    HARM_REDUCTION_TOOLS = "harm_reduction_tools"
    RESEARCH_QUALITY = "research_quality"


class ScoreTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    INSUFFICIENT_DATA = "insufficient_data"


class SafetyScore(BaseModel):
    """Composite harm-reduction score"""
    overall_score: float = Field(ge=0.0, le=100.0)
    components: dict[SafetyComponent, float] = Field(default_factory=dict)
    trend: ScoreTrend = ScoreTrend.INSUFFICIENT_DATA
    last_updated: datetime
    improvement_areas: list[str] = Field(default_factory=list)

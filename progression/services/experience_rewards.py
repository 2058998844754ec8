"""
ExperienceRewardService - Journal experience gamification

Turns a saved journal experience into gamification events:
- EXPERIENCE_CREATED for every experience
- EXPERIENCE_DETAILED when the entry is well documented
- SAFETY_PRACTICE_USED once per safety practice mentioned
- INTEGRATION_COMPLETED when the notes show reflection

Each event goes through the engine in order and the results are merged.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from progression.gamification.engine import ProgressionEngine
from progression.models.events import GamificationEvent, GamificationEventType, GamificationResult
from progression.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

SAFETY_KEYWORDS = (
    "test", "testing", "reagent", "dosage", "scale", "measured",
    "set", "setting", "preparation", "sitter", "safe", "safety",
    "supplement", "vitamin", "magnesium", "antioxidant",
)

INTEGRATION_KEYWORDS = (
    "insight", "learn", "reflect", "understand", "realize",
    "integration", "meaning", "takeaway", "lesson",
)

# Completeness above this marks an experience as detailed
DETAILED_THRESHOLD = 0.6


class IntegrationQuality(str, Enum):
    NONE = "none"
    BASIC = "basic"
    MODERATE = "moderate"
    DEEP = "deep"


class ExperienceRecord(BaseModel):
    """Journal entry as saved by the journal"""
    id: str
    title: str = ""
    text: str = ""
    created_at: datetime = Field(default_factory=now_utc)


@dataclass
class ExperienceQualityAnalysis:
    completeness_score: float
    is_detailed: bool
    has_notes: bool
    has_set_setting: bool
    safety_practices: List[str] = field(default_factory=list)
    integration_quality: IntegrationQuality = IntegrationQuality.NONE

    @property
    def has_integration_notes(self) -> bool:
        return self.integration_quality != IntegrationQuality.NONE


def _words(text: str) -> set[str]:
    return set(re.findall(r"[a-z]+", text.lower()))


def _mentions(words: set[str], keyword: str) -> bool:
    """Any word starting with the keyword ("learn" matches "learned")"""
    return any(word.startswith(keyword) for word in words)


def analyze_experience(experience: ExperienceRecord) -> ExperienceQualityAnalysis:
    """
    Score how thoroughly an experience is documented

    Scoring:
    - Title present: +0.1
    - Notes present: +0.3
    - Each distinct safety keyword mentioned: +0.05
    The score is capped at 1.0.

    Args:
        experience: Journal entry

    Returns:
        ExperienceQualityAnalysis
    """
    score = 0.0
    if experience.title.strip():
        score += 0.1
    if experience.text.strip():
        score += 0.3

    words = _words(f"{experience.title} {experience.text}")
    safety_practices = [keyword for keyword in SAFETY_KEYWORDS if _mentions(words, keyword)]
    score += 0.05 * len(safety_practices)

    if any(_mentions(words, keyword) for keyword in INTEGRATION_KEYWORDS):
        length = len(experience.text)
        if length > 500:
            quality = IntegrationQuality.DEEP
        elif length > 200:
            quality = IntegrationQuality.MODERATE
        else:
            quality = IntegrationQuality.BASIC
    else:
        quality = IntegrationQuality.NONE

    return ExperienceQualityAnalysis(
        completeness_score=min(score, 1.0),
        is_detailed=score > DETAILED_THRESHOLD,
        has_notes=bool(experience.text.strip()),
        has_set_setting="set" in words or "setting" in words,
        safety_practices=safety_practices,
        integration_quality=quality,
    )


def build_events(
    experience: ExperienceRecord,
    analysis: ExperienceQualityAnalysis,
    timestamp: Optional[datetime] = None
) -> List[GamificationEvent]:
    """Events describing one experience, in processing order"""
    timestamp = timestamp or experience.created_at
    events = [
        GamificationEvent(
            type=GamificationEventType.EXPERIENCE_CREATED,
            timestamp=timestamp,
            experience_id=experience.id,
        )
    ]

    if analysis.is_detailed:
        events.append(GamificationEvent(
            type=GamificationEventType.EXPERIENCE_DETAILED,
            timestamp=timestamp,
            experience_id=experience.id,
            metadata={
                "completeness_score": f"{analysis.completeness_score:.2f}",
                "has_notes": str(analysis.has_notes).lower(),
                "has_set_setting": str(analysis.has_set_setting).lower(),
            },
        ))

    for practice in analysis.safety_practices:
        events.append(GamificationEvent(
            type=GamificationEventType.SAFETY_PRACTICE_USED,
            timestamp=timestamp,
            experience_id=experience.id,
            metadata={"practice_type": practice},
        ))

    if analysis.has_integration_notes:
        events.append(GamificationEvent(
            type=GamificationEventType.INTEGRATION_COMPLETED,
            timestamp=timestamp,
            experience_id=experience.id,
            metadata={"integration_quality": analysis.integration_quality.value},
        ))

    return events


class ExperienceRewardService:
    """
    Service for rewarding journal experiences.

    Responsibilities:
    - Experience quality analysis
    - Event generation
    - Aggregating the engine results into one summary
    """

    def __init__(self, engine: ProgressionEngine):
        """
        Initialize ExperienceRewardService.

        Args:
            engine: Progression engine the events are sent to
        """
        self.engine = engine
        logger.debug("ExperienceRewardService initialized")

    async def process_experience(self, experience: ExperienceRecord) -> GamificationResult:
        """
        Reward a newly saved experience

        Args:
            experience: Journal entry

        Returns:
            Merged GamificationResult of every generated event
        """
        analysis = analyze_experience(experience)
        events = build_events(experience, analysis)

        total = GamificationResult()
        for event in events:
            result = await self.engine.process_event(event)
            total = total.merge(result)

        logger.info(
            f"Experience {experience.id} rewarded: {len(events)} events, "
            f"{total.total_xp_awarded} XP total"
        )
        return total

"""Aggregate progression state owned by the engine"""
from typing import Optional
from datetime import date
from pydantic import BaseModel, Field

from progression.models.achievement import UserAchievement
from progression.models.challenge import ChallengeProgress, WeeklyChallenge
from progression.models.level import UserLevel
from progression.models.quest import UserQuestProgress
from progression.models.safety import SafetyScore
from progression.models.streak import Streak, StreakType


class MetricCounters(BaseModel):
    """Running totals that achievement and challenge requirements read"""
    experiences_logged: int = 0
    detailed_experiences: int = 0
    safety_practices_used: int = 0
    harm_reduction_tools: int = 0
    substance_tests: int = 0
    dosage_precision: int = 0
    set_setting_documented: int = 0
    integration_sessions: int = 0
    knowledge_quests_completed: int = 0
    weekly_goals_met: int = 0
    research_documented: int = 0
    app_days_active: int = 0
    last_active_date: Optional[date] = None
    substances_researched: list[str] = Field(default_factory=list)
    xp_by_source: dict[str, int] = Field(default_factory=dict)


class ProgressionState(BaseModel):
    """Everything the engine persists, as one snapshot"""
    level: UserLevel = Field(default_factory=UserLevel)
    achievements: list[UserAchievement] = Field(default_factory=list)
    streaks: dict[StreakType, Streak] = Field(default_factory=dict)
    quest_progress: list[UserQuestProgress] = Field(default_factory=list)
    safety_score: Optional[SafetyScore] = None
    counters: MetricCounters = Field(default_factory=MetricCounters)
    current_challenge: Optional[WeeklyChallenge] = None
    challenge_progress: Optional[ChallengeProgress] = None
    completed_challenges: list[WeeklyChallenge] = Field(default_factory=list)

    def unlocked_ids(self) -> set[str]:
        return {a.achievement_id for a in self.achievements}

    def find_quest_progress(self, quest_id: str) -> Optional[UserQuestProgress]:
        for progress in self.quest_progress:
            if progress.quest_id == quest_id:
                return progress
        return None

    def completed_quest_ids(self) -> set[str]:
        return {p.quest_id for p in self.quest_progress if p.is_completed}


class GamificationStats(BaseModel):
    """Summary numbers for dashboards"""
    total_xp: int = 0
    current_level: UserLevel = Field(default_factory=UserLevel)
    achievements_unlocked: int = 0
    total_achievements: int = 0
    longest_streak: int = 0
    quests_completed: int = 0
    safety_score: Optional[SafetyScore] = None
    weekly_progress: dict[str, int] = Field(default_factory=dict)
    level_progress: float = 0.0

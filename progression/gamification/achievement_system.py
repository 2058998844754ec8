"""
Achievement System

Evaluates catalog achievements against the aggregate progression state:
- Every requirement names a metric (streak count, log count, safety score...)
- A requirement holds when the metric meets or exceeds its target
- An achievement unlocks when all of its requirements hold (logical AND)
  and all achievement prerequisites are already unlocked

Features:
- Unlocks in catalog order, each exactly once
- XP rewards applied through the leveling path as achievements unlock
- Progress tracking and recommendations for locked achievements
"""

from typing import Callable, Dict, List
from datetime import datetime
import logging

from progression.gamification import xp_system
from progression.gamification.catalog import Catalog
from progression.gamification.counters import record_xp
from progression.models.achievement import Achievement, AchievementRequirement, RequirementType, UserAchievement
from progression.models.state import ProgressionState
from progression.models.streak import StreakType

logger = logging.getLogger(__name__)


def _streak_count(state: ProgressionState, streak_type: StreakType) -> int:
    streak = state.streaks.get(streak_type)
    return streak.current_count if streak else 0


def _safety_score(state: ProgressionState) -> int:
    return int(state.safety_score.overall_score) if state.safety_score else 0


METRICS: Dict[RequirementType, Callable[[ProgressionState], int]] = {
    RequirementType.EXPERIENCES_LOGGED: lambda s: s.counters.experiences_logged,
    RequirementType.CONSECUTIVE_DAYS_LOGGING: lambda s: _streak_count(s, StreakType.DAILY_LOGGING),
    RequirementType.DETAILED_EXPERIENCES: lambda s: s.counters.detailed_experiences,
    RequirementType.SAFETY_PRACTICES_USED: lambda s: s.counters.safety_practices_used,
    RequirementType.SUBSTANCES_RESEARCHED: lambda s: len(s.counters.substances_researched),
    RequirementType.INTEGRATION_SESSIONS: lambda s: s.counters.integration_sessions,
    RequirementType.DOSAGE_PRECISION: lambda s: s.counters.dosage_precision,
    RequirementType.SET_SETTING_DOCUMENTED: lambda s: s.counters.set_setting_documented,
    RequirementType.HARM_REDUCTION_TOOLS: lambda s: s.counters.harm_reduction_tools,
    RequirementType.KNOWLEDGE_QUESTS_COMPLETED: lambda s: len(s.completed_quest_ids()),
    RequirementType.WEEKLY_GOALS_MET: lambda s: s.counters.weekly_goals_met,
    RequirementType.APP_DAYS_ACTIVE: lambda s: s.counters.app_days_active,
    RequirementType.RESEARCH_DOCUMENTED: lambda s: s.counters.research_documented,
    RequirementType.SAFETY_SCORE_MAINTAINED: _safety_score,
    RequirementType.LEVEL_REACHED: lambda s: s.level.current_level,
}

# Metrics that describe a current level rather than an accumulating count
LEVEL_METRICS = {
    RequirementType.CONSECUTIVE_DAYS_LOGGING,
    RequirementType.SAFETY_SCORE_MAINTAINED,
    RequirementType.LEVEL_REACHED,
}


def metric_value(state: ProgressionState, requirement_type: RequirementType) -> int:
    """Current value of the aggregate metric a requirement names"""
    return METRICS[requirement_type](state)


def requirement_met(state: ProgressionState, requirement: AchievementRequirement) -> bool:
    return metric_value(state, requirement.type) >= requirement.target


def is_achievement_completed(state: ProgressionState, achievement: Achievement) -> bool:
    """All requirements hold and all prerequisite achievements are unlocked"""
    unlocked = state.unlocked_ids()
    if any(prereq not in unlocked for prereq in achievement.prerequisites):
        return False
    return all(requirement_met(state, req) for req in achievement.requirements)


def check_and_award_achievements(
    catalog: Catalog,
    state: ProgressionState,
    now: datetime
) -> List[Achievement]:
    """
    Unlock every achievement whose requirements now hold

    Mutates `state` (a draft owned by the caller): appends UserAchievement
    records and applies each achievement's XP reward. Passes over the catalog
    repeat until nothing new unlocks, so XP from one unlock can satisfy a
    level requirement further down.

    Args:
        catalog: Achievement definitions (evaluated in definition order)
        state: Draft progression state
        now: Processing time used as unlock timestamp

    Returns:
        Newly unlocked achievements, in unlock order
    """
    newly_unlocked: List[Achievement] = []

    while True:
        unlocked_this_pass = 0
        for achievement in catalog.achievements:
            # Skip if already unlocked
            if achievement.id in state.unlocked_ids():
                continue
            if not is_achievement_completed(state, achievement):
                continue

            state.achievements.append(UserAchievement(
                achievement_id=achievement.id,
                unlocked_at=now,
                progress=get_achievement_progress(state, achievement),
                is_completed=True,
            ))
            state.level = xp_system.award_xp(state.level, achievement.xp_reward)
            record_xp(state.counters, "achievement", achievement.xp_reward)
            newly_unlocked.append(achievement)
            unlocked_this_pass += 1

            logger.info(
                f"Unlocked achievement: {achievement.id} "
                f"({achievement.name}) +{achievement.xp_reward} XP"
            )

        if unlocked_this_pass == 0:
            break

    return newly_unlocked


def get_achievement_progress(state: ProgressionState, achievement: Achievement) -> Dict[str, int]:
    """Current metric value per requirement type"""
    return {
        req.type.value: metric_value(state, req.type)
        for req in achievement.requirements
    }


def calculate_achievement_progress(state: ProgressionState, achievement: Achievement) -> Dict:
    """
    Calculate progress toward an achievement

    Returns:
        {
            'current': int,       # sum of clamped metric values
            'required': int,      # sum of targets
            'percentage': int,    # mean completion of requirements, 0-100
            'description': str
        }
    """
    current = 0
    required = 0
    ratios = []
    for req in achievement.requirements:
        value = metric_value(state, req.type)
        current += min(value, req.target)
        required += req.target
        ratios.append(min(1.0, value / req.target) if req.target > 0 else 1.0)

    percentage = int(sum(ratios) / len(ratios) * 100) if ratios else 100

    return {
        'current': current,
        'required': required,
        'percentage': percentage,
        'description': f"{current}/{required}"
    }


def get_achievement_recommendations(
    catalog: Catalog,
    state: ProgressionState,
    limit: int = 3
) -> List[Dict]:
    """
    Get locked achievements closest to completion (>= 50% progress)

    Hidden achievements are only recommended once they are that close.

    Returns:
        [{'achievement': Achievement, 'progress': {...}}] sorted by percentage
    """
    unlocked = state.unlocked_ids()
    candidates = []
    for achievement in catalog.achievements:
        if achievement.id in unlocked:
            continue
        progress = calculate_achievement_progress(state, achievement)
        if progress['percentage'] >= 50:
            candidates.append({'achievement': achievement, 'progress': progress})

    candidates.sort(key=lambda x: x['progress']['percentage'], reverse=True)
    return candidates[:limit]

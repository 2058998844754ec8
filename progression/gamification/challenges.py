"""
Weekly Challenge System

Time-boxed goals generated from catalog templates, one per ISO week.

Progress is recomputed from scratch on every processed event:
    progress = mean over requirements of min(1, metric / target)
Counting metrics (logs, sessions...) accumulate only what happened since the
challenge was started; level metrics (logging streak, safety score) are read
as they currently stand. Completion is edge-triggered: it fires once, on the
event that first moves progress to 1.0.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Dict, Optional
from uuid import uuid4

from progression.exceptions import ChallengeError
from progression.gamification.achievement_system import LEVEL_METRICS, metric_value
from progression.gamification.catalog import Catalog
from progression.models.achievement import RequirementType
from progression.models.challenge import (
    ChallengeDifficulty,
    ChallengeProgress,
    ChallengeTemplate,
    WeeklyChallenge,
)
from progression.models.state import ProgressionState
from progression.utils.datetime_helpers import week_start

logger = logging.getLogger(__name__)

CHALLENGE_DURATION = timedelta(days=7)

# Inclusive user level ranges for which each difficulty is offered
DIFFICULTY_LEVELS: Dict[ChallengeDifficulty, tuple[int, Optional[int]]] = {
    ChallengeDifficulty.BEGINNER: (1, 5),
    ChallengeDifficulty.INTERMEDIATE: (3, 15),
    ChallengeDifficulty.ADVANCED: (10, 25),
    ChallengeDifficulty.EXPERT: (20, None),
}


def is_difficulty_available(difficulty: ChallengeDifficulty, level: int) -> bool:
    low, high = DIFFICULTY_LEVELS[difficulty]
    return level >= low and (high is None or level <= high)


def get_challenge_for_week(state: ProgressionState, moment: datetime) -> Optional[WeeklyChallenge]:
    """Stored challenge covering the week of `moment`, if any"""
    challenge = state.current_challenge
    if challenge is not None and challenge.start_date == week_start(moment):
        return challenge
    return None


def generate_weekly_challenge(
    catalog: Catalog,
    state: ProgressionState,
    now: datetime,
    rng: Optional[random.Random] = None
) -> Optional[WeeklyChallenge]:
    """
    Get this week's challenge, creating it if the week has none yet

    Mutates the draft state when a new challenge is created (and drops the
    progress of the previous one).

    Args:
        catalog: Challenge templates
        state: Draft progression state
        now: Current time
        rng: Random source for template selection

    Returns:
        The week's challenge, or None if no template suits the user level
    """
    existing = get_challenge_for_week(state, now)
    if existing is not None:
        return existing

    level = state.level.current_level
    templates = [
        t for t in catalog.challenge_templates
        if is_difficulty_available(t.difficulty, level)
    ]
    if not templates:
        logger.info(f"No challenge template available for level {level}")
        return None

    template: ChallengeTemplate = (rng or random).choice(templates)
    start = week_start(now)
    challenge = WeeklyChallenge(
        id=str(uuid4()),
        title=template.title,
        description=template.description,
        category=template.category,
        difficulty=template.difficulty,
        xp_reward=template.xp_reward,
        requirements=list(template.requirements),
        start_date=start,
        end_date=start + CHALLENGE_DURATION,
    )

    state.current_challenge = challenge
    state.challenge_progress = None

    logger.info(f"Generated weekly challenge '{challenge.title}' ({challenge.difficulty.value})")
    return challenge


def start_challenge(state: ProgressionState, challenge_id: str, now: datetime) -> ChallengeProgress:
    """
    Start tracking progress for the current challenge

    Starting an already started challenge returns its existing progress.

    Raises:
        ChallengeError: challenge is not the current one or its week is over
    """
    challenge = state.current_challenge
    if challenge is None or challenge.id != challenge_id:
        raise ChallengeError(
            f"Challenge '{challenge_id}' is not the current weekly challenge",
            challenge_id=challenge_id,
            operation="start_challenge",
            user_message="That challenge is not available this week."
        )
    if not challenge.covers(now):
        raise ChallengeError(
            f"Challenge '{challenge_id}' is outside its active week",
            challenge_id=challenge_id,
            operation="start_challenge",
            user_message="This challenge has ended."
        )

    if state.challenge_progress is not None and state.challenge_progress.challenge_id == challenge_id:
        return state.challenge_progress

    progress = ChallengeProgress(
        challenge_id=challenge_id,
        started_at=now,
        current_metrics={req.type: 0 for req in challenge.requirements},
    )
    # Level metrics count from the moment the challenge starts
    for req in challenge.requirements:
        if req.type in LEVEL_METRICS:
            progress.current_metrics[req.type] = metric_value(state, req.type)
    progress.progress = calculate_progress(challenge, progress.current_metrics)

    state.challenge_progress = progress
    logger.info(f"Started weekly challenge '{challenge.title}'")
    return progress


def calculate_progress(challenge: WeeklyChallenge, metrics: Dict[RequirementType, int]) -> float:
    """Mean of per-requirement completion ratios, each clamped to 1.0"""
    if not challenge.requirements:
        return 1.0
    total = sum(
        min(1.0, metrics.get(req.type, 0) / req.target)
        for req in challenge.requirements
    )
    return total / len(challenge.requirements)


def update_challenge_progress(
    before: ProgressionState,
    state: ProgressionState,
    now: datetime
) -> bool:
    """
    Recompute progress of the active challenge after an event

    Args:
        before: Committed state from before the event
        state: Draft state with the event applied
        now: Event time

    Returns:
        True only on the update that completes the challenge
    """
    challenge = state.current_challenge
    progress = state.challenge_progress
    if challenge is None or progress is None or progress.challenge_id != challenge.id:
        return False
    if progress.is_completed or not challenge.covers(now):
        return False

    was_completed = progress.is_completed
    metrics = dict(progress.current_metrics)
    for req in challenge.requirements:
        if req.type in LEVEL_METRICS:
            metrics[req.type] = metric_value(state, req.type)
        else:
            delta = metric_value(state, req.type) - metric_value(before, req.type)
            metrics[req.type] = metrics.get(req.type, 0) + max(0, delta)

    new_progress = calculate_progress(challenge, metrics)
    is_completed = new_progress >= 1.0

    progress.current_metrics = metrics
    progress.progress = min(1.0, new_progress)
    progress.is_completed = is_completed

    if is_completed and not was_completed:
        progress.completed_at = now
        logger.info(f"Weekly challenge '{challenge.title}' completed")
        return True
    return False

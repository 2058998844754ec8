"""
Knowledge Quest Progress Tracker

Quests are ordered lists of steps completed one at a time:
- Steps with a required_answer complete when the supplied answer matches
  (surrounding whitespace and letter case are ignored)
- Other steps complete immediately
- A quest is completed once every step is completed; from then on its
  progress record never changes
- Starting a quest requires every prerequisite quest to be completed
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from progression.exceptions import (
    PrerequisiteNotMetError,
    QuestAlreadyStartedError,
    QuestNotFoundError,
    QuestNotStartedError,
    QuestStepError,
)
from progression.gamification.catalog import Catalog
from progression.models.quest import KnowledgeQuest, QuestStep, UserQuestProgress
from progression.models.state import ProgressionState

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """Result of submitting a step"""
    accepted: bool
    quest_completed: bool = False


def answer_matches(required: str, given: Optional[str]) -> bool:
    """Case-insensitive comparison ignoring surrounding whitespace"""
    if given is None:
        return False
    return required.strip().casefold() == given.strip().casefold()


def missing_prerequisites(quest: KnowledgeQuest, state: ProgressionState) -> List[str]:
    completed = state.completed_quest_ids()
    return [q for q in quest.prerequisites if q not in completed]


def get_available_quests(catalog: Catalog, state: ProgressionState) -> List[KnowledgeQuest]:
    """Quests whose prerequisites are all completed"""
    return [q for q in catalog.quests if not missing_prerequisites(q, state)]


def start_quest(
    catalog: Catalog,
    state: ProgressionState,
    quest_id: str,
    now: datetime
) -> UserQuestProgress:
    """
    Start a quest on a draft state

    Raises:
        QuestNotFoundError: unknown quest id
        QuestAlreadyStartedError: quest already in progress or completed
        PrerequisiteNotMetError: prerequisite quests not completed
    """
    quest = catalog.get_quest(quest_id)
    if quest is None:
        raise QuestNotFoundError(quest_id, operation="start_quest")

    if state.find_quest_progress(quest_id) is not None:
        raise QuestAlreadyStartedError(quest_id, operation="start_quest")

    missing = missing_prerequisites(quest, state)
    if missing:
        raise PrerequisiteNotMetError(quest_id, missing, operation="start_quest")

    progress = UserQuestProgress(
        quest_id=quest_id,
        started_at=now,
        step_progress={step.id: False for step in quest.steps},
    )
    state.quest_progress.append(progress)

    logger.info(f"Started quest '{quest_id}' ({len(quest.steps)} steps)")
    return progress


def complete_quest_step(
    catalog: Catalog,
    state: ProgressionState,
    quest_id: str,
    step_id: str,
    answer: Optional[str],
    now: datetime
) -> StepOutcome:
    """
    Submit the current step of a started quest

    Args:
        catalog: Quest definitions
        state: Draft progression state
        quest_id: Quest being worked on
        step_id: Step being submitted (must be the current step)
        answer: Answer for steps with a required answer
        now: Processing time

    Returns:
        StepOutcome(accepted, quest_completed). A wrong answer is not an
        error: it returns accepted=False and leaves progress unchanged.

    Raises:
        QuestNotFoundError, QuestNotStartedError, QuestStepError
    """
    quest = catalog.get_quest(quest_id)
    if quest is None:
        raise QuestNotFoundError(quest_id, operation="complete_quest_step")

    progress = state.find_quest_progress(quest_id)
    if progress is None:
        raise QuestNotStartedError(quest_id, operation="complete_quest_step")

    step_index = _step_index(quest, step_id)
    if step_index is None:
        raise QuestStepError(
            f"Quest '{quest_id}' has no step '{step_id}'",
            quest_id=quest_id,
            step_id=step_id,
            operation="complete_quest_step"
        )

    # Completed steps (and completed quests) are never re-evaluated
    if progress.is_completed or progress.step_progress.get(step_id):
        return StepOutcome(accepted=True)

    if step_index != progress.current_step_index:
        raise QuestStepError(
            f"Step '{step_id}' is not the current step of quest '{quest_id}'",
            quest_id=quest_id,
            step_id=step_id,
            operation="complete_quest_step"
        )

    step = quest.steps[step_index]
    if not _step_satisfied(step, answer):
        logger.info(f"Wrong answer for quest '{quest_id}' step '{step_id}'")
        return StepOutcome(accepted=False)

    progress.step_progress[step_id] = True
    progress.current_step_index = step_index + 1

    if all(progress.step_progress.get(s.id) for s in quest.steps):
        progress.is_completed = True
        progress.completed_at = now
        logger.info(f"Completed quest '{quest_id}'")
        return StepOutcome(accepted=True, quest_completed=True)

    return StepOutcome(accepted=True)


def _step_index(quest: KnowledgeQuest, step_id: str) -> Optional[int]:
    for index, step in enumerate(quest.steps):
        if step.id == step_id:
            return index
    return None


def _step_satisfied(step: QuestStep, answer: Optional[str]) -> bool:
    if step.required_answer is None:
        return True
    return answer_matches(step.required_answer, answer)

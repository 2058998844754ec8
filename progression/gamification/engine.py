"""
Progression Engine

Single owner of the progression state. Every mutating operation runs under
one asyncio.Lock and follows the same transaction:

1. Deep-copy the committed state into a draft
2. Apply the operation to the draft
3. Persist the full draft snapshot
4. Swap the committed reference and publish changed observables

Readers (observables and query methods) only ever see committed snapshots,
so they observe either the pre- or the post-operation state. An exception
raised while applying an operation discards the draft.

Event pipeline (process_event):
    base XP -> counters + mapped streak -> safety score -> achievements
    -> weekly challenge progress -> persist -> commit -> result
"""

import asyncio
import logging
import random
import time
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, TypeVar, Union

from progression import config
from progression.exceptions import ProgressionError, PersistenceError
from progression.gamification import (
    achievement_system,
    challenges,
    counters,
    quests,
    safety_score,
    streak_system,
    xp_system,
)
from progression.gamification.catalog import Catalog
from progression.gamification.observable import ObservableValue
from progression.gamification.persistence import StateRepository
from progression.models.achievement import Achievement, UserAchievement
from progression.models.challenge import ChallengeProgress, WeeklyChallenge
from progression.models.events import (
    GamificationEvent,
    GamificationEventType,
    GamificationNotification,
    GamificationResult,
    NotificationType,
)
from progression.models.insight import InsightType, ProgressInsight
from progression.models.level import UserLevel
from progression.models.quest import KnowledgeQuest, UserQuestProgress
from progression.models.results import OperationResult
from progression.models.safety import SafetyScore
from progression.models.state import GamificationStats, ProgressionState
from progression.models.streak import Streak, StreakType
from progression.observability import metrics
from progression.utils.datetime_helpers import ensure_utc, now_utc, whole_days_between

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ProgressionEngine:
    """
    Event-driven XP, streak, achievement, quest and challenge engine

    Construct with a catalog and a StateRepository, then either await
    load() or let the first operation load the persisted state.
    """

    def __init__(
        self,
        catalog: Catalog,
        repository: StateRepository,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = now_utc,
        recent_events_limit: Optional[int] = None,
        metrics_enabled: Optional[bool] = None
    ):
        """
        Initialize the engine.

        Args:
            catalog: Achievement, quest and challenge definitions
            repository: Persistence adapter for the state snapshot
            rng: Random source for weekly challenge selection
            clock: Current time provider for operations without an event timestamp
            recent_events_limit: Number of processed events kept for get_recent_events
            metrics_enabled: Record Prometheus metrics (defaults to ENABLE_METRICS)
        """
        self.catalog = catalog
        self.repository = repository
        self._rng = rng or random.Random()
        self._clock = clock
        self._metrics_enabled = config.ENABLE_METRICS if metrics_enabled is None else metrics_enabled

        self._lock = asyncio.Lock()
        self._loaded = False
        self._persist_pending = False
        self._state = ProgressionState()
        self._recent_events: Deque[GamificationEvent] = deque(
            maxlen=recent_events_limit or config.RECENT_EVENTS_LIMIT
        )

        # Query surface
        self.level: ObservableValue[UserLevel] = ObservableValue("level", self._state.level)
        self.achievements: ObservableValue[List[UserAchievement]] = ObservableValue("achievements", [])
        self.streaks: ObservableValue[Dict[StreakType, Streak]] = ObservableValue("streaks", {})
        self.quest_progress: ObservableValue[List[UserQuestProgress]] = ObservableValue("quest_progress", [])
        self.safety_score: ObservableValue[Optional[SafetyScore]] = ObservableValue("safety_score", None)
        self.stats: ObservableValue[GamificationStats] = ObservableValue("stats", self._compute_stats(self._state))
        self.current_challenge: ObservableValue[Optional[WeeklyChallenge]] = ObservableValue("current_challenge", None)
        self.challenge_progress: ObservableValue[Optional[ChallengeProgress]] = ObservableValue("challenge_progress", None)
        self.completed_challenges: ObservableValue[List[WeeklyChallenge]] = ObservableValue("completed_challenges", [])
        self.last_result: ObservableValue[Optional[GamificationResult]] = ObservableValue("last_result", None)

        logger.debug(f"ProgressionEngine initialized (catalog v{catalog.version})")

    # ==========================================
    # Lifecycle & transactions
    # ==========================================

    @property
    def state(self) -> ProgressionState:
        """Committed snapshot (treat as read-only)"""
        return self._state

    async def load(self) -> ProgressionState:
        """Load persisted state and publish it"""
        async with self._lock:
            await self._ensure_loaded()
            return self._state

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        try:
            state = await self.repository.load()
        except PersistenceError:
            # Keep working in memory; the load is retried by the next operation
            logger.warning("Progression state could not be loaded, continuing with in-memory state")
            if self._metrics_enabled:
                metrics.progression_persistence_failures_total.inc()
            return
        self._loaded = True
        self._commit(state)

    async def _transact(
        self,
        apply: Callable[[ProgressionState], R],
        on_commit: Optional[Callable[[R], None]] = None
    ) -> R:
        """
        Run `apply` on a draft and commit it

        Exceptions from `apply` propagate and leave the committed state untouched.
        `on_commit` runs after the swap, still under the lock.
        """
        async with self._lock:
            await self._ensure_loaded()
            draft = self._state.model_copy(deep=True)
            outcome = apply(draft)
            await self._persist(draft)
            self._commit(draft)
            if on_commit is not None:
                on_commit(outcome)
            return outcome

    async def _persist(self, draft: ProgressionState) -> None:
        if not self._loaded:
            # Never overwrite stored state that could not be read
            self._persist_pending = True
            logger.warning("Progression state not persisted, stored state has not been loaded yet")
            return

        try:
            await self.repository.save(draft)
        except PersistenceError:
            # State is still committed in memory; the next operation writes the full snapshot again
            self._persist_pending = True
            logger.warning("Progression state not persisted, will retry on next operation")
            if self._metrics_enabled:
                metrics.progression_persistence_failures_total.inc()
            return

        if self._persist_pending:
            logger.info("Progression state persisted after earlier failure")
        self._persist_pending = False

    def _commit(self, state: ProgressionState) -> None:
        """Swap the committed snapshot and publish what changed"""
        previous = self._state
        self._state = state

        self._publish(self.level, state.level)
        self._publish(self.achievements, state.achievements)
        self._publish(self.streaks, state.streaks)
        self._publish(self.quest_progress, state.quest_progress)
        self._publish(self.safety_score, state.safety_score)
        self._publish(self.current_challenge, state.current_challenge)
        self._publish(self.challenge_progress, state.challenge_progress)
        self._publish(self.completed_challenges, state.completed_challenges)
        self._publish(self.stats, self._compute_stats(state))

        if self._metrics_enabled and previous.streaks != state.streaks:
            for streak_type, streak in state.streaks.items():
                metrics.progression_streaks_active.labels(streak_type=streak_type.value).set(streak.current_count)

    @staticmethod
    def _publish(observable: ObservableValue, value: Any) -> None:
        if observable.value != value:
            observable._set(value)

    @property
    def persist_pending(self) -> bool:
        """True while the last write to the store failed"""
        return self._persist_pending

    # ==========================================
    # Event processing
    # ==========================================

    async def process_event(self, event: GamificationEvent) -> GamificationResult:
        """
        Process a single gamification event

        Args:
            event: User action to reward

        Returns:
            GamificationResult with XP, unlocks, streak updates and notifications
        """
        def publish(result: GamificationResult) -> None:
            self._recent_events.append(event)
            self._publish(self.last_result, result)

        start = time.perf_counter()
        status = "error"
        try:
            result = await self._transact(lambda draft: self._apply_event(draft, event), publish)
            status = "success"
        finally:
            if self._metrics_enabled:
                metrics.progression_events_processed_total.labels(
                    event_type=event.type.value, status=status
                ).inc()
                metrics.progression_event_duration_seconds.labels(
                    event_type=event.type.value
                ).observe(time.perf_counter() - start)

        logger.info(
            f"Processed {event.type.value}: +{result.xp_awarded} XP "
            f"(+{result.bonus_xp} bonus), {len(result.new_achievements)} new achievements"
        )
        return result

    def _apply_event(
        self,
        draft: ProgressionState,
        event: GamificationEvent,
        base_xp: Optional[int] = None,
        baseline: Optional[ProgressionState] = None
    ) -> GamificationResult:
        """
        Apply one event to the draft

        Args:
            draft: Draft state (mutated)
            event: Event to apply
            base_xp: Overrides the event type's base XP (quest rewards)
            baseline: State challenge deltas are measured against (defaults to the draft as passed in)
        """
        now = event.timestamp
        baseline = baseline or draft.model_copy(deep=True)
        pre_level = draft.level.current_level
        xp_source = event.type.value

        # 1. Base XP
        if base_xp is None:
            base_xp = xp_system.xp_for_event(event.type)
        draft.level = xp_system.award_xp(draft.level, base_xp)
        counters.record_xp(draft.counters, xp_source, base_xp)
        self._count_xp(xp_source, base_xp)

        # 2. Counters and mapped streak
        counters_before = draft.counters
        draft.counters = counters.apply_event(draft.counters, event)

        streak_updates: List[Streak] = []
        milestones: List[Tuple[Streak, int]] = []
        streak_type = streak_system.streak_for_event(event.type)
        if streak_type is not None:
            previous = draft.streaks.get(streak_type)
            updated = streak_system.update_streak(previous, streak_type, now)
            draft.streaks[streak_type] = updated
            streak_updates.append(updated)
            milestone = streak_system.reached_milestone(previous, updated)
            if milestone is not None:
                milestones.append((updated, milestone))

        # 3. Safety score
        if counters.safety_inputs_changed(counters_before, draft.counters):
            draft.safety_score = safety_score.calculate_safety_score(
                draft.counters, draft.safety_score, now
            )

        # 4. Achievements
        new_achievements = achievement_system.check_and_award_achievements(self.catalog, draft, now)

        # 5. Weekly challenge (edge-triggered)
        completed_challenge = None
        if challenges.update_challenge_progress(baseline, draft, now):
            completed_challenge = draft.current_challenge
            self._finish_challenge(draft, completed_challenge)
            new_achievements += achievement_system.check_and_award_achievements(self.catalog, draft, now)

        bonus_xp = sum(a.xp_reward for a in new_achievements)
        if completed_challenge is not None:
            bonus_xp += completed_challenge.xp_reward
        for achievement in new_achievements:
            self._count_xp("achievement", achievement.xp_reward)
            if self._metrics_enabled:
                metrics.progression_achievements_unlocked_total.labels(
                    category=achievement.category.value
                ).inc()

        level_up = draft.level.current_level > pre_level
        return GamificationResult(
            xp_awarded=base_xp,
            bonus_xp=bonus_xp,
            new_achievements=new_achievements,
            streak_updates=streak_updates,
            level_up=level_up,
            new_level=draft.level if level_up else None,
            notifications=self._build_notifications(
                draft.level if level_up else None,
                new_achievements,
                completed_challenge,
                milestones,
            ),
            completed_challenge=completed_challenge,
        )

    def _finish_challenge(self, draft: ProgressionState, challenge: WeeklyChallenge) -> None:
        draft.level = xp_system.award_xp(draft.level, challenge.xp_reward)
        counters.record_xp(draft.counters, "challenge", challenge.xp_reward)
        draft.counters.weekly_goals_met += 1
        draft.completed_challenges.append(challenge)
        self._count_xp("challenge", challenge.xp_reward)
        if self._metrics_enabled:
            metrics.progression_challenges_completed_total.labels(
                difficulty=challenge.difficulty.value
            ).inc()

    def _count_xp(self, source: str, amount: int) -> None:
        if self._metrics_enabled and amount > 0:
            metrics.progression_xp_awarded_total.labels(source=source).inc(amount)

    @staticmethod
    def _build_notifications(
        new_level: Optional[UserLevel],
        new_achievements: List[Achievement],
        completed_challenge: Optional[WeeklyChallenge],
        milestones: List[Tuple[Streak, int]]
    ) -> List[GamificationNotification]:
        notifications = []

        if new_level is not None:
            notifications.append(GamificationNotification(
                type=NotificationType.LEVEL_UP,
                title="Level Up!",
                message=f"You reached level {new_level.current_level}",
                icon="level_up",
                action_data={"level": str(new_level.current_level)},
            ))

        for achievement in new_achievements:
            notifications.append(GamificationNotification(
                type=NotificationType.ACHIEVEMENT_UNLOCKED,
                title=f"Achievement Unlocked: {achievement.name}",
                message=f"{achievement.description} (+{achievement.xp_reward} XP)",
                icon=achievement.icon,
                action_label="View achievement",
                action_data={"achievement_id": achievement.id},
            ))

        if completed_challenge is not None:
            notifications.append(GamificationNotification(
                type=NotificationType.CHALLENGE_COMPLETED,
                title=f"Challenge Complete: {completed_challenge.title}",
                message=f"Weekly challenge finished (+{completed_challenge.xp_reward} XP)",
                icon="challenge_complete",
                action_data={"challenge_id": completed_challenge.id},
            ))

        for streak, milestone in milestones:
            label = streak.type.value.replace("_", " ")
            notifications.append(GamificationNotification(
                type=NotificationType.STREAK_MILESTONE,
                title=f"{milestone}-day streak!",
                message=f"Your {label} streak reached {milestone} days",
                icon="streak",
                action_data={"streak_type": streak.type.value, "count": str(milestone)},
            ))

        return notifications

    # ==========================================
    # XP & streaks
    # ==========================================

    async def award_xp(self, amount: int, reason: str = "manual") -> OperationResult[UserLevel]:
        """
        Award XP outside of event processing

        Level-based achievements unlocked by the new level are awarded too.

        Returns:
            OperationResult with the new UserLevel, or InvalidXPError for negative amounts
        """
        def apply(draft: ProgressionState) -> UserLevel:
            draft.level = xp_system.award_xp(draft.level, amount)
            counters.record_xp(draft.counters, reason, amount)
            self._count_xp(reason, amount)
            achievement_system.check_and_award_achievements(self.catalog, draft, self._clock())
            return draft.level

        return await self._attempt(apply)

    async def update_streak(
        self,
        streak_type: Union[StreakType, str],
        at: Optional[datetime] = None
    ) -> OperationResult[Streak]:
        """
        Record one qualifying activity for a streak

        Returns:
            OperationResult with the updated Streak, or UnknownStreakTypeError
        """
        def apply(draft: ProgressionState) -> Streak:
            resolved = streak_system.parse_streak_type(streak_type)
            moment = ensure_utc(at) if at else self._clock()
            updated = streak_system.update_streak(draft.streaks.get(resolved), resolved, moment)
            draft.streaks[resolved] = updated
            achievement_system.check_and_award_achievements(self.catalog, draft, moment)
            return updated

        return await self._attempt(apply)

    async def _attempt(
        self,
        apply: Callable[[ProgressionState], R],
        on_commit: Optional[Callable[[R], None]] = None
    ) -> OperationResult[R]:
        """Run a transaction, turning precondition failures into a failed result"""
        try:
            return OperationResult.ok(await self._transact(apply, on_commit))
        except ProgressionError as e:
            return OperationResult.fail(e)

    # ==========================================
    # Quests
    # ==========================================

    def get_available_quests(self) -> List[KnowledgeQuest]:
        return quests.get_available_quests(self.catalog, self._state)

    async def start_quest(self, quest_id: str) -> OperationResult[UserQuestProgress]:
        def apply(draft: ProgressionState) -> UserQuestProgress:
            return quests.start_quest(self.catalog, draft, quest_id, self._clock())

        return await self._attempt(apply)

    async def complete_quest_step(
        self,
        quest_id: str,
        step_id: str,
        answer: Optional[str] = None
    ) -> OperationResult[bool]:
        """
        Submit a quest step

        Returns:
            OperationResult[bool]: value False for a wrong answer. When the
            step completes the quest, its XP reward is awarded and a
            QUEST_COMPLETED event is processed (published via last_result).
        """
        completion: Dict[str, GamificationResult] = {}

        def apply(draft: ProgressionState) -> bool:
            now = self._clock()
            baseline = draft.model_copy(deep=True)
            outcome = quests.complete_quest_step(self.catalog, draft, quest_id, step_id, answer, now)
            if outcome.quest_completed:
                quest = self.catalog.get_quest(quest_id)
                event = GamificationEvent(
                    type=GamificationEventType.QUEST_COMPLETED,
                    timestamp=now,
                    metadata={"quest_id": quest_id},
                )
                completion["result"] = self._apply_event(
                    draft, event, base_xp=quest.xp_reward, baseline=baseline
                )
                completion["event"] = event
            return outcome.accepted

        def publish(accepted: bool) -> None:
            if "result" in completion:
                self._recent_events.append(completion["event"])
                self._publish(self.last_result, completion["result"])

        return await self._attempt(apply, publish)

    def get_quest_progress(self, quest_id: str) -> Optional[UserQuestProgress]:
        return self._state.find_quest_progress(quest_id)

    def get_completed_quests(self) -> List[UserQuestProgress]:
        return [p for p in self._state.quest_progress if p.is_completed]

    # ==========================================
    # Weekly challenges
    # ==========================================

    async def generate_weekly_challenge(self, now: Optional[datetime] = None) -> Optional[WeeklyChallenge]:
        """Get this week's challenge, generating one from the catalog if needed"""
        moment = ensure_utc(now) if now else self._clock()

        def apply(draft: ProgressionState) -> Optional[WeeklyChallenge]:
            return challenges.generate_weekly_challenge(self.catalog, draft, moment, self._rng)

        return await self._transact(apply)

    async def start_challenge(self, challenge_id: str) -> OperationResult[ChallengeProgress]:
        def apply(draft: ProgressionState) -> ChallengeProgress:
            return challenges.start_challenge(draft, challenge_id, self._clock())

        return await self._attempt(apply)

    def get_current_challenges(self) -> List[WeeklyChallenge]:
        challenge = challenges.get_challenge_for_week(self._state, self._clock())
        return [challenge] if challenge else []

    def get_challenge_progress(self, challenge_id: str) -> Optional[ChallengeProgress]:
        progress = self._state.challenge_progress
        if progress is not None and progress.challenge_id == challenge_id:
            return progress
        return None

    # ==========================================
    # Queries
    # ==========================================

    def get_active_streaks(self) -> List[Streak]:
        """Streaks that continue if the user is active today"""
        now = self._clock()
        return [s for s in self._state.streaks.values() if not streak_system.is_expired(s, now)]

    def get_streak_history(self, streak_type: Union[StreakType, str]) -> List[Tuple[datetime, int]]:
        # Per-day history is not recorded
        return []

    def get_unlocked_achievements(self) -> List[UserAchievement]:
        return list(self._state.achievements)

    def get_available_achievements(self) -> List[Achievement]:
        """Locked achievements the user can see (hidden ones stay secret)"""
        unlocked = self._state.unlocked_ids()
        return [
            a for a in self.catalog.achievements
            if a.id not in unlocked and not a.is_hidden
        ]

    def get_achievement_progress(self, achievement_id: str) -> Dict[str, int]:
        achievement = self.catalog.get_achievement(achievement_id)
        if achievement is None:
            return {}
        return achievement_system.get_achievement_progress(self._state, achievement)

    def get_achievement_recommendations(self, limit: int = 3) -> List[Dict]:
        return achievement_system.get_achievement_recommendations(self.catalog, self._state, limit)

    def get_recent_events(self, limit: int = 50) -> List[GamificationEvent]:
        """Most recently processed events, newest first"""
        if limit <= 0:
            return []
        return list(reversed(self._recent_events))[:limit]

    def get_xp_breakdown(self) -> Dict[str, int]:
        """Lifetime XP per source (event type, achievement, challenge, manual reasons)"""
        return dict(self._state.counters.xp_by_source)

    def get_safety_trends(self) -> List[Tuple[datetime, float]]:
        # Score history is not recorded
        return []

    def get_safety_insights(self) -> List[str]:
        score = self._state.safety_score
        return list(score.improvement_areas) if score else []

    def get_progress_insights(self) -> List[ProgressInsight]:
        """Actionable suggestions derived from the current state"""
        state = self._state
        now = self._clock()
        insights = []

        level = state.level
        remaining = level.xp_to_next_level - level.current_xp
        insights.append(ProgressInsight(
            type=InsightType.LEVEL_PROGRESS,
            title=f"{remaining} XP to level {level.current_level + 1}",
            description=f"You are {int(level.progress_percentage() * 100)}% through level {level.current_level}",
            actionable=False,
            metadata={"remaining_xp": remaining},
        ))

        for recommendation in self.get_achievement_recommendations():
            achievement = recommendation['achievement']
            insights.append(ProgressInsight(
                type=InsightType.ACHIEVEMENT_OPPORTUNITY,
                title=f"Almost there: {achievement.name}",
                description=f"{achievement.description} ({recommendation['progress']['description']})",
                metadata={"achievement_id": achievement.id},
            ))

        for streak in state.streaks.values():
            if streak.is_active and streak.last_activity_date is not None \
                    and whole_days_between(streak.last_activity_date, now) == 1:
                label = streak.type.value.replace("_", " ")
                insights.append(ProgressInsight(
                    type=InsightType.STREAK_ENCOURAGEMENT,
                    title=f"Keep your {label} streak alive",
                    description=f"Stay active today to extend your {streak.current_count}-day streak",
                    metadata={"streak_type": streak.type.value},
                ))

        for area in self.get_safety_insights()[:2]:
            insights.append(ProgressInsight(
                type=InsightType.SAFETY_IMPROVEMENT,
                title="Safety tip",
                description=area,
            ))

        started = {p.quest_id for p in state.quest_progress}
        next_quest = next((q for q in self.get_available_quests() if q.id not in started), None)
        if next_quest is not None:
            insights.append(ProgressInsight(
                type=InsightType.LEARNING_SUGGESTION,
                title=f"Try the '{next_quest.title}' quest",
                description=f"{next_quest.description} (+{next_quest.xp_reward} XP)",
                metadata={"quest_id": next_quest.id},
            ))

        if state.counters.app_days_active >= 7:
            insights.append(ProgressInsight(
                type=InsightType.CONSISTENCY_FEEDBACK,
                title="Consistent engagement",
                description=f"You have been active on {state.counters.app_days_active} days",
                actionable=False,
            ))

        return insights

    def get_stats(self) -> GamificationStats:
        return self.stats.value

    def _compute_stats(self, state: ProgressionState) -> GamificationStats:
        progress = state.challenge_progress
        weekly = {}
        if progress is not None:
            weekly = {metric.value: value for metric, value in progress.current_metrics.items()}

        return GamificationStats(
            total_xp=state.level.total_xp,
            current_level=state.level,
            achievements_unlocked=len(state.achievements),
            total_achievements=len(self.catalog.achievements),
            longest_streak=max((s.best_count for s in state.streaks.values()), default=0),
            quests_completed=len(state.completed_quest_ids()),
            safety_score=state.safety_score,
            weekly_progress=weekly,
            level_progress=state.level.progress_percentage(),
        )

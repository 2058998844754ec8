"""Global test fixtures and utilities for progression engine tests"""
import pytest
import random

from progression.gamification.catalog import Catalog, load_catalog
from progression.gamification.engine import ProgressionEngine
from progression.gamification.persistence import InMemoryKeyValueStore, StateRepository
from progression.models.achievement import RequirementType
from progression.models.state import ProgressionState
from tests.helpers import FakeClock, make_achievement


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """Bundled catalog"""
    return load_catalog()


@pytest.fixture
def small_catalog() -> Catalog:
    """Synthetic catalog with a short achievement chain"""
    return Catalog(
        version=99,
        achievements=(
            make_achievement("two_logs", RequirementType.EXPERIENCES_LOGGED, 2, xp_reward=20),
            make_achievement("three_day_streak", RequirementType.CONSECUTIVE_DAYS_LOGGING, 3, xp_reward=30),
            make_achievement("after_two_logs", RequirementType.EXPERIENCES_LOGGED, 2,
                             xp_reward=5, prerequisites=["two_logs"]),
        ),
    )


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store) -> StateRepository:
    return StateRepository(store, key_prefix="gamification_")


@pytest.fixture
def engine(catalog, repository, clock) -> ProgressionEngine:
    """Engine over the bundled catalog with in-memory storage"""
    return ProgressionEngine(
        catalog,
        repository,
        rng=random.Random(42),
        clock=clock,
        recent_events_limit=50,
        metrics_enabled=False,
    )


@pytest.fixture
def fresh_state() -> ProgressionState:
    return ProgressionState()

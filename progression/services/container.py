"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
The container is built once at wiring time (see main.py) and passed by reference.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging
import random

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, catalog) are injected.
    """

    # Infrastructure dependencies (injected)
    store: object  # KeyValueStore implementation
    catalog: object  # Catalog instance
    rng: Optional[random.Random] = None  # Random source for weekly challenges

    # Services (lazy-loaded via properties)
    _engine: Optional[object] = field(default=None, init=False, repr=False)
    _experience_rewards: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def engine(self):
        """Get ProgressionEngine instance (lazy-loaded)"""
        if self._engine is None:
            from progression.gamification.engine import ProgressionEngine
            from progression.gamification.persistence import StateRepository
            self._engine = ProgressionEngine(
                self.catalog,
                StateRepository(self.store),
                rng=self.rng
            )
            logger.debug("ProgressionEngine instantiated")
        return self._engine

    @property
    def experience_rewards(self):
        """Get ExperienceRewardService instance (lazy-loaded)"""
        if self._experience_rewards is None:
            from progression.services.experience_rewards import ExperienceRewardService
            self._experience_rewards = ExperienceRewardService(self.engine)
            logger.debug("ExperienceRewardService instantiated")
        return self._experience_rewards

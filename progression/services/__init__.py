"""
Service Layer Package

This package contains the services that sit between the journal (presentation
layer) and the progression engine.

Services:
- ServiceContainer: Lazy construction of the engine and services
- ExperienceRewardService: Rewards saved journal experiences
"""

from progression.services.container import ServiceContainer
from progression.services.experience_rewards import ExperienceRecord, ExperienceRewardService

__all__ = [
    "ServiceContainer",
    "ExperienceRecord",
    "ExperienceRewardService",
]

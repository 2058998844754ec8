"""
Gamification system for the progression engine

This module implements the reward loop of the journal:
- XP and leveling system
- Multi-category streak tracking
- Achievement system
- Knowledge quests and weekly challenges
- Safety score

All state changes go through ProgressionEngine.
"""

from progression.gamification.xp_system import award_xp, level_from_total_xp, required_xp
from progression.gamification.streak_system import update_streak
from progression.gamification.achievement_system import check_and_award_achievements
from progression.gamification.catalog import Catalog, load_catalog
from progression.gamification.engine import ProgressionEngine

__all__ = [
    "award_xp",
    "level_from_total_xp",
    "required_xp",
    "update_streak",
    "check_and_award_achievements",
    "Catalog",
    "load_catalog",
    "ProgressionEngine",
]

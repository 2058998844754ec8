"""
Progression Catalog

Immutable definitions of achievements, knowledge quests and weekly challenge
templates. The catalog is data (catalog.json, versioned) loaded once at
startup; tests can load synthetic catalogs from their own files or build a
Catalog directly.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from progression.exceptions import CatalogError
from progression.models.achievement import Achievement, TimeFrame
from progression.models.challenge import ChallengeDifficulty, ChallengeTemplate
from progression.models.quest import KnowledgeQuest

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "catalog.json"


class Catalog(BaseModel):
    """Versioned, read-only collection of progression content"""
    model_config = ConfigDict(frozen=True)

    version: int = 1
    achievements: tuple[Achievement, ...] = ()
    quests: tuple[KnowledgeQuest, ...] = ()
    challenge_templates: tuple[ChallengeTemplate, ...] = ()

    @model_validator(mode='after')
    def check_references(self) -> "Catalog":
        """Ids must be unique and prerequisites must point at known entries"""
        achievement_ids = [a.id for a in self.achievements]
        if len(achievement_ids) != len(set(achievement_ids)):
            raise ValueError("Duplicate achievement ids in catalog")
        quest_ids = [q.id for q in self.quests]
        if len(quest_ids) != len(set(quest_ids)):
            raise ValueError("Duplicate quest ids in catalog")

        for achievement in self.achievements:
            unknown = set(achievement.prerequisites) - set(achievement_ids)
            if unknown:
                raise ValueError(
                    f"Achievement '{achievement.id}' has unknown prerequisites: {sorted(unknown)}"
                )
            for requirement in achievement.requirements:
                # Requirement metrics are lifetime counters
                if requirement.time_frame not in (None, TimeFrame.ALL_TIME):
                    raise ValueError(
                        f"Achievement '{achievement.id}' uses unsupported time frame '{requirement.time_frame.value}'"
                    )
        for quest in self.quests:
            unknown = set(quest.prerequisites) - set(quest_ids)
            if unknown:
                raise ValueError(f"Quest '{quest.id}' has unknown prerequisites: {sorted(unknown)}")
            step_ids = [s.id for s in quest.steps]
            if not step_ids or len(step_ids) != len(set(step_ids)):
                raise ValueError(f"Quest '{quest.id}' needs at least one step with unique ids")
        return self

    def get_achievement(self, achievement_id: str) -> Optional[Achievement]:
        for achievement in self.achievements:
            if achievement.id == achievement_id:
                return achievement
        return None

    def get_quest(self, quest_id: str) -> Optional[KnowledgeQuest]:
        for quest in self.quests:
            if quest.id == quest_id:
                return quest
        return None

    def templates_for_difficulty(self, difficulty: ChallengeDifficulty) -> list[ChallengeTemplate]:
        return [t for t in self.challenge_templates if t.difficulty == difficulty]


def load_catalog(path: Optional[Union[str, Path]] = None) -> Catalog:
    """
    Load and validate a catalog file

    Args:
        path: JSON file to load (defaults to the bundled catalog)

    Returns:
        Validated Catalog

    Raises:
        CatalogError: if the file is missing or does not validate
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH

    try:
        raw = catalog_path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(
            f"Cannot read catalog file: {e}",
            path=str(catalog_path),
            operation="load_catalog",
            cause=e
        )

    try:
        catalog = Catalog.model_validate_json(raw)
    except ValidationError as e:
        raise CatalogError(
            f"Invalid catalog file: {e.error_count()} validation error(s)",
            path=str(catalog_path),
            operation="load_catalog",
            cause=e
        )

    logger.info(
        f"Loaded catalog v{catalog.version} from {catalog_path}: "
        f"{len(catalog.achievements)} achievements, {len(catalog.quests)} quests, "
        f"{len(catalog.challenge_templates)} challenge templates"
    )
    return catalog

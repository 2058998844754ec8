"""Level models for XP progression"""
from pydantic import BaseModel, Field


class UserLevel(BaseModel):
    """
    Level state derived from total XP

    Always built from total_xp (see xp_system.level_from_total_xp),
    never mutated field by field.
    """
    current_level: int = Field(default=1, ge=1)
    current_xp: int = Field(default=0, ge=0)
    xp_to_next_level: int = Field(default=100, gt=0)
    total_xp: int = Field(default=0, ge=0)

    def progress_percentage(self) -> float:
        """Fraction of the current level completed, clamped to [0, 1]"""
        return min(1.0, max(0.0, self.current_xp / self.xp_to_next_level))

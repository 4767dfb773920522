"""Scoring configuration (rubric) schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EvaluationType(str, Enum):
    """How a criterion obtains its score."""

    MANUAL = "manual"
    AUTO = "auto"
    HYBRID = "hybrid"


class ScoringLevel(BaseModel):
    """One discrete level a human evaluator may pick for a criterion."""

    level: str
    points: int = Field(ge=0)
    description: str = ""

    model_config = ConfigDict(extra="forbid")


class ScoringCriterionSpec(BaseModel):
    """Criterion as authored by an administrator."""

    category: str
    name: str
    description: str = ""
    max_points: int
    weightage: float | None = None
    scoring_levels: list[ScoringLevel] = Field(default_factory=list)
    evaluation_type: EvaluationType = EvaluationType.MANUAL
    auto_scorer: str | None = None
    sort_order: int = 0
    is_required: bool = True

    model_config = ConfigDict(extra="forbid")

    def level_for(self, points: int) -> str | None:
        """Return the label of the level awarding exactly ``points``."""
        for level in self.scoring_levels:
            if level.points == points:
                return level.level
        return None


class ScoringCriterion(ScoringCriterionSpec):
    """Persisted criterion belonging to one configuration."""

    id: int
    config_id: int


class ScoringConfigurationSpec(BaseModel):
    """Rubric definition submitted for creation."""

    name: str
    description: str = ""
    version: str = "1.0"
    total_max_score: int
    pass_threshold: int
    is_default: bool = False
    criteria: list[ScoringCriterionSpec] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class ScoringConfiguration(BaseModel):
    """Persisted, versioned rubric."""

    id: int
    name: str
    description: str = ""
    version: str = "1.0"
    total_max_score: int
    pass_threshold: int
    is_active: bool = False
    is_default: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    criteria: list[ScoringCriterion] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def ordered_criteria(self) -> list[ScoringCriterion]:
        return sorted(self.criteria, key=lambda item: (item.sort_order, item.id))

    def criterion(self, criteria_id: int) -> ScoringCriterion | None:
        for item in self.criteria:
            if item.id == criteria_id:
                return item
        return None

    @property
    def criteria_max_total(self) -> int:
        return sum(item.max_points for item in self.criteria)

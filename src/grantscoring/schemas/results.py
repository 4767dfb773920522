"""Evaluation outputs: gate, scores, persisted results and batch deltas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ScoreSource = Literal["recorded", "auto", "pending", "gate_failed"]

_GATE_FLAGS: tuple[tuple[str, str], ...] = (
    ("age_eligible", "age"),
    ("registration_eligible", "registration"),
    ("revenue_eligible", "revenue"),
    ("business_plan_eligible", "business_plan"),
    ("impact_eligible", "impact"),
)


class GateResult(BaseModel):
    """Outcome of the mandatory eligibility checks."""

    age: int | None = None
    age_eligible: bool
    registration_eligible: bool
    revenue_eligible: bool
    business_plan_eligible: bool
    impact_eligible: bool
    is_eligible: bool

    model_config = ConfigDict(frozen=True)

    @property
    def failures(self) -> list[str]:
        return [label for flag, label in _GATE_FLAGS if not getattr(self, flag)]


class CriterionScore(BaseModel):
    criteria_id: int
    name: str
    category: str
    evaluation_type: str
    score: int
    max_score: int
    level: str | None = None
    source: ScoreSource


class ScoreResult(BaseModel):
    """Weighted rubric score for one application under one configuration."""

    config_id: int
    per_criterion: list[CriterionScore] = Field(default_factory=list)
    total_score: int = 0
    max_score: int = 0
    is_passing: bool = False
    pending_criteria: list[int] = Field(default_factory=list)

    def breakdown(self) -> dict[str, int]:
        return {str(item.criteria_id): item.score for item in self.per_criterion}


class LegacyScores(BaseModel):
    """Fixed-category scores kept from the original unweighted scheme."""

    market_potential_score: int | None = None
    innovation_score: int | None = None
    climate_adaptation_score: int | None = None
    job_creation_score: int | None = None
    viability_score: int | None = None
    management_capacity_score: int | None = None
    location_bonus: int | None = None
    gender_bonus: int | None = None


class EligibilityResult(LegacyScores):
    """Current evaluation snapshot of an application."""

    application_id: int
    age_eligible: bool = False
    registration_eligible: bool = False
    revenue_eligible: bool = False
    business_plan_eligible: bool = False
    impact_eligible: bool = False
    is_eligible: bool = False
    custom_scores: dict[str, Any] | None = None
    total_score: int | None = None
    scoring_config_id: int | None = None
    evaluation_notes: str | None = None
    evaluated_by: str | None = None
    evaluated_at: datetime | None = None

    def with_gate(self, gate: GateResult) -> "EligibilityResult":
        return self.model_copy(
            update={
                "age_eligible": gate.age_eligible,
                "registration_eligible": gate.registration_eligible,
                "revenue_eligible": gate.revenue_eligible,
                "business_plan_eligible": gate.business_plan_eligible,
                "impact_eligible": gate.impact_eligible,
            }
        )


class EvaluationHistoryEntry(BaseModel):
    """One immutable audit ledger row."""

    id: int | None = None
    application_id: int
    previous_config_id: int | None = None
    new_config_id: int | None = None
    previous_total_score: int | None = None
    new_total_score: int | None = None
    previous_is_eligible: bool | None = None
    new_is_eligible: bool | None = None
    previous_status: str | None = None
    new_status: str | None = None
    change_reason: str | None = None
    evaluated_by: str | None = None
    evaluated_at: datetime | None = None


class ApplicationScoreEntry(BaseModel):
    """Score for one (application, criterion, configuration) triple."""

    id: int | None = None
    application_id: int
    criteria_id: int
    config_id: int
    score: int = 0
    max_score: int
    level: str | None = None
    notes: str | None = None
    assigned_to: str | None = None
    evaluated_by: str | None = None
    evaluated_at: datetime | None = None


class Delta(BaseModel):
    """Before/after comparison for one re-evaluated application."""

    application_id: int
    previous_score: int
    new_score: int
    previous_eligible: bool
    new_eligible: bool
    score_change: int
    eligibility_changed: bool


class BatchSummary(BaseModel):
    total_evaluated: int = 0
    eligibility_changes: int = 0
    newly_eligible_count: int = 0
    lost_eligibility_count: int = 0
    average_score_change: float = 0.0


class FailedItem(BaseModel):
    application_id: int
    kind: str
    message: str


class StatusChangeBatch(BaseModel):
    """Outcome of a bulk status change; failures are reported per application."""

    status: str
    updated: list[EvaluationHistoryEntry] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[int]:
        return [entry.application_id for entry in self.updated]


class BatchResult(BaseModel):
    """Outcome of a re-evaluation batch, including partial failures."""

    config_id: int
    deltas: list[Delta] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)
    failed: list[FailedItem] = Field(default_factory=list)
    skipped: list[int] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> list[int]:
        return [delta.application_id for delta in self.deltas]

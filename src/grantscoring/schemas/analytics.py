"""Analytics filter and report schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AgeBucket = Literal["under-18", "18-24", "25-29", "30-34", "35+"]


class AnalyticsFilter(BaseModel):
    """Predicate applied to applications before aggregation.

    ``None`` means "no restriction" for every field.
    """

    statuses: list[str] | None = None
    submitted_from: date | None = None
    submitted_to: date | None = None
    country: str | None = None
    gender: str | None = None
    age_bucket: AgeBucket | None = None
    education_level: str | None = None
    is_eligible: bool | None = None

    model_config = ConfigDict(extra="forbid")


class DistributionEntry(BaseModel):
    key: str
    count: int
    percentage: int


class Overview(BaseModel):
    total_applications: int = 0
    eligible_applications: int = 0
    evaluated_applications: int = 0
    female_count: int = 0
    male_count: int = 0
    average_age: float = 0.0
    total_revenue: Decimal = Decimal("0")
    total_employees: int = 0


class Demographics(BaseModel):
    gender: list[DistributionEntry] = Field(default_factory=list)
    age: list[DistributionEntry] = Field(default_factory=list)
    education: list[DistributionEntry] = Field(default_factory=list)
    country: list[DistributionEntry] = Field(default_factory=list)


class BusinessProfile(BaseModel):
    revenue: list[DistributionEntry] = Field(default_factory=list)
    employment: list[DistributionEntry] = Field(default_factory=list)
    registration: list[DistributionEntry] = Field(default_factory=list)


class CriterionUtilisation(BaseModel):
    criteria_id: int
    name: str
    category: str
    max_points: int
    score_count: int
    average_score: float
    utilisation: int


class EvaluationInsights(BaseModel):
    criteria: list[CriterionUtilisation] = Field(default_factory=list)
    total_score_histogram: list[DistributionEntry] = Field(default_factory=list)
    status: list[DistributionEntry] = Field(default_factory=list)


class EvaluatorPerformance(BaseModel):
    evaluator_id: str
    total_assignments: int
    completed_evaluations: int
    completion_rate: int
    average_score: float
    total_scores: int
    last_activity: datetime | None = None
    is_active: bool = False


class TimelinePoint(BaseModel):
    month: str
    submissions: int = 0
    eligible: int = 0
    female: int = 0


class AnalyticsReport(BaseModel):
    generated_at: datetime
    filter: AnalyticsFilter = Field(default_factory=AnalyticsFilter)
    overview: Overview = Field(default_factory=Overview)
    demographics: Demographics = Field(default_factory=Demographics)
    business: BusinessProfile = Field(default_factory=BusinessProfile)
    evaluation: EvaluationInsights = Field(default_factory=EvaluationInsights)
    evaluators: list[EvaluatorPerformance] = Field(default_factory=list)
    timeline: list[TimelinePoint] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    """One ranked application on the jury leaderboard."""

    rank: int
    application_id: int
    business_name: str
    applicant_name: str
    country: str
    status: str
    total_score: int = 0
    max_score: int = 0
    percentage: int = 0
    evaluator_count: int = 0
    is_eligible: bool | None = None

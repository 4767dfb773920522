"""Applicant, business and application records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

from .results import EligibilityResult

Gender = Literal["male", "female", "other"]

EducationLevel = Literal[
    "primary_school_and_below",
    "high_school",
    "technical_college",
    "undergraduate",
    "postgraduate",
]

ApplicationStatus = Literal[
    "draft",
    "submitted",
    "under_review",
    "shortlisted",
    "scoring_phase",
    "dragons_den",
    "finalist",
    "approved",
    "rejected",
]

APPLICATION_STATUSES: tuple[str, ...] = get_args(ApplicationStatus)


class Applicant(BaseModel):
    """Identity and demographic attributes of the person applying."""

    id: int | None = None
    user_id: str
    first_name: str
    last_name: str
    gender: Gender
    date_of_birth: date
    citizenship: str
    country_of_residence: str
    education_level: EducationLevel
    email: str | None = None

    model_config = ConfigDict(extra="forbid")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class FundingRecord(BaseModel):
    """External funding previously received by the business."""

    has_external_funding: bool = False
    funding_source: str | None = None
    funder_name: str | None = None
    funding_date: date | None = None
    amount_usd: Decimal | None = None
    funding_instrument: str | None = None

    model_config = ConfigDict(extra="forbid")


class Business(BaseModel):
    """Operational attributes of the venture."""

    id: int | None = None
    name: str
    is_registered: bool
    country: str
    city: str = ""
    start_date: date | None = None
    revenue_last_two_years: Decimal = Decimal("0")
    full_time_employees_male: int = Field(default=0, ge=0)
    full_time_employees_female: int = Field(default=0, ge=0)
    part_time_employees_male: int = Field(default=0, ge=0)
    part_time_employees_female: int = Field(default=0, ge=0)
    description: str = ""
    problem_solved: str = ""
    climate_adaptation_contribution: str = ""
    climate_extreme_impact: str = ""
    product_service_description: str = ""
    current_challenges: str = ""
    support_needed: str = ""
    unit_price: Decimal | None = None
    customer_count_last_six_months: int = Field(default=0, ge=0)
    target_customers: list[str] = Field(default_factory=list)
    funding: FundingRecord | None = None

    model_config = ConfigDict(extra="forbid")

    @property
    def total_employees(self) -> int:
        return (
            self.full_time_employees_male
            + self.full_time_employees_female
            + self.part_time_employees_male
            + self.part_time_employees_female
        )

    @property
    def female_employees(self) -> int:
        return self.full_time_employees_female + self.part_time_employees_female


class Application(BaseModel):
    """The unit of evaluation, joined with its current eligibility result."""

    id: int
    status: ApplicationStatus = "submitted"
    applicant: Applicant
    business: Business
    referral_source: str | None = None
    submitted_at: datetime | None = None
    created_at: datetime | None = None
    current_result: EligibilityResult | None = None

    model_config = ConfigDict(extra="forbid")

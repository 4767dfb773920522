"""SQLAlchemy ORM tables."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    DDL,
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..errors import PersistenceError


class Base(DeclarativeBase):
    pass


class ApplicantRow(Base):
    __tablename__ = "applicants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    gender: Mapped[str] = mapped_column(String(16), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    citizenship: Mapped[str] = mapped_column(String(64), nullable=False)
    country_of_residence: Mapped[str] = mapped_column(String(64), nullable=False)
    education_level: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))


class BusinessRow(Base):
    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_id: Mapped[int] = mapped_column(ForeignKey("applicants.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    country: Mapped[str] = mapped_column(String(64), nullable=False)
    city: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    revenue_last_two_years: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), nullable=False, default=Decimal("0")
    )
    full_time_employees_male: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    full_time_employees_female: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_time_employees_male: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_time_employees_female: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    problem_solved: Mapped[str] = mapped_column(Text, nullable=False, default="")
    climate_adaptation_contribution: Mapped[str] = mapped_column(Text, nullable=False, default="")
    climate_extreme_impact: Mapped[str] = mapped_column(Text, nullable=False, default="")
    product_service_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_challenges: Mapped[str] = mapped_column(Text, nullable=False, default="")
    support_needed: Mapped[str] = mapped_column(Text, nullable=False, default="")
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2))
    customer_count_last_six_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_customers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    has_external_funding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    funding_source: Mapped[Optional[str]] = mapped_column(String(128))
    funder_name: Mapped[Optional[str]] = mapped_column(String(255))
    funding_date: Mapped[Optional[date]] = mapped_column(Date)
    funding_amount_usd: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2))
    funding_instrument: Mapped[Optional[str]] = mapped_column(String(64))


class ApplicationRow(Base):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    applicant_id: Mapped[int] = mapped_column(
        ForeignKey("applicants.id"), nullable=False, unique=True
    )
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="submitted")
    referral_source: Mapped[Optional[str]] = mapped_column(String(128))
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    applicant: Mapped[ApplicantRow] = relationship(lazy="joined")
    business: Mapped[BusinessRow] = relationship(lazy="joined")
    result: Mapped[Optional["EligibilityResultRow"]] = relationship(
        back_populates="application", uselist=False, lazy="joined"
    )


class ScoringConfigurationRow(Base):
    __tablename__ = "scoring_configurations"
    __table_args__ = (
        UniqueConstraint("name", "version", name="uq_scoring_configurations_name_version"),
        # At most one row may carry is_active = true.
        Index(
            "uq_scoring_configurations_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[str] = mapped_column(String(32), nullable=False, default="1.0")
    total_max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    pass_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    criteria: Mapped[list["ScoringCriterionRow"]] = relationship(
        back_populates="configuration",
        cascade="all, delete-orphan",
        order_by=lambda: [ScoringCriterionRow.sort_order, ScoringCriterionRow.id],
        lazy="selectin",
    )


class ScoringCriterionRow(Base):
    __tablename__ = "scoring_criteria"
    __table_args__ = (UniqueConstraint("config_id", "name", name="uq_scoring_criteria_config_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_id: Mapped[int] = mapped_column(ForeignKey("scoring_configurations.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    max_points: Mapped[int] = mapped_column(Integer, nullable=False)
    weightage: Mapped[Optional[float]] = mapped_column(Float)
    scoring_levels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    evaluation_type: Mapped[str] = mapped_column(String(16), nullable=False, default="manual")
    auto_scorer: Mapped[Optional[str]] = mapped_column(String(64))
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    configuration: Mapped[ScoringConfigurationRow] = relationship(back_populates="criteria")


class ApplicationScoreRow(Base):
    __tablename__ = "application_scores"
    __table_args__ = (
        UniqueConstraint(
            "application_id", "criteria_id", "config_id", name="uq_application_scores_triple"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(ForeignKey("applications.id"), nullable=False)
    criteria_id: Mapped[int] = mapped_column(ForeignKey("scoring_criteria.id"), nullable=False)
    config_id: Mapped[int] = mapped_column(ForeignKey("scoring_configurations.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_score: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[Optional[str]] = mapped_column(String(64))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(128), index=True)
    evaluated_by: Mapped[Optional[str]] = mapped_column(String(128))
    evaluated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class EligibilityResultRow(Base):
    __tablename__ = "eligibility_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id"), nullable=False, unique=True
    )
    age_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    registration_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revenue_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    business_plan_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    impact_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    market_potential_score: Mapped[Optional[int]] = mapped_column(Integer)
    innovation_score: Mapped[Optional[int]] = mapped_column(Integer)
    climate_adaptation_score: Mapped[Optional[int]] = mapped_column(Integer)
    job_creation_score: Mapped[Optional[int]] = mapped_column(Integer)
    viability_score: Mapped[Optional[int]] = mapped_column(Integer)
    management_capacity_score: Mapped[Optional[int]] = mapped_column(Integer)
    location_bonus: Mapped[Optional[int]] = mapped_column(Integer)
    gender_bonus: Mapped[Optional[int]] = mapped_column(Integer)
    custom_scores: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    total_score: Mapped[Optional[int]] = mapped_column(Integer)
    scoring_config_id: Mapped[Optional[int]] = mapped_column(ForeignKey("scoring_configurations.id"))
    evaluation_notes: Mapped[Optional[str]] = mapped_column(Text)
    evaluated_by: Mapped[Optional[str]] = mapped_column(String(128))
    evaluated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    application: Mapped[ApplicationRow] = relationship(back_populates="result")


class EvaluationHistoryRow(Base):
    """Append-only audit ledger."""

    __tablename__ = "evaluation_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id"), nullable=False, index=True
    )
    previous_config_id: Mapped[Optional[int]] = mapped_column(ForeignKey("scoring_configurations.id"))
    new_config_id: Mapped[Optional[int]] = mapped_column(ForeignKey("scoring_configurations.id"))
    previous_total_score: Mapped[Optional[int]] = mapped_column(Integer)
    new_total_score: Mapped[Optional[int]] = mapped_column(Integer)
    previous_is_eligible: Mapped[Optional[bool]] = mapped_column(Boolean)
    new_is_eligible: Mapped[Optional[bool]] = mapped_column(Boolean)
    previous_status: Mapped[Optional[str]] = mapped_column(String(32))
    new_status: Mapped[Optional[str]] = mapped_column(String(32))
    change_reason: Mapped[Optional[str]] = mapped_column(Text)
    evaluated_by: Mapped[Optional[str]] = mapped_column(String(128))
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


@event.listens_for(EvaluationHistoryRow, "before_update")
def _reject_history_update(mapper, connection, target) -> None:  # noqa: ARG001
    raise PersistenceError(
        "Evaluation history is append-only; rows cannot be updated",
        identifier=target.id,
    )


@event.listens_for(EvaluationHistoryRow, "before_delete")
def _reject_history_delete(mapper, connection, target) -> None:  # noqa: ARG001
    raise PersistenceError(
        "Evaluation history is append-only; rows cannot be deleted",
        identifier=target.id,
    )


# Bulk statements bypass the ORM hooks above; SQLite also refuses them itself.
for _operation in ("UPDATE", "DELETE"):
    event.listen(
        EvaluationHistoryRow.__table__,
        "after_create",
        DDL(
            f"CREATE TRIGGER IF NOT EXISTS evaluation_history_no_{_operation.lower()} "
            f"BEFORE {_operation} ON evaluation_history "
            "BEGIN SELECT RAISE(ABORT, 'evaluation_history is append-only'); END"
        ).execute_if(dialect="sqlite"),
    )


__all__ = [
    "Base",
    "ApplicantRow",
    "BusinessRow",
    "ApplicationRow",
    "ScoringConfigurationRow",
    "ScoringCriterionRow",
    "ApplicationScoreRow",
    "EligibilityResultRow",
    "EvaluationHistoryRow",
]

"""Session-bound stores translating between ORM rows and schema models."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..clock import as_utc
from ..errors import ConflictError, NotFoundError
from ..schemas import (
    Applicant,
    Application,
    ApplicationScoreEntry,
    Business,
    EligibilityResult,
    EvaluationHistoryEntry,
    FundingRecord,
    ScoringConfiguration,
    ScoringConfigurationSpec,
    ScoringCriterion,
    ScoringLevel,
)
from .models import (
    ApplicantRow,
    ApplicationRow,
    ApplicationScoreRow,
    BusinessRow,
    EligibilityResultRow,
    EvaluationHistoryRow,
    ScoringConfigurationRow,
    ScoringCriterionRow,
)

_RESULT_FIELDS: tuple[str, ...] = tuple(
    name for name in EligibilityResult.model_fields if name != "application_id"
)


def _utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def _applicant_from_row(row: ApplicantRow) -> Applicant:
    return Applicant(
        id=row.id,
        user_id=row.user_id,
        first_name=row.first_name,
        last_name=row.last_name,
        gender=row.gender,
        date_of_birth=row.date_of_birth,
        citizenship=row.citizenship,
        country_of_residence=row.country_of_residence,
        education_level=row.education_level,
        email=row.email,
    )


def _business_from_row(row: BusinessRow) -> Business:
    funding = None
    if row.has_external_funding or row.funding_source or row.funding_amount_usd is not None:
        funding = FundingRecord(
            has_external_funding=row.has_external_funding,
            funding_source=row.funding_source,
            funder_name=row.funder_name,
            funding_date=row.funding_date,
            amount_usd=row.funding_amount_usd,
            funding_instrument=row.funding_instrument,
        )
    return Business(
        id=row.id,
        name=row.name,
        is_registered=row.is_registered,
        country=row.country,
        city=row.city,
        start_date=row.start_date,
        revenue_last_two_years=row.revenue_last_two_years,
        full_time_employees_male=row.full_time_employees_male,
        full_time_employees_female=row.full_time_employees_female,
        part_time_employees_male=row.part_time_employees_male,
        part_time_employees_female=row.part_time_employees_female,
        description=row.description,
        problem_solved=row.problem_solved,
        climate_adaptation_contribution=row.climate_adaptation_contribution,
        climate_extreme_impact=row.climate_extreme_impact,
        product_service_description=row.product_service_description,
        current_challenges=row.current_challenges,
        support_needed=row.support_needed,
        unit_price=row.unit_price,
        customer_count_last_six_months=row.customer_count_last_six_months,
        target_customers=list(row.target_customers or []),
        funding=funding,
    )


def _result_from_row(row: EligibilityResultRow) -> EligibilityResult:
    payload = {name: getattr(row, name) for name in _RESULT_FIELDS}
    payload["evaluated_at"] = _utc(row.evaluated_at)
    return EligibilityResult(application_id=row.application_id, **payload)


def _application_from_row(row: ApplicationRow) -> Application:
    return Application(
        id=row.id,
        status=row.status,
        applicant=_applicant_from_row(row.applicant),
        business=_business_from_row(row.business),
        referral_source=row.referral_source,
        submitted_at=_utc(row.submitted_at),
        created_at=_utc(row.created_at),
        current_result=_result_from_row(row.result) if row.result is not None else None,
    )


def _criterion_from_row(row: ScoringCriterionRow) -> ScoringCriterion:
    return ScoringCriterion(
        id=row.id,
        config_id=row.config_id,
        category=row.category,
        name=row.name,
        description=row.description,
        max_points=row.max_points,
        weightage=row.weightage,
        scoring_levels=[ScoringLevel.model_validate(level) for level in row.scoring_levels or []],
        evaluation_type=row.evaluation_type,
        auto_scorer=row.auto_scorer,
        sort_order=row.sort_order,
        is_required=row.is_required,
    )


def _configuration_from_row(row: ScoringConfigurationRow) -> ScoringConfiguration:
    return ScoringConfiguration(
        id=row.id,
        name=row.name,
        description=row.description,
        version=row.version,
        total_max_score=row.total_max_score,
        pass_threshold=row.pass_threshold,
        is_active=row.is_active,
        is_default=row.is_default,
        created_by=row.created_by,
        created_at=_utc(row.created_at),
        criteria=[_criterion_from_row(item) for item in row.criteria],
    )


def _score_from_row(row: ApplicationScoreRow) -> ApplicationScoreEntry:
    return ApplicationScoreEntry(
        id=row.id,
        application_id=row.application_id,
        criteria_id=row.criteria_id,
        config_id=row.config_id,
        score=row.score,
        max_score=row.max_score,
        level=row.level,
        notes=row.notes,
        assigned_to=row.assigned_to,
        evaluated_by=row.evaluated_by,
        evaluated_at=_utc(row.evaluated_at),
    )


def _history_from_row(row: EvaluationHistoryRow) -> EvaluationHistoryEntry:
    return EvaluationHistoryEntry(
        id=row.id,
        application_id=row.application_id,
        previous_config_id=row.previous_config_id,
        new_config_id=row.new_config_id,
        previous_total_score=row.previous_total_score,
        new_total_score=row.new_total_score,
        previous_is_eligible=row.previous_is_eligible,
        new_is_eligible=row.new_is_eligible,
        previous_status=row.previous_status,
        new_status=row.new_status,
        change_reason=row.change_reason,
        evaluated_by=row.evaluated_by,
        evaluated_at=_utc(row.evaluated_at),
    )


class RecordStore:
    """Applicants, businesses and applications."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_application(self, application_id: int) -> Application:
        return _application_from_row(self._application_row(application_id))

    def list_applications(
        self,
        ids: Iterable[int] | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[Application]:
        stmt = select(ApplicationRow).order_by(ApplicationRow.id)
        if ids is not None:
            stmt = stmt.where(ApplicationRow.id.in_(list(ids)))
        if statuses is not None:
            stmt = stmt.where(ApplicationRow.status.in_(list(statuses)))
        rows = self._session.scalars(stmt).unique().all()
        return [_application_from_row(row) for row in rows]

    def list_application_ids(self, statuses: Iterable[str] | None = None) -> list[int]:
        stmt = select(ApplicationRow.id).order_by(ApplicationRow.id)
        if statuses is not None:
            stmt = stmt.where(ApplicationRow.status.in_(list(statuses)))
        return list(self._session.scalars(stmt).all())

    def create_submission(
        self,
        applicant: Applicant,
        business: Business,
        *,
        status: str,
        created_at: datetime,
        submitted_at: datetime | None = None,
        referral_source: str | None = None,
    ) -> int:
        """Insert applicant, business and application; return the application id."""
        applicant_row = self._session.scalars(
            select(ApplicantRow).where(ApplicantRow.user_id == applicant.user_id)
        ).one_or_none()
        if applicant_row is not None:
            existing = self._session.scalars(
                select(ApplicationRow.id).where(ApplicationRow.applicant_id == applicant_row.id)
            ).first()
            if existing is not None:
                raise ConflictError(
                    f"Applicant {applicant.user_id!r} already has application {existing}",
                    field="user_id",
                    identifier=existing,
                )
            for name, value in applicant.model_dump(exclude={"id"}).items():
                setattr(applicant_row, name, value)
        else:
            applicant_row = ApplicantRow(**applicant.model_dump(exclude={"id"}))
            self._session.add(applicant_row)
        self._session.flush()

        funding = business.funding or FundingRecord()
        business_row = BusinessRow(
            applicant_id=applicant_row.id,
            has_external_funding=funding.has_external_funding,
            funding_source=funding.funding_source,
            funder_name=funding.funder_name,
            funding_date=funding.funding_date,
            funding_amount_usd=funding.amount_usd,
            funding_instrument=funding.funding_instrument,
            **business.model_dump(exclude={"id", "funding"}),
        )
        self._session.add(business_row)
        self._session.flush()

        application_row = ApplicationRow(
            applicant_id=applicant_row.id,
            business_id=business_row.id,
            status=status,
            referral_source=referral_source,
            submitted_at=submitted_at,
            created_at=created_at,
        )
        self._session.add(application_row)
        self._session.flush()
        return application_row.id

    def set_status(
        self,
        application_id: int,
        status: str,
        *,
        expected_status: str | None = None,
    ) -> str:
        """Update the status and return the previous one."""
        row = self._application_row(application_id)
        previous = row.status
        if expected_status is not None and previous != expected_status:
            raise ConflictError(
                f"Application {application_id} is {previous}, expected {expected_status}",
                identifier=application_id,
            )
        row.status = status
        self._session.flush()
        return previous

    def _application_row(self, application_id: int) -> ApplicationRow:
        row = self._session.get(ApplicationRow, application_id)
        if row is None:
            raise NotFoundError(
                f"Application {application_id} not found",
                identifier=application_id,
            )
        return row


class ConfigurationStore:
    """Scoring configurations and their criteria."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_configuration(self, config_id: int) -> ScoringConfiguration:
        row = self._session.get(ScoringConfigurationRow, config_id)
        if row is None:
            raise NotFoundError(
                f"Scoring configuration {config_id} not found",
                identifier=config_id,
            )
        return _configuration_from_row(row)

    def get_active_configuration(self) -> ScoringConfiguration | None:
        row = self._session.scalars(
            select(ScoringConfigurationRow).where(ScoringConfigurationRow.is_active.is_(True))
        ).one_or_none()
        return _configuration_from_row(row) if row is not None else None

    def list_configurations(self) -> list[ScoringConfiguration]:
        rows = self._session.scalars(
            select(ScoringConfigurationRow).order_by(ScoringConfigurationRow.id)
        ).all()
        return [_configuration_from_row(row) for row in rows]

    def name_exists(self, name: str) -> bool:
        return (
            self._session.scalars(
                select(ScoringConfigurationRow.id).where(ScoringConfigurationRow.name == name)
            ).first()
            is not None
        )

    def save_configuration(
        self,
        spec: ScoringConfigurationSpec,
        *,
        created_by: str | None,
        created_at: datetime,
    ) -> int:
        row = ScoringConfigurationRow(
            name=spec.name,
            description=spec.description,
            version=spec.version,
            total_max_score=spec.total_max_score,
            pass_threshold=spec.pass_threshold,
            is_active=False,
            is_default=spec.is_default,
            created_by=created_by,
            created_at=created_at,
            criteria=[
                ScoringCriterionRow(
                    category=item.category,
                    name=item.name,
                    description=item.description,
                    max_points=item.max_points,
                    weightage=item.weightage,
                    scoring_levels=[level.model_dump() for level in item.scoring_levels],
                    evaluation_type=item.evaluation_type.value,
                    auto_scorer=item.auto_scorer,
                    sort_order=item.sort_order,
                    is_required=item.is_required,
                )
                for item in spec.criteria
            ],
        )
        self._session.add(row)
        self._session.flush()
        return row.id

    def set_active(self, config_id: int) -> ScoringConfiguration:
        """Deactivate every configuration, then activate ``config_id``.

        Row locks are taken on the configuration table first so concurrent
        activations serialise on databases that support ``FOR UPDATE``.
        """
        locked = set(
            self._session.scalars(
                select(ScoringConfigurationRow.id).with_for_update()
            ).all()
        )
        if config_id not in locked:
            raise NotFoundError(
                f"Scoring configuration {config_id} not found",
                identifier=config_id,
            )
        self._session.execute(
            update(ScoringConfigurationRow)
            .where(ScoringConfigurationRow.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        self._session.execute(
            update(ScoringConfigurationRow)
            .where(ScoringConfigurationRow.id == config_id)
            .values(is_active=True)
            .execution_options(synchronize_session=False)
        )
        self._session.expire_all()
        return self.get_configuration(config_id)

    def get_criterion(self, criteria_id: int) -> ScoringCriterion:
        row = self._session.get(ScoringCriterionRow, criteria_id)
        if row is None:
            raise NotFoundError(
                f"Scoring criterion {criteria_id} not found",
                identifier=criteria_id,
            )
        return _criterion_from_row(row)

    def criteria_by_id(self, config_ids: Iterable[int] | None = None) -> dict[int, ScoringCriterion]:
        stmt = select(ScoringCriterionRow)
        if config_ids is not None:
            stmt = stmt.where(ScoringCriterionRow.config_id.in_(list(config_ids)))
        return {row.id: _criterion_from_row(row) for row in self._session.scalars(stmt).all()}


class ResultStore:
    """Eligibility results, per-criterion scores and the audit ledger."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_eligibility_result(self, application_id: int) -> EligibilityResult | None:
        row = self._result_row(application_id)
        return _result_from_row(row) if row is not None else None

    def upsert_eligibility_result(
        self,
        result: EligibilityResult,
        *,
        update_fields: Sequence[str] | None = None,
    ) -> EligibilityResult:
        """Create the live result row, or update ``update_fields`` of the existing one.

        A new row always receives every field of ``result``.
        """
        row = self._result_row(result.application_id)
        if row is None:
            row = EligibilityResultRow(
                application_id=result.application_id,
                **{name: getattr(result, name) for name in _RESULT_FIELDS},
            )
            self._session.add(row)
        else:
            for name in update_fields if update_fields is not None else _RESULT_FIELDS:
                setattr(row, name, getattr(result, name))
        self._session.flush()
        return _result_from_row(row)

    def append_evaluation_history(self, entry: EvaluationHistoryEntry) -> EvaluationHistoryEntry:
        row = EvaluationHistoryRow(**entry.model_dump(exclude={"id"}))
        self._session.add(row)
        self._session.flush()
        return _history_from_row(row)

    def list_history(self, application_id: int | None = None) -> list[EvaluationHistoryEntry]:
        stmt = select(EvaluationHistoryRow).order_by(EvaluationHistoryRow.id)
        if application_id is not None:
            stmt = stmt.where(EvaluationHistoryRow.application_id == application_id)
        return [_history_from_row(row) for row in self._session.scalars(stmt).all()]

    def get_application_score(
        self, application_id: int, criteria_id: int, config_id: int
    ) -> ApplicationScoreEntry | None:
        row = self._score_row(application_id, criteria_id, config_id)
        return _score_from_row(row) if row is not None else None

    def upsert_application_score(self, entry: ApplicationScoreEntry) -> ApplicationScoreEntry:
        row = self._score_row(entry.application_id, entry.criteria_id, entry.config_id)
        values = entry.model_dump(exclude={"id", "application_id", "criteria_id", "config_id"})
        if row is None:
            row = ApplicationScoreRow(
                application_id=entry.application_id,
                criteria_id=entry.criteria_id,
                config_id=entry.config_id,
                **values,
            )
            self._session.add(row)
        else:
            for name, value in values.items():
                setattr(row, name, value)
        self._session.flush()
        return _score_from_row(row)

    def list_application_scores(
        self,
        application_ids: Iterable[int] | None = None,
        config_id: int | None = None,
    ) -> list[ApplicationScoreEntry]:
        stmt = select(ApplicationScoreRow).order_by(ApplicationScoreRow.id)
        if application_ids is not None:
            stmt = stmt.where(ApplicationScoreRow.application_id.in_(list(application_ids)))
        if config_id is not None:
            stmt = stmt.where(ApplicationScoreRow.config_id == config_id)
        return [_score_from_row(row) for row in self._session.scalars(stmt).all()]

    def recorded_scores(self, application_id: int, config_id: int) -> dict[int, ApplicationScoreEntry]:
        """Completed scores keyed by criterion; open assignments are left out."""
        return {
            entry.criteria_id: entry
            for entry in self.list_application_scores([application_id], config_id)
            if entry.evaluated_at is not None
        }

    def _result_row(self, application_id: int) -> EligibilityResultRow | None:
        return self._session.scalars(
            select(EligibilityResultRow).where(EligibilityResultRow.application_id == application_id)
        ).one_or_none()

    def _score_row(
        self, application_id: int, criteria_id: int, config_id: int
    ) -> ApplicationScoreRow | None:
        return self._session.scalars(
            select(ApplicationScoreRow).where(
                ApplicationScoreRow.application_id == application_id,
                ApplicationScoreRow.criteria_id == criteria_id,
                ApplicationScoreRow.config_id == config_id,
            )
        ).one_or_none()


__all__ = ["RecordStore", "ConfigurationStore", "ResultStore"]

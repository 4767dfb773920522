"""Snapshot reads feeding the analytics aggregator and data export."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

import structlog

from ..actors import Actor, Role, require_admin, require_role
from ..clock import as_utc, utcnow
from ..core.analytics import build_report, matches_filter, percentage
from ..core.gate import exact_age
from ..schemas import (
    AnalyticsFilter,
    AnalyticsReport,
    Application,
    ApplicationScoreEntry,
    LeaderboardEntry,
    ScoringCriterion,
)
from ..store import ConfigurationStore, Database, RecordStore, ResultStore


@dataclass(slots=True)
class Snapshot:
    """Everything the read side needs, loaded in one transaction."""

    applications: list[Application]
    scores: list[ApplicationScoreEntry]
    criteria: dict[int, ScoringCriterion]


class ReportingService:
    def __init__(
        self,
        database: Database,
        *,
        timeline_months: int = 6,
        active_window_days: int = 7,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._database = database
        self._timeline_months = timeline_months
        self._active_window_days = active_window_days
        self._now = now_provider or utcnow
        self._logger = structlog.get_logger(__name__)

    def snapshot(self, flt: AnalyticsFilter | None = None) -> Snapshot:
        with self._database.session_scope(snapshot=True) as session:
            applications = RecordStore(session).list_applications(
                statuses=flt.statuses if flt and flt.statuses else None
            )
            scores = ResultStore(session).list_application_scores()
            configs = ConfigurationStore(session)
            active = configs.get_active_configuration()
            config_ids = {entry.config_id for entry in scores}
            config_ids.update(
                item.current_result.scoring_config_id
                for item in applications
                if item.current_result is not None and item.current_result.scoring_config_id
            )
            if active is not None:
                config_ids.add(active.id)
            criteria = configs.criteria_by_id(config_ids)
        return Snapshot(applications=applications, scores=scores, criteria=criteria)

    def analytics(
        self,
        actor: Actor | None,
        flt: AnalyticsFilter | None = None,
        *,
        as_of: datetime | None = None,
    ) -> AnalyticsReport:
        require_admin(actor, operation="get_analytics")
        flt = flt or AnalyticsFilter()
        snapshot = self.snapshot(flt)
        report = build_report(
            snapshot.applications,
            snapshot.scores,
            snapshot.criteria,
            flt=flt,
            as_of=as_of or self._now(),
            timeline_months=self._timeline_months,
            active_window_days=self._active_window_days,
        )
        self._logger.info(
            "analytics.generated",
            applications=report.overview.total_applications,
            degraded_sections=len(report.errors),
            actor=actor.user_id,
        )
        return report

    def export_rows(
        self,
        actor: Actor | None,
        flt: AnalyticsFilter | None = None,
        *,
        as_of: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Flat per-application rows for CSV or spreadsheet export."""
        require_admin(actor, operation="export_evaluation_data")
        flt = flt or AnalyticsFilter()
        on = as_utc(as_of or self._now()).date()
        snapshot = self.snapshot(flt)
        rows = [
            self._export_row(item, snapshot.criteria, on)
            for item in snapshot.applications
            if matches_filter(item, flt, on)
        ]
        self._logger.info("export.generated", rows=len(rows), actor=actor.user_id)
        return rows

    def leaderboard(
        self,
        actor: Actor | None,
        *,
        statuses: Iterable[str] | None = ("dragons_den",),
    ) -> list[LeaderboardEntry]:
        """Rank applications by their current total, highest first.

        ``statuses=None`` ranks every application. Ties keep submission order.
        """
        require_role(actor, Role.ADMIN, Role.DRAGONS_DEN_JUDGE, operation="leaderboard")
        with self._database.session_scope(snapshot=True) as session:
            applications = RecordStore(session).list_applications(
                statuses=list(statuses) if statuses is not None else None
            )
            scores = ResultStore(session).list_application_scores(
                [item.id for item in applications]
            )
            maxima = {
                config.id: config.total_max_score
                for config in ConfigurationStore(session).list_configurations()
            }

        evaluators: dict[tuple[int, int], set[str]] = {}
        for entry in scores:
            if entry.evaluated_at is not None and entry.evaluated_by:
                evaluators.setdefault((entry.application_id, entry.config_id), set()).add(
                    entry.evaluated_by
                )

        ranked = sorted(
            applications,
            key=lambda item: (
                -(item.current_result.total_score if item.current_result else 0),
                item.id,
            ),
        )
        board = []
        for rank, application in enumerate(ranked, start=1):
            result = application.current_result
            config_id = result.scoring_config_id if result else None
            total = result.total_score if result else 0
            maximum = maxima.get(config_id, 0) if config_id is not None else 0
            board.append(
                LeaderboardEntry(
                    rank=rank,
                    application_id=application.id,
                    business_name=application.business.name,
                    applicant_name=application.applicant.full_name,
                    country=application.business.country,
                    status=application.status,
                    total_score=total,
                    max_score=maximum,
                    percentage=percentage(total, maximum),
                    evaluator_count=len(evaluators.get((application.id, config_id), ())),
                    is_eligible=result.is_eligible if result else None,
                )
            )
        self._logger.info("leaderboard.generated", entries=len(board), actor=actor.user_id)
        return board

    @staticmethod
    def _export_row(
        application: Application,
        criteria: dict[int, ScoringCriterion],
        on,
    ) -> dict[str, Any]:
        applicant = application.applicant
        business = application.business
        result = application.current_result
        row: dict[str, Any] = {
            "application_id": application.id,
            "status": application.status,
            "submitted_at": application.submitted_at.isoformat() if application.submitted_at else None,
            "user_id": applicant.user_id,
            "first_name": applicant.first_name,
            "last_name": applicant.last_name,
            "email": applicant.email,
            "gender": applicant.gender,
            "date_of_birth": applicant.date_of_birth.isoformat(),
            "age": exact_age(applicant.date_of_birth, on),
            "education_level": applicant.education_level,
            "country_of_residence": applicant.country_of_residence,
            "business_name": business.name,
            "business_country": business.country,
            "business_city": business.city,
            "is_registered": business.is_registered,
            "revenue_last_two_years": str(business.revenue_last_two_years),
            "total_employees": business.total_employees,
            "female_employees": business.female_employees,
            "customer_count_last_six_months": business.customer_count_last_six_months,
            "is_eligible": result.is_eligible if result else None,
            "age_eligible": result.age_eligible if result else None,
            "registration_eligible": result.registration_eligible if result else None,
            "revenue_eligible": result.revenue_eligible if result else None,
            "business_plan_eligible": result.business_plan_eligible if result else None,
            "impact_eligible": result.impact_eligible if result else None,
            "total_score": result.total_score if result else None,
            "scoring_config_id": result.scoring_config_id if result else None,
            "evaluated_at": result.evaluated_at.isoformat() if result and result.evaluated_at else None,
        }
        for key, value in ((result.custom_scores or {}) if result else {}).items():
            criterion = criteria.get(int(key)) if str(key).isdigit() else None
            label = criterion.name if criterion is not None else key
            row[f"score: {label}"] = value
        return row

"""Facade exposing the engine's operations to the surrounding platform."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Iterable, Mapping

from .actors import Actor
from .schemas import (
    AnalyticsFilter,
    AnalyticsReport,
    Applicant,
    Application,
    ApplicationScoreEntry,
    BatchResult,
    Business,
    EligibilityResult,
    EvaluationHistoryEntry,
    LeaderboardEntry,
    ScoringConfiguration,
    ScoringConfigurationSpec,
    StatusChangeBatch,
)
from .services import (
    ConfigurationManager,
    EvaluatorService,
    ReEvaluationEngine,
    ReportingService,
    SubmissionService,
)
from .store import Database, RecordStore, ResultStore


class ScoringEngine:
    """Single entry point for submission, rubric, re-evaluation and reporting calls."""

    def __init__(
        self,
        *,
        database: Database,
        lifecycle: ConfigurationManager,
        submissions: SubmissionService,
        evaluators: EvaluatorService,
        reevaluation: ReEvaluationEngine,
        reporting: ReportingService,
    ) -> None:
        self._database = database
        self._lifecycle = lifecycle
        self._submissions = submissions
        self._evaluators = evaluators
        self._reevaluation = reevaluation
        self._reporting = reporting

    @property
    def database(self) -> Database:
        return self._database

    # Submissions

    def submit_application(
        self,
        applicant: Applicant,
        business: Business,
        *,
        actor: Actor | None = None,
        referral_source: str | None = None,
        draft: bool = False,
    ) -> Application:
        return self._submissions.submit(
            applicant, business, actor=actor, referral_source=referral_source, draft=draft
        )

    def evaluate_submission(self, application_id: int, actor: Actor | None = None) -> EligibilityResult:
        return self._submissions.evaluate_submission(application_id, actor=actor)

    def update_status(
        self,
        actor: Actor | None,
        application_id: int,
        status: str,
        *,
        notes: str | None = None,
    ) -> EvaluationHistoryEntry:
        return self._submissions.update_status(actor, application_id, status, notes=notes)

    def bulk_update_status(
        self,
        actor: Actor | None,
        application_ids: Iterable[int],
        status: str,
        *,
        notes: str | None = None,
    ) -> StatusChangeBatch:
        return self._submissions.bulk_update_status(actor, application_ids, status, notes=notes)

    def shortlist_applications(
        self,
        actor: Actor | None,
        application_ids: Iterable[int],
        notes: str | None = None,
    ) -> StatusChangeBatch:
        reason = f"Shortlisted: {notes}" if notes else "Application shortlisted for further evaluation"
        return self._submissions.bulk_update_status(
            actor, application_ids, "shortlisted", notes=reason
        )

    def move_to_scoring_phase(
        self,
        actor: Actor | None,
        application_ids: Iterable[int],
        notes: str | None = None,
    ) -> StatusChangeBatch:
        """Advance shortlisted applications; any other status is reported as a conflict."""
        reason = f"Moved to scoring phase: {notes}" if notes else "Application moved to scoring phase"
        return self._submissions.bulk_update_status(
            actor,
            application_ids,
            "scoring_phase",
            notes=reason,
            expected_status="shortlisted",
        )

    def get_application(self, application_id: int) -> Application:
        with self._database.session_scope() as session:
            return RecordStore(session).get_application(application_id)

    # Configurations

    def create_configuration(
        self,
        actor: Actor | None,
        spec: ScoringConfigurationSpec | Mapping[str, Any],
    ) -> int:
        return self._lifecycle.create(actor, spec)

    def activate_configuration(self, actor: Actor | None, config_id: int) -> ScoringConfiguration:
        return self._lifecycle.activate(actor, config_id)

    def get_active_configuration(self) -> ScoringConfiguration:
        return self._lifecycle.get_active()

    def get_configuration(self, config_id: int) -> ScoringConfiguration:
        return self._lifecycle.get(config_id)

    def list_configurations(self) -> list[ScoringConfiguration]:
        return self._lifecycle.list_configurations()

    def seed_default_configuration(self, actor: Actor | None) -> ScoringConfiguration:
        return self._lifecycle.seed_default(actor)

    # Evaluators

    def assign_evaluator(
        self,
        actor: Actor | None,
        application_id: int,
        evaluator_id: str,
        *,
        config_id: int | None = None,
        criteria_ids: Iterable[int] | None = None,
    ) -> list[ApplicationScoreEntry]:
        return self._evaluators.assign(
            actor, application_id, evaluator_id, config_id=config_id, criteria_ids=criteria_ids
        )

    def record_score(
        self,
        actor: Actor | None,
        application_id: int,
        criteria_id: int,
        score: int,
        *,
        level: str | None = None,
        notes: str | None = None,
    ) -> ApplicationScoreEntry:
        return self._evaluators.record_score(
            actor, application_id, criteria_id, score, level=level, notes=notes
        )

    def list_scores(self, application_id: int, config_id: int | None = None) -> list[ApplicationScoreEntry]:
        return self._evaluators.list_scores(application_id, config_id)

    # Re-evaluation and audit

    def re_evaluate(
        self,
        actor: Actor | None,
        config_id: int,
        ids: Iterable[int] | None = None,
        *,
        reason: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        return self._reevaluation.run(
            actor, config_id, ids, reason=reason, cancel_event=cancel_event
        )

    def evaluation_history(self, application_id: int) -> list[EvaluationHistoryEntry]:
        with self._database.session_scope() as session:
            RecordStore(session).get_application(application_id)
            return ResultStore(session).list_history(application_id)

    # Reporting

    def get_analytics(
        self,
        actor: Actor | None,
        flt: AnalyticsFilter | None = None,
        *,
        as_of: datetime | None = None,
    ) -> AnalyticsReport:
        return self._reporting.analytics(actor, flt, as_of=as_of)

    def export_evaluation_data(
        self,
        actor: Actor | None,
        flt: AnalyticsFilter | None = None,
        *,
        as_of: datetime | None = None,
    ) -> list[dict[str, Any]]:
        return self._reporting.export_rows(actor, flt, as_of=as_of)

    def leaderboard(
        self,
        actor: Actor | None,
        *,
        statuses: Iterable[str] | None = ("dragons_den",),
    ) -> list[LeaderboardEntry]:
        return self._reporting.leaderboard(actor, statuses=statuses)

"""Application intake, submission-time evaluation and status transitions."""

from __future__ import annotations

from typing import Any, Callable, Iterable

import structlog

from ..actors import SYSTEM_ACTOR, Actor, Role, require_admin, require_role
from ..clock import utcnow
from ..core import EligibilityGate, WeightedScoringEngine, empty_legacy_scores, legacy_scores
from ..errors import EngineError, ValidationError
from ..schemas import (
    APPLICATION_STATUSES,
    Applicant,
    Application,
    Business,
    EligibilityResult,
    EvaluationHistoryEntry,
    FailedItem,
    StatusChangeBatch,
)
from ..store import ConfigurationStore, Database, RecordStore, ResultStore


class SubmissionService:
    """Runs the gate and the initial rubric score when an application arrives."""

    def __init__(
        self,
        database: Database,
        gate: EligibilityGate,
        scoring: WeightedScoringEngine,
        *,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._database = database
        self._gate = gate
        self._scoring = scoring
        self._now = now_provider or utcnow
        self._logger = structlog.get_logger(__name__)

    def submit(
        self,
        applicant: Applicant,
        business: Business,
        *,
        actor: Actor | None = None,
        referral_source: str | None = None,
        draft: bool = False,
    ) -> Application:
        """Store a new application; unless it is a draft, evaluate it straight away."""
        if actor is not None:
            require_role(actor, Role.APPLICANT, Role.ADMIN, operation="submit_application")
        now = self._now()
        with self._database.session_scope() as session:
            application_id = RecordStore(session).create_submission(
                applicant,
                business,
                status="draft" if draft else "submitted",
                created_at=now,
                submitted_at=None if draft else now,
                referral_source=referral_source,
            )
        self._logger.info(
            "submission.received",
            application_id=application_id,
            user_id=applicant.user_id,
            draft=draft,
        )
        if not draft:
            self.evaluate_submission(application_id, actor=actor)
        with self._database.session_scope() as session:
            return RecordStore(session).get_application(application_id)

    def evaluate_submission(
        self,
        application_id: int,
        actor: Actor | None = None,
    ) -> EligibilityResult:
        """Gate the application and score it against the active rubric.

        ``is_eligible`` reflects the mandatory gate only. A failing gate skips
        scoring and records a zero total. Re-running over an existing result
        appends an audit row with the before and after values.
        """
        actor = actor or SYSTEM_ACTOR
        with self._database.session_scope() as session:
            application = RecordStore(session).get_application(application_id)
            results = ResultStore(session)
            config = ConfigurationStore(session).get_active_configuration()
            previous = results.get_eligibility_result(application_id)

            gate = self._gate.evaluate(application.applicant, application.business)
            if gate.is_eligible:
                legacy = legacy_scores(application.applicant, application.business)
            else:
                legacy = empty_legacy_scores()

            custom_scores = None
            if config is None:
                total = 0
                self._logger.warning(
                    "submission.no_active_configuration", application_id=application_id
                )
            elif gate.is_eligible:
                scored = self._scoring.score(
                    application, config, results.recorded_scores(application_id, config.id)
                )
                total = scored.total_score
                custom_scores = scored.breakdown()
            else:
                total = 0
                custom_scores = self._scoring.zero(config).breakdown()

            result = EligibilityResult(
                application_id=application_id,
                is_eligible=gate.is_eligible,
                total_score=total,
                scoring_config_id=config.id if config is not None else None,
                custom_scores=custom_scores,
                evaluation_notes=previous.evaluation_notes if previous else None,
                evaluated_by=actor.user_id,
                evaluated_at=self._now(),
                **legacy.model_dump(),
            ).with_gate(gate)
            stored = results.upsert_eligibility_result(result)
            if previous is not None:
                results.append_evaluation_history(
                    EvaluationHistoryEntry(
                        application_id=application_id,
                        previous_config_id=previous.scoring_config_id,
                        new_config_id=stored.scoring_config_id,
                        previous_total_score=previous.total_score or 0,
                        new_total_score=total,
                        previous_is_eligible=previous.is_eligible,
                        new_is_eligible=gate.is_eligible,
                        previous_status=application.status,
                        new_status=application.status,
                        change_reason="Submission re-evaluated",
                        evaluated_by=actor.user_id,
                        evaluated_at=result.evaluated_at,
                    )
                )

        self._logger.info(
            "submission.evaluated",
            application_id=application_id,
            is_eligible=gate.is_eligible,
            failures=gate.failures,
            total_score=total,
            config_id=stored.scoring_config_id,
        )
        return stored

    def update_status(
        self,
        actor: Actor | None,
        application_id: int,
        status: str,
        *,
        notes: str | None = None,
        expected_status: str | None = None,
    ) -> EvaluationHistoryEntry:
        """Move an application through its lifecycle and audit the change.

        With ``expected_status`` the move only happens from that status;
        anything else raises :class:`ConflictError` and leaves the row alone.
        """
        require_admin(actor, operation="update_status")
        _check_status(status, application_id)
        with self._database.session_scope() as session:
            previous_status = RecordStore(session).set_status(
                application_id, status, expected_status=expected_status
            )
            results = ResultStore(session)
            current = results.get_eligibility_result(application_id)
            entry = results.append_evaluation_history(
                EvaluationHistoryEntry(
                    application_id=application_id,
                    previous_config_id=current.scoring_config_id if current else None,
                    new_config_id=current.scoring_config_id if current else None,
                    previous_total_score=current.total_score if current else None,
                    new_total_score=current.total_score if current else None,
                    previous_is_eligible=current.is_eligible if current else None,
                    new_is_eligible=current.is_eligible if current else None,
                    previous_status=previous_status,
                    new_status=status,
                    change_reason=notes or f"Status changed from {previous_status} to {status}",
                    evaluated_by=actor.user_id,
                    evaluated_at=self._now(),
                )
            )
        self._logger.info(
            "application.status_changed",
            application_id=application_id,
            previous_status=previous_status,
            new_status=status,
            actor=actor.user_id,
        )
        return entry

    def bulk_update_status(
        self,
        actor: Actor | None,
        application_ids: Iterable[int],
        status: str,
        *,
        notes: str | None = None,
        expected_status: str | None = None,
    ) -> StatusChangeBatch:
        """Apply one status change to many applications.

        Each application commits on its own; one that is missing or not in
        ``expected_status`` is reported in ``failed`` without stopping the rest.
        """
        require_admin(actor, operation="bulk_update_status")
        _check_status(status)
        batch = StatusChangeBatch(status=status)
        for application_id in dict.fromkeys(application_ids):
            try:
                entry = self.update_status(
                    actor,
                    application_id,
                    status,
                    notes=notes,
                    expected_status=expected_status,
                )
            except EngineError as exc:
                self._logger.warning(
                    "application.status_change_failed",
                    application_id=application_id,
                    kind=exc.kind,
                    error=exc.message,
                )
                batch.failed.append(
                    FailedItem(application_id=application_id, kind=exc.kind, message=exc.message)
                )
            else:
                batch.updated.append(entry)
        self._logger.info(
            "application.bulk_status_changed",
            status=status,
            updated=len(batch.updated),
            failed=len(batch.failed),
            actor=actor.user_id,
        )
        return batch


def _check_status(status: str, application_id: int | None = None) -> None:
    if status not in APPLICATION_STATUSES:
        raise ValidationError(
            f"Unknown status {status!r}; expected one of {', '.join(APPLICATION_STATUSES)}",
            field="status",
            identifier=application_id,
        )

"""Batch re-evaluation of applications against a scoring configuration."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable

import structlog

from ..actors import Actor, require_admin
from ..clock import utcnow
from ..core import EligibilityGate, WeightedScoringEngine, empty_legacy_scores, legacy_scores
from ..errors import EngineError
from ..schemas import (
    BatchResult,
    BatchSummary,
    Delta,
    EligibilityResult,
    EvaluationHistoryEntry,
    FailedItem,
    ScoringConfiguration,
)
from ..store import ConfigurationStore, Database, RecordStore, ResultStore

# Fields an existing result row receives on re-evaluation; mandatory flags
# and legacy scores keep their submission-time values.
REEVALUATED_FIELDS: tuple[str, ...] = (
    "is_eligible",
    "total_score",
    "scoring_config_id",
    "custom_scores",
    "evaluated_by",
    "evaluated_at",
)


def summarize(deltas: list[Delta]) -> BatchSummary:
    if not deltas:
        return BatchSummary()
    return BatchSummary(
        total_evaluated=len(deltas),
        eligibility_changes=sum(1 for delta in deltas if delta.eligibility_changed),
        newly_eligible_count=sum(
            1 for delta in deltas if delta.new_eligible and not delta.previous_eligible
        ),
        lost_eligibility_count=sum(
            1 for delta in deltas if delta.previous_eligible and not delta.new_eligible
        ),
        average_score_change=round(
            sum(delta.score_change for delta in deltas) / len(deltas), 2
        ),
    )


class ReEvaluationEngine:
    """Re-score applications and append an audit row for each one.

    Every application runs in its own transaction on a bounded worker pool.
    A failure rolls back that application only and is reported in
    ``BatchResult.failed``; committed applications stay committed.
    """

    def __init__(
        self,
        database: Database,
        gate: EligibilityGate,
        scoring: WeightedScoringEngine,
        *,
        max_workers: int = 4,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._database = database
        self._gate = gate
        self._scoring = scoring
        self._max_workers = max_workers
        self._now = now_provider or utcnow
        self._logger = structlog.get_logger(__name__)

    def run(
        self,
        actor: Actor | None,
        config_id: int,
        application_ids: Iterable[int] | None = None,
        *,
        reason: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BatchResult:
        require_admin(actor, operation="re_evaluate")
        with self._database.session_scope() as session:
            config = ConfigurationStore(session).get_configuration(config_id)
            records = RecordStore(session)
            if application_ids is None:
                requested = records.list_application_ids()
                known = set(requested)
            else:
                requested = list(dict.fromkeys(application_ids))
                known = set(records.list_application_ids()) & set(requested)

        failed = [
            FailedItem(
                application_id=application_id,
                kind="not_found",
                message=f"Application {application_id} not found",
            )
            for application_id in requested
            if application_id not in known
        ]
        targets = [application_id for application_id in requested if application_id in known]
        change_reason = reason or f"Re-evaluated with configuration '{config.name}' v{config.version}"

        self._logger.info(
            "reevaluation.started",
            config_id=config_id,
            applications=len(targets),
            actor=actor.user_id,
        )

        outcomes: list[Delta | FailedItem | None] = []
        if targets:
            workers = max(1, min(self._max_workers, len(targets)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reevaluate") as pool:
                futures = [
                    pool.submit(
                        self._guarded, application_id, config, actor, change_reason, cancel_event
                    )
                    for application_id in targets
                ]
                outcomes = [future.result() for future in futures]

        deltas: list[Delta] = []
        skipped: list[int] = []
        for application_id, outcome in zip(targets, outcomes):
            if outcome is None:
                skipped.append(application_id)
            elif isinstance(outcome, FailedItem):
                failed.append(outcome)
            else:
                deltas.append(outcome)

        result = BatchResult(
            config_id=config_id,
            deltas=deltas,
            summary=summarize(deltas),
            failed=failed,
            skipped=skipped,
            cancelled=bool(skipped),
        )
        self._logger.info(
            "reevaluation.completed",
            config_id=config_id,
            evaluated=result.summary.total_evaluated,
            eligibility_changes=result.summary.eligibility_changes,
            failed=len(failed),
            skipped=len(skipped),
            cancelled=result.cancelled,
        )
        return result

    def _guarded(
        self,
        application_id: int,
        config: ScoringConfiguration,
        actor: Actor,
        reason: str,
        cancel_event: threading.Event | None,
    ) -> Delta | FailedItem | None:
        if cancel_event is not None and cancel_event.is_set():
            return None
        try:
            return self._evaluate_one(application_id, config, actor, reason)
        except EngineError as exc:
            self._logger.warning(
                "reevaluation.application_failed",
                application_id=application_id,
                kind=exc.kind,
                error=exc.message,
            )
            return FailedItem(application_id=application_id, kind=exc.kind, message=exc.message)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception(
                "reevaluation.application_error", application_id=application_id
            )
            return FailedItem(
                application_id=application_id,
                kind=type(exc).__name__,
                message=str(exc),
            )

    def _evaluate_one(
        self,
        application_id: int,
        config: ScoringConfiguration,
        actor: Actor,
        reason: str,
    ) -> Delta:
        with self._database.session_scope() as session:
            application = RecordStore(session).get_application(application_id)
            results = ResultStore(session)
            previous = results.get_eligibility_result(application_id)
            previous_score = (previous.total_score or 0) if previous else 0
            previous_eligible = previous.is_eligible if previous else False

            gate = self._gate.evaluate(application.applicant, application.business)
            if gate.is_eligible:
                scored = self._scoring.score(
                    application, config, results.recorded_scores(application_id, config.id)
                )
            else:
                scored = self._scoring.zero(config)
            new_score = scored.total_score
            new_eligible = gate.is_eligible and new_score >= config.pass_threshold
            now = self._now()

            if previous is None:
                legacy = (
                    legacy_scores(application.applicant, application.business)
                    if gate.is_eligible
                    else empty_legacy_scores()
                )
                base = EligibilityResult(
                    application_id=application_id, **legacy.model_dump()
                ).with_gate(gate)
            else:
                base = previous
            results.upsert_eligibility_result(
                base.model_copy(
                    update={
                        "is_eligible": new_eligible,
                        "total_score": new_score,
                        "scoring_config_id": config.id,
                        "custom_scores": scored.breakdown(),
                        "evaluated_by": actor.user_id,
                        "evaluated_at": now,
                    }
                ),
                update_fields=REEVALUATED_FIELDS,
            )
            results.append_evaluation_history(
                EvaluationHistoryEntry(
                    application_id=application_id,
                    previous_config_id=previous.scoring_config_id if previous else None,
                    new_config_id=config.id,
                    previous_total_score=previous_score,
                    new_total_score=new_score,
                    previous_is_eligible=previous_eligible,
                    new_is_eligible=new_eligible,
                    change_reason=reason,
                    evaluated_by=actor.user_id,
                    evaluated_at=now,
                )
            )

        return Delta(
            application_id=application_id,
            previous_score=previous_score,
            new_score=new_score,
            previous_eligible=previous_eligible,
            new_eligible=new_eligible,
            score_change=new_score - previous_score,
            eligibility_changed=previous_eligible != new_eligible,
        )

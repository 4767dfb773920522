"""Evaluator assignments and human score recording."""

from __future__ import annotations

from typing import Any, Callable, Iterable

import structlog

from ..actors import EVALUATOR_ROLES, Actor, Role, require_admin, require_role
from ..clock import utcnow
from ..core import validate_manual_score
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..schemas import ApplicationScoreEntry, EvaluationType
from ..store import ConfigurationStore, Database, RecordStore, ResultStore


class EvaluatorService:
    def __init__(
        self,
        database: Database,
        *,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._database = database
        self._now = now_provider or utcnow
        self._logger = structlog.get_logger(__name__)

    def assign(
        self,
        actor: Actor | None,
        application_id: int,
        evaluator_id: str,
        *,
        config_id: int | None = None,
        criteria_ids: Iterable[int] | None = None,
    ) -> list[ApplicationScoreEntry]:
        """Open score rows for ``evaluator_id`` on the human-scored criteria.

        Defaults to every manual and hybrid criterion of the active
        configuration. Criteria that already carry a recorded score are left
        untouched.
        """
        require_admin(actor, operation="assign_evaluator")
        with self._database.session_scope() as session:
            RecordStore(session).get_application(application_id)
            configs = ConfigurationStore(session)
            if config_id is None:
                active = configs.get_active_configuration()
                if active is None:
                    raise NotFoundError("No active scoring configuration")
                config = active
            else:
                config = configs.get_configuration(config_id)

            if criteria_ids is None:
                targets = [
                    item
                    for item in config.ordered_criteria()
                    if item.evaluation_type is not EvaluationType.AUTO
                ]
            else:
                targets = []
                for criteria_id in criteria_ids:
                    criterion = config.criterion(criteria_id)
                    if criterion is None:
                        raise NotFoundError(
                            f"Criterion {criteria_id} is not part of configuration {config.id}",
                            identifier=criteria_id,
                        )
                    targets.append(criterion)

            results = ResultStore(session)
            assigned: list[ApplicationScoreEntry] = []
            for criterion in targets:
                existing = results.get_application_score(application_id, criterion.id, config.id)
                if existing is not None and existing.evaluated_at is not None:
                    self._logger.info(
                        "assignment.already_scored",
                        application_id=application_id,
                        criteria_id=criterion.id,
                        assigned_to=existing.assigned_to,
                        evaluated_by=existing.evaluated_by,
                    )
                    continue
                assigned.append(
                    results.upsert_application_score(
                        ApplicationScoreEntry(
                            application_id=application_id,
                            criteria_id=criterion.id,
                            config_id=config.id,
                            score=0,
                            max_score=criterion.max_points,
                            assigned_to=evaluator_id,
                        )
                    )
                )
        self._logger.info(
            "assignment.created",
            application_id=application_id,
            evaluator_id=evaluator_id,
            config_id=config.id,
            criteria=len(assigned),
            actor=actor.user_id,
        )
        return assigned

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
        """Record a human score; evaluators may only score rows assigned to them.

        Admins may score any row. The assignee is kept, so an admin correction
        does not take the row away from its evaluator.
        """
        require_role(actor, Role.ADMIN, *EVALUATOR_ROLES, operation="record_score")
        with self._database.session_scope() as session:
            RecordStore(session).get_application(application_id)
            criterion = ConfigurationStore(session).get_criterion(criteria_id)
            if criterion.evaluation_type is EvaluationType.AUTO:
                raise ValidationError(
                    f"Criterion {criterion.name!r} is scored automatically",
                    field="criteria_id",
                    identifier=criteria_id,
                )
            matched_level = validate_manual_score(criterion, score)
            if level is not None and level not in {item.level for item in criterion.scoring_levels}:
                raise ValidationError(
                    f"Unknown level {level!r} for {criterion.name!r}",
                    field="level",
                    identifier=criteria_id,
                )

            results = ResultStore(session)
            existing = results.get_application_score(application_id, criteria_id, criterion.config_id)
            if not actor.is_admin and (existing is None or existing.assigned_to != actor.user_id):
                raise AuthorizationError(
                    f"Criterion {criteria_id} of application {application_id} is not assigned "
                    f"to {actor.user_id}",
                    identifier=actor.user_id,
                )

            entry = results.upsert_application_score(
                ApplicationScoreEntry(
                    application_id=application_id,
                    criteria_id=criteria_id,
                    config_id=criterion.config_id,
                    score=score,
                    max_score=criterion.max_points,
                    level=level or matched_level,
                    notes=notes if notes is not None else (existing.notes if existing else None),
                    assigned_to=existing.assigned_to if existing else None,
                    evaluated_by=actor.user_id,
                    evaluated_at=self._now(),
                )
            )
        self._logger.info(
            "score.recorded",
            application_id=application_id,
            criteria_id=criteria_id,
            score=score,
            actor=actor.user_id,
        )
        return entry

    def list_scores(
        self,
        application_id: int,
        config_id: int | None = None,
    ) -> list[ApplicationScoreEntry]:
        with self._database.session_scope() as session:
            RecordStore(session).get_application(application_id)
            return ResultStore(session).list_application_scores([application_id], config_id)

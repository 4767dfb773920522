"""Scoring configuration lifecycle: create, activate, query and seed."""

from __future__ import annotations

import threading
from collections import Counter
from typing import Any, Callable, Mapping

import pydantic
import structlog

from ..actors import Actor, require_admin
from ..clock import utcnow
from ..config import DEFAULT_RUBRIC, ConfigManager
from ..core.scorers import ScorerRegistry
from ..errors import ConflictError, NotFoundError, ValidationError
from ..schemas import EvaluationType, ScoringConfiguration, ScoringConfigurationSpec
from ..store import ConfigurationStore, Database


def parse_configuration_spec(
    spec: ScoringConfigurationSpec | Mapping[str, Any],
) -> ScoringConfigurationSpec:
    if isinstance(spec, ScoringConfigurationSpec):
        return spec
    try:
        return ScoringConfigurationSpec.model_validate(dict(spec))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid scoring configuration: {exc}") from exc


class ConfigurationManager:
    """Author and activate versioned rubrics.

    Activation is serialised twice: a process-wide lock orders concurrent
    callers in this process and the store's row locks plus the single-active
    unique index guard against other processes.
    """

    def __init__(
        self,
        database: Database,
        registry: ScorerRegistry,
        *,
        rubric_total_policy: str = "warn",
        config_manager: ConfigManager | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._database = database
        self._registry = registry
        self._policy = rubric_total_policy
        self._config_manager = config_manager or ConfigManager()
        self._now = now_provider or utcnow
        self._activation_lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def validate(self, spec: ScoringConfigurationSpec) -> None:
        """Raise ``ValidationError`` for the first structural problem found."""
        if spec.total_max_score <= 0:
            raise ValidationError("total_max_score must be positive", field="total_max_score")
        if not 0 <= spec.pass_threshold <= spec.total_max_score:
            raise ValidationError(
                f"pass_threshold must be between 0 and {spec.total_max_score}",
                field="pass_threshold",
            )

        duplicates = [name for name, count in Counter(c.name for c in spec.criteria).items() if count > 1]
        if duplicates:
            raise ValidationError(
                f"Duplicate criterion names: {', '.join(sorted(duplicates))}",
                field="criteria",
            )

        for criterion in spec.criteria:
            if criterion.max_points <= 0:
                raise ValidationError(
                    f"Criterion {criterion.name!r} must have positive max_points",
                    field="max_points",
                )
            for level in criterion.scoring_levels:
                if level.points > criterion.max_points:
                    raise ValidationError(
                        f"Level {level.level!r} of {criterion.name!r} awards {level.points} "
                        f"points, above max_points {criterion.max_points}",
                        field="scoring_levels",
                    )
            if criterion.evaluation_type is not EvaluationType.MANUAL:
                if not criterion.auto_scorer:
                    raise ValidationError(
                        f"Criterion {criterion.name!r} is {criterion.evaluation_type.value} "
                        "and needs an auto_scorer",
                        field="auto_scorer",
                    )
                if criterion.auto_scorer not in self._registry:
                    raise ValidationError(
                        f"Criterion {criterion.name!r} names unknown auto scorer "
                        f"{criterion.auto_scorer!r}; known: {', '.join(self._registry.keys())}",
                        field="auto_scorer",
                    )

        criteria_total = sum(item.max_points for item in spec.criteria)
        if criteria_total != spec.total_max_score:
            if self._policy == "strict":
                raise ValidationError(
                    f"Criteria max points sum to {criteria_total}, "
                    f"expected total_max_score {spec.total_max_score}",
                    field="total_max_score",
                )
            self._logger.warning(
                "config.total_mismatch",
                name=spec.name,
                criteria_total=criteria_total,
                total_max_score=spec.total_max_score,
            )

    def create(
        self,
        actor: Actor | None,
        spec: ScoringConfigurationSpec | Mapping[str, Any],
    ) -> int:
        require_admin(actor, operation="create_configuration")
        parsed = parse_configuration_spec(spec)
        self.validate(parsed)
        with self._database.session_scope() as session:
            config_id = ConfigurationStore(session).save_configuration(
                parsed, created_by=actor.user_id, created_at=self._now()
            )
        self._logger.info(
            "config.created",
            config_id=config_id,
            name=parsed.name,
            version=parsed.version,
            criteria=len(parsed.criteria),
            actor=actor.user_id,
        )
        return config_id

    def activate(self, actor: Actor | None, config_id: int) -> ScoringConfiguration:
        require_admin(actor, operation="activate_configuration")
        with self._activation_lock:
            with self._database.session_scope() as session:
                config = ConfigurationStore(session).set_active(config_id)
        self._logger.info("config.activated", config_id=config_id, actor=actor.user_id)
        return config

    def get_active(self) -> ScoringConfiguration:
        with self._database.session_scope() as session:
            config = ConfigurationStore(session).get_active_configuration()
        if config is None:
            raise NotFoundError("No active scoring configuration")
        return config

    def get(self, config_id: int) -> ScoringConfiguration:
        with self._database.session_scope() as session:
            return ConfigurationStore(session).get_configuration(config_id)

    def list_configurations(self) -> list[ScoringConfiguration]:
        with self._database.session_scope() as session:
            return ConfigurationStore(session).list_configurations()

    def seed_default(self, actor: Actor | None) -> ScoringConfiguration:
        """Create and activate the bundled default rubric."""
        require_admin(actor, operation="seed_default_configuration")
        spec = parse_configuration_spec(self._config_manager.load(DEFAULT_RUBRIC))
        with self._database.session_scope() as session:
            exists = ConfigurationStore(session).name_exists(spec.name)
        if exists:
            raise ConflictError(
                f"Scoring configuration {spec.name!r} already exists",
                field="name",
                identifier=spec.name,
            )
        config_id = self.create(actor, spec)
        return self.activate(actor, config_id)

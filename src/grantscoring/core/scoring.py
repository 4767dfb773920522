"""Weighted multi-criteria scoring against a rubric."""

from __future__ import annotations

from typing import Mapping

import structlog

from ..errors import ValidationError
from ..schemas import (
    Application,
    ApplicationScoreEntry,
    CriterionScore,
    EvaluationType,
    ScoreResult,
    ScoringConfiguration,
    ScoringCriterionSpec,
)
from .scorers import ScorerRegistry, default_registry


def validate_manual_score(criterion: ScoringCriterionSpec, score: int) -> str | None:
    """Check ``0 <= score <= max_points`` and return the matching level label."""
    if score < 0 or score > criterion.max_points:
        raise ValidationError(
            f"Score {score} is out of bounds (0-{criterion.max_points}) for {criterion.name!r}",
            field="score",
        )
    return criterion.level_for(score)


class WeightedScoringEngine:
    """Resolve per-criterion scores and aggregate them for one application."""

    def __init__(self, registry: ScorerRegistry | None = None) -> None:
        self._registry = registry or default_registry()
        self._logger = structlog.get_logger(__name__)

    @property
    def registry(self) -> ScorerRegistry:
        return self._registry

    def score(
        self,
        application: Application,
        config: ScoringConfiguration,
        recorded: Mapping[int, ApplicationScoreEntry] | None = None,
    ) -> ScoreResult:
        recorded = recorded or {}
        per_criterion: list[CriterionScore] = []
        pending: list[int] = []

        for criterion in config.ordered_criteria():
            entry = recorded.get(criterion.id)
            evaluation_type = criterion.evaluation_type

            if evaluation_type is EvaluationType.AUTO or (
                evaluation_type is EvaluationType.HYBRID and entry is None
            ):
                value = self._auto_score(application, criterion)
                per_criterion.append(
                    self._criterion_score(criterion, value, criterion.level_for(value), "auto")
                )
                continue

            if entry is None:
                pending.append(criterion.id)
                per_criterion.append(self._criterion_score(criterion, 0, None, "pending"))
                continue

            level = validate_manual_score(criterion, entry.score)
            per_criterion.append(
                self._criterion_score(criterion, entry.score, entry.level or level, "recorded")
            )

        raw_total = sum(item.score for item in per_criterion)
        total = min(raw_total, config.total_max_score)
        if raw_total > config.total_max_score:
            self._logger.warning(
                "scoring.total_clamped",
                application_id=application.id,
                config_id=config.id,
                raw_total=raw_total,
                total_max_score=config.total_max_score,
            )

        return ScoreResult(
            config_id=config.id,
            per_criterion=per_criterion,
            total_score=total,
            max_score=config.total_max_score,
            is_passing=total >= config.pass_threshold,
            pending_criteria=pending,
        )

    def zero(self, config: ScoringConfiguration) -> ScoreResult:
        """Result used when the mandatory gate fails and scoring is skipped."""
        return ScoreResult(
            config_id=config.id,
            per_criterion=[
                self._criterion_score(criterion, 0, None, "gate_failed")
                for criterion in config.ordered_criteria()
            ],
            total_score=0,
            max_score=config.total_max_score,
            is_passing=False,
        )

    def _auto_score(self, application: Application, criterion) -> int:
        if not criterion.auto_scorer:
            raise ValidationError(
                f"Criterion {criterion.name!r} is {criterion.evaluation_type.value} but has no auto scorer",
                field="auto_scorer",
                identifier=criterion.id,
            )
        try:
            scorer = self._registry.get(criterion.auto_scorer)
        except KeyError as exc:
            raise ValidationError(
                str(exc), field="auto_scorer", identifier=criterion.id
            ) from exc
        value = int(scorer.score(application, criterion.max_points))
        return min(max(value, 0), criterion.max_points)

    @staticmethod
    def _criterion_score(criterion, value: int, level: str | None, source: str) -> CriterionScore:
        return CriterionScore(
            criteria_id=criterion.id,
            name=criterion.name,
            category=criterion.category,
            evaluation_type=criterion.evaluation_type.value,
            score=value,
            max_score=criterion.max_points,
            level=level,
            source=source,
        )

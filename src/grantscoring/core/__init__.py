"""Core eligibility and scoring components."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..schemas import Application

# NOTE: keep imports explicit for export clarity.
from .analytics import build_report
from .gate import EligibilityGate, GateConfig, exact_age
from .legacy import empty_legacy_scores, legacy_scores
from .scorers import ScorerRegistry, default_registry
from .scoring import WeightedScoringEngine, validate_manual_score


@runtime_checkable
class CriterionScorer(Protocol):
    """Scorer contract for auto and hybrid rubric criteria."""

    key: str

    def score(self, application: Application, max_points: int) -> int:
        """Return points in ``[0, max_points]`` derived from the application."""


__all__ = [
    "CriterionScorer",
    "EligibilityGate",
    "GateConfig",
    "ScorerRegistry",
    "WeightedScoringEngine",
    "build_report",
    "default_registry",
    "empty_legacy_scores",
    "exact_age",
    "legacy_scores",
    "validate_manual_score",
]

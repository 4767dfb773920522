"""Deterministic scoring functions for auto and hybrid criteria."""

from __future__ import annotations

from typing import Iterable

from .market import (
    FinancialViabilityScorer,
    FundingTractionScorer,
    LocationFocusScorer,
    MarketPotentialScorer,
)
from .narrative import (
    NarrativeKeywordConfig,
    NarrativeKeywordScorer,
    climate_relevance_config,
    climate_relevance_scorer,
    innovation_config,
    innovation_scorer,
)
from .workforce import GenderInclusionScorer, JobCreationScorer


class ScorerRegistry:
    """Registry mapping ``auto_scorer`` keys to scorer instances."""

    def __init__(self, scorers: Iterable):
        self._scorers = {scorer.key: scorer for scorer in scorers}

    def get(self, key: str):
        try:
            return self._scorers[key]
        except KeyError as exc:
            raise KeyError(f"Unknown auto scorer: {key!r}") from exc

    def __contains__(self, key: object) -> bool:
        return key in self._scorers

    def keys(self) -> list[str]:
        return sorted(self._scorers)


def default_registry() -> ScorerRegistry:
    """Return the registry of built-in scorers."""
    return ScorerRegistry(
        [
            MarketPotentialScorer(),
            JobCreationScorer(),
            GenderInclusionScorer(),
            FinancialViabilityScorer(),
            FundingTractionScorer(),
            LocationFocusScorer(),
            climate_relevance_scorer(),
            innovation_scorer(),
        ]
    )


__all__ = [
    "ScorerRegistry",
    "default_registry",
    "MarketPotentialScorer",
    "JobCreationScorer",
    "GenderInclusionScorer",
    "FinancialViabilityScorer",
    "FundingTractionScorer",
    "LocationFocusScorer",
    "NarrativeKeywordConfig",
    "NarrativeKeywordScorer",
    "climate_relevance_config",
    "climate_relevance_scorer",
    "innovation_config",
    "innovation_scorer",
]

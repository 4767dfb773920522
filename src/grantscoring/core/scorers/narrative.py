"""Keyword coverage scorers over narrative fields."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Sequence

from rapidfuzz import fuzz

from ...schemas import Application
from .base import scale

CLIMATE_KEYWORDS: tuple[str, ...] = (
    "drought",
    "flood",
    "climate resilience",
    "adaptation",
    "irrigation",
    "food security",
    "water harvesting",
    "early warning",
    "heat",
    "soil",
)

INNOVATION_KEYWORDS: tuple[str, ...] = (
    "innovative",
    "novel",
    "technology",
    "digital",
    "mobile",
    "solar",
    "sensor",
    "platform",
    "patent",
    "prototype",
)


@dataclass
class NarrativeKeywordConfig:
    keywords: tuple[str, ...] = CLIMATE_KEYWORDS
    fields: tuple[str, ...] = (
        "climate_adaptation_contribution",
        "climate_extreme_impact",
    )
    target_hits: int = 5
    min_similarity: float = 85.0


class NarrativeKeywordScorer:
    """Score narrative text by distinct keyword hits, saturating at ``target_hits``.

    A keyword hits when it occurs verbatim or when its fuzzy partial match
    reaches ``min_similarity``.
    """

    def __init__(self, key: str, *, config: NarrativeKeywordConfig | None = None) -> None:
        self.key = key
        self._config = config or NarrativeKeywordConfig()

    def score(self, application: Application, max_points: int) -> int:
        corpus = self._build_corpus(application)
        if not corpus:
            return 0
        hits = self.matched_keywords(corpus)
        target = max(1, min(self._config.target_hits, len(self._config.keywords)))
        return scale(len(hits) / target, max_points)

    def matched_keywords(self, corpus: Sequence[str]) -> list[str]:
        matches: list[str] = []
        for keyword in self._config.keywords:
            needle = keyword.lower()
            for text in corpus:
                if needle in text or fuzz.partial_ratio(needle, text) >= self._config.min_similarity:
                    matches.append(keyword)
                    break
        return matches

    def _build_corpus(self, application: Application) -> list[str]:
        texts = (getattr(application.business, name, "") or "" for name in self._config.fields)
        return [text.lower() for text in texts if text.strip()]


def _with_overrides(config: NarrativeKeywordConfig, overrides: dict[str, Any]) -> NarrativeKeywordConfig:
    for name in ("keywords", "fields"):
        if name in overrides:
            overrides[name] = tuple(overrides[name])
    return replace(config, **overrides)


def climate_relevance_config(**overrides: Any) -> NarrativeKeywordConfig:
    return _with_overrides(NarrativeKeywordConfig(), overrides)


def innovation_config(**overrides: Any) -> NarrativeKeywordConfig:
    base = NarrativeKeywordConfig(
        keywords=INNOVATION_KEYWORDS,
        fields=("description", "product_service_description", "problem_solved"),
        target_hits=4,
    )
    return _with_overrides(base, overrides)


def climate_relevance_scorer(config: NarrativeKeywordConfig | None = None) -> NarrativeKeywordScorer:
    return NarrativeKeywordScorer("climate_relevance", config=config or climate_relevance_config())


def innovation_scorer(config: NarrativeKeywordConfig | None = None) -> NarrativeKeywordScorer:
    return NarrativeKeywordScorer("innovation", config=config or innovation_config())

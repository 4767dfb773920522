"""Pydantic schema definitions for the engine's in-process boundary."""

from __future__ import annotations

from .analytics import AnalyticsFilter, AnalyticsReport, DistributionEntry, LeaderboardEntry
from .application import (
    APPLICATION_STATUSES,
    Applicant,
    Application,
    ApplicationStatus,
    Business,
    FundingRecord,
)
from .results import (
    ApplicationScoreEntry,
    BatchResult,
    BatchSummary,
    CriterionScore,
    Delta,
    EligibilityResult,
    EvaluationHistoryEntry,
    FailedItem,
    GateResult,
    LegacyScores,
    ScoreResult,
    StatusChangeBatch,
)
from .rubric import (
    EvaluationType,
    ScoringConfiguration,
    ScoringConfigurationSpec,
    ScoringCriterion,
    ScoringCriterionSpec,
    ScoringLevel,
)

__all__ = [
    "APPLICATION_STATUSES",
    "AnalyticsFilter",
    "AnalyticsReport",
    "Applicant",
    "Application",
    "ApplicationScoreEntry",
    "ApplicationStatus",
    "BatchResult",
    "BatchSummary",
    "Business",
    "CriterionScore",
    "Delta",
    "DistributionEntry",
    "EligibilityResult",
    "EvaluationHistoryEntry",
    "EvaluationType",
    "FailedItem",
    "FundingRecord",
    "GateResult",
    "LeaderboardEntry",
    "LegacyScores",
    "ScoreResult",
    "ScoringConfiguration",
    "ScoringConfigurationSpec",
    "ScoringCriterion",
    "ScoringCriterionSpec",
    "ScoringLevel",
    "StatusChangeBatch",
]

"""Fixed-category scores from the original unweighted scheme."""

from __future__ import annotations

from ..schemas import Applicant, Business, LegacyScores

FOCUS_COUNTRIES: frozenset[str] = frozenset({"ghana", "kenya", "nigeria", "rwanda", "tanzania"})


def legacy_scores(applicant: Applicant, business: Business) -> LegacyScores:
    """Compute the deterministic legacy categories.

    Innovation, climate adaptation, viability and management capacity were
    never computed from data in the old scheme; they stay ``None`` until an
    evaluator scores them through the rubric.
    """
    return LegacyScores(
        market_potential_score=min(10, business.customer_count_last_six_months // 100),
        job_creation_score=min(10, business.total_employees),
        location_bonus=5 if business.country.strip().lower() in FOCUS_COUNTRIES else 0,
        gender_bonus=5 if applicant.gender == "female" else 0,
    )


def empty_legacy_scores() -> LegacyScores:
    return LegacyScores(
        market_potential_score=0,
        job_creation_score=0,
        location_bonus=0,
        gender_bonus=0,
    )

from __future__ import annotations

import pytest

from grantscoring.core import CriterionScorer, default_registry
from grantscoring.core.scorers import (
    FinancialViabilityScorer,
    FundingTractionScorer,
    GenderInclusionScorer,
    LocationFocusScorer,
    MarketPotentialScorer,
    ScorerRegistry,
    climate_relevance_scorer,
    innovation_config,
    innovation_scorer,
)
from grantscoring.core.scorers.base import scale
from grantscoring.core.scorers.workforce import JobCreationConfig, JobCreationScorer
from grantscoring.schemas import FundingRecord

from conftest import build_applicant, build_application, build_business


def test_scale_rounds_half_up_and_clamps():
    assert scale(0.25, 10) == 3
    assert scale(0.24, 10) == 2
    assert scale(1.7, 10) == 10
    assert scale(-0.5, 10) == 0


def test_default_registry_exposes_all_scorers():
    registry = default_registry()

    assert registry.keys() == [
        "climate_relevance",
        "financial_viability",
        "funding_traction",
        "gender_inclusion",
        "innovation",
        "job_creation",
        "location_focus",
        "market_potential",
    ]
    for key in registry.keys():
        assert isinstance(registry.get(key), CriterionScorer)


def test_registry_rejects_unknown_key():
    registry = ScorerRegistry([MarketPotentialScorer()])

    assert "market_potential" in registry
    with pytest.raises(KeyError, match="Unknown auto scorer"):
        registry.get("coin_flip")


def test_market_potential_steps_of_hundred_customers():
    scorer = MarketPotentialScorer()

    assert scorer.score(build_application(business=build_business(customer_count_last_six_months=350)), 10) == 3
    assert scorer.score(build_application(business=build_business(customer_count_last_six_months=5000)), 10) == 10
    assert scorer.score(build_application(business=build_business(customer_count_last_six_months=99)), 10) == 0


def test_job_creation_saturates():
    scorer = JobCreationScorer()

    assert scorer.score(build_application(), 20) == 14
    many = build_business(full_time_employees_male=30)
    assert scorer.score(build_application(business=many), 20) == 20


def test_job_creation_config_override():
    scorer = JobCreationScorer(config=JobCreationConfig(saturation_employees=7))

    assert scorer.score(build_application(), 10) == 10


def test_gender_inclusion_full_for_women_led_otherwise_share():
    scorer = GenderInclusionScorer()
    male_led = build_applicant(gender="male")

    assert scorer.score(build_application(), 5) == 5
    # 4 of 7 employees are women.
    assert scorer.score(build_application(applicant=male_led), 5) == 3
    empty = build_business(
        full_time_employees_male=0,
        full_time_employees_female=0,
        part_time_employees_male=0,
        part_time_employees_female=0,
    )
    assert scorer.score(build_application(applicant=male_led, business=empty), 5) == 0


def test_financial_viability_log_scale():
    scorer = FinancialViabilityScorer()

    def score_for(revenue: str) -> int:
        return scorer.score(build_application(business=build_business(revenue_last_two_years=revenue)), 10)

    assert score_for("0") == 0
    assert score_for("1000") == 0
    assert score_for("31622.78") == 5
    assert score_for("1000000") == 10
    assert score_for("50000000") == 10


def test_funding_traction_and_location_focus():
    funded = build_business(funding=FundingRecord(has_external_funding=True, funding_source="grant"))

    assert FundingTractionScorer().score(build_application(business=funded), 5) == 5
    assert FundingTractionScorer().score(build_application(), 5) == 0
    assert LocationFocusScorer().score(build_application(), 5) == 5
    abroad = build_business(country="Germany")
    assert LocationFocusScorer().score(build_application(business=abroad), 5) == 0


def test_climate_relevance_counts_keyword_hits():
    scorer = climate_relevance_scorer()
    application = build_application()
    corpus = [
        application.business.climate_adaptation_contribution.lower(),
        application.business.climate_extreme_impact.lower(),
    ]

    matched = scorer.matched_keywords(corpus)

    assert {"drought", "flood", "food security", "water harvesting", "early warning"} <= set(matched)
    assert scorer.score(application, 10) == 10


def test_narrative_scorer_zero_without_text():
    empty = build_business(climate_adaptation_contribution="", climate_extreme_impact="")

    assert climate_relevance_scorer().score(build_application(business=empty), 10) == 0


def test_innovation_scorer_config_override():
    scorer = innovation_scorer(innovation_config(keywords=["solar", "mobile"], target_hits=2))

    assert scorer.score(build_application(), 6) == 6


def test_scorers_are_deterministic():
    registry = default_registry()
    application = build_application()

    first = [registry.get(key).score(application, 10) for key in registry.keys()]
    second = [registry.get(key).score(application, 10) for key in registry.keys()]

    assert first == second

from __future__ import annotations

from typing import Any

import pytest

from grantscoring.core import WeightedScoringEngine, validate_manual_score
from grantscoring.errors import ValidationError
from grantscoring.schemas import ApplicationScoreEntry, ScoringConfiguration

from conftest import build_application, build_business


def build_config(criteria: list[dict[str, Any]], **kwargs: Any) -> ScoringConfiguration:
    payload: dict[str, Any] = {
        "id": 7,
        "name": "Rubric",
        "total_max_score": 100,
        "pass_threshold": 60,
        "criteria": [
            {"id": index + 1, "config_id": 7, "category": "General", **item}
            for index, item in enumerate(criteria)
        ],
    }
    payload.update(kwargs)
    return ScoringConfiguration.model_validate(payload)


def recorded(criteria_id: int, score: int, level: str | None = None) -> ApplicationScoreEntry:
    return ApplicationScoreEntry(
        application_id=1,
        criteria_id=criteria_id,
        config_id=7,
        score=score,
        max_score=100,
        level=level,
        evaluated_by="reviewer-1",
    )


LEVELS = [
    {"level": "Weak", "points": 0},
    {"level": "Fair", "points": 20},
    {"level": "Strong", "points": 40},
]


def test_manual_scores_sum_and_pass():
    config = build_config(
        [
            {"name": "Team", "max_points": 40, "scoring_levels": LEVELS},
            {"name": "Plan", "max_points": 60},
        ]
    )
    engine = WeightedScoringEngine()

    result = engine.score(build_application(), config, {1: recorded(1, 40), 2: recorded(2, 25)})

    assert result.total_score == 65
    assert result.is_passing is True
    assert result.pending_criteria == []
    assert result.per_criterion[0].level == "Strong"
    assert result.breakdown() == {"1": 40, "2": 25}


def test_missing_manual_score_is_pending_zero():
    config = build_config(
        [{"name": "Team", "max_points": 50}, {"name": "Plan", "max_points": 50}]
    )

    result = WeightedScoringEngine().score(build_application(), config, {1: recorded(1, 45)})

    assert result.total_score == 45
    assert result.is_passing is False
    assert result.pending_criteria == [2]
    assert result.per_criterion[1].source == "pending"


def test_total_is_clamped_to_configuration_maximum():
    config = build_config(
        [{"name": "Team", "max_points": 80}, {"name": "Plan", "max_points": 80}],
        total_max_score=100,
        pass_threshold=90,
    )

    result = WeightedScoringEngine().score(
        build_application(), config, {1: recorded(1, 80), 2: recorded(2, 80)}
    )

    assert result.total_score == 100
    assert result.is_passing is True


def test_auto_and_hybrid_criteria():
    config = build_config(
        [
            {"name": "Jobs", "max_points": 20, "evaluation_type": "auto", "auto_scorer": "job_creation"},
            {
                "name": "Gender",
                "max_points": 10,
                "evaluation_type": "hybrid",
                "auto_scorer": "gender_inclusion",
            },
        ],
        total_max_score=30,
        pass_threshold=20,
    )
    engine = WeightedScoringEngine()
    application = build_application()

    automatic = engine.score(application, config)
    overridden = engine.score(application, config, {2: recorded(2, 4)})

    assert [item.score for item in automatic.per_criterion] == [14, 10]
    assert [item.source for item in automatic.per_criterion] == ["auto", "auto"]
    assert automatic.total_score == 24
    assert [item.source for item in overridden.per_criterion] == ["auto", "recorded"]
    assert overridden.total_score == 18
    assert overridden.is_passing is False


def test_criteria_follow_sort_order_then_id():
    config = build_config(
        [
            {"name": "Second", "max_points": 10, "sort_order": 2},
            {"name": "First", "max_points": 10, "sort_order": 1},
            {"name": "Also first", "max_points": 10, "sort_order": 1},
        ],
        total_max_score=30,
    )

    result = WeightedScoringEngine().score(build_application(), config)

    assert [item.name for item in result.per_criterion] == ["First", "Also first", "Second"]


def test_recorded_score_out_of_bounds_raises():
    config = build_config([{"name": "Team", "max_points": 10}], total_max_score=10, pass_threshold=5)

    with pytest.raises(ValidationError) as excinfo:
        WeightedScoringEngine().score(build_application(), config, {1: recorded(1, 11)})

    assert excinfo.value.field == "score"


def test_unknown_auto_scorer_raises_validation_error():
    config = build_config(
        [{"name": "Luck", "max_points": 10, "evaluation_type": "auto", "auto_scorer": "dice"}],
        total_max_score=10,
        pass_threshold=5,
    )

    with pytest.raises(ValidationError, match="Unknown auto scorer"):
        WeightedScoringEngine().score(build_application(), config)


def test_zero_marks_every_criterion_gate_failed():
    config = build_config([{"name": "Team", "max_points": 50}, {"name": "Plan", "max_points": 50}])

    result = WeightedScoringEngine().zero(config)

    assert result.total_score == 0
    assert result.is_passing is False
    assert {item.source for item in result.per_criterion} == {"gate_failed"}


def test_scoring_is_deterministic():
    config = build_config(
        [
            {"name": "Climate", "max_points": 50, "evaluation_type": "auto", "auto_scorer": "climate_relevance"},
            {"name": "Money", "max_points": 50, "evaluation_type": "auto", "auto_scorer": "financial_viability"},
        ]
    )
    application = build_application(business=build_business(revenue_last_two_years="120000"))
    engine = WeightedScoringEngine()

    assert engine.score(application, config) == engine.score(application, config)


def test_validate_manual_score_returns_level():
    config = build_config([{"name": "Team", "max_points": 40, "scoring_levels": LEVELS}])
    criterion = config.criteria[0]

    assert validate_manual_score(criterion, 20) == "Fair"
    assert validate_manual_score(criterion, 13) is None
    with pytest.raises(ValidationError):
        validate_manual_score(criterion, -1)

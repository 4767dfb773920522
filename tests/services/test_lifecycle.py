from __future__ import annotations

import threading
from pathlib import Path

import pytest

from grantscoring.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from grantscoring.schemas import EvaluationType

from conftest import ADMIN, REVIEWER, make_container, manual_criterion, rubric


def test_create_persists_ordered_criteria(engine):
    config_id = engine.create_configuration(ADMIN, rubric())

    config = engine.get_configuration(config_id)

    assert config.name == "Test rubric"
    assert config.is_active is False
    assert config.created_by == "admin-1"
    assert [item.name for item in config.ordered_criteria()] == ["Team", "Plan", "Jobs"]
    jobs = config.ordered_criteria()[2]
    assert jobs.evaluation_type is EvaluationType.AUTO
    assert jobs.auto_scorer == "job_creation"
    assert config.criteria[0].scoring_levels[1].level == "Strong"


def test_create_requires_admin(engine):
    with pytest.raises(AuthorizationError):
        engine.create_configuration(REVIEWER, rubric())
    with pytest.raises(AuthorizationError):
        engine.create_configuration(None, rubric())


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"total_max_score": 0}, "total_max_score"),
        ({"pass_threshold": 101}, "pass_threshold"),
        ({"criteria": [manual_criterion("Team", 0, 1)]}, "max_points"),
        (
            {"criteria": [manual_criterion("Team", 50, 1), manual_criterion("Team", 50, 2)]},
            "criteria",
        ),
        (
            {
                "criteria": [
                    manual_criterion(
                        "Team", 100, 1, scoring_levels=[{"level": "Too high", "points": 120}]
                    )
                ]
            },
            "scoring_levels",
        ),
        (
            {
                "criteria": [
                    {
                        "category": "Impact",
                        "name": "Jobs",
                        "max_points": 100,
                        "evaluation_type": "auto",
                    }
                ]
            },
            "auto_scorer",
        ),
        (
            {
                "criteria": [
                    {
                        "category": "Impact",
                        "name": "Luck",
                        "max_points": 100,
                        "evaluation_type": "hybrid",
                        "auto_scorer": "coin_flip",
                    }
                ]
            },
            "auto_scorer",
        ),
    ],
)
def test_create_rejects_malformed_configuration(engine, overrides, field):
    with pytest.raises(ValidationError) as excinfo:
        engine.create_configuration(ADMIN, rubric(**overrides))

    assert excinfo.value.field == field
    assert engine.list_configurations() == []


def test_create_rejects_unknown_payload_keys(engine):
    with pytest.raises(ValidationError):
        engine.create_configuration(ADMIN, rubric(colour="blue"))


def test_total_mismatch_warns_by_default(engine):
    config_id = engine.create_configuration(
        ADMIN, rubric(criteria=[manual_criterion("Team", 40, 1)])
    )

    assert engine.get_configuration(config_id).criteria_max_total == 40


def test_total_mismatch_strict_policy(tmp_path: Path):
    container = make_container(tmp_path, {"scoring": {"rubric_total_policy": "strict"}})
    engine = container.engine()

    with pytest.raises(ValidationError) as excinfo:
        engine.create_configuration(ADMIN, rubric(criteria=[manual_criterion("Team", 40, 1)]))

    assert excinfo.value.field == "total_max_score"


def test_activate_keeps_single_active_configuration(engine):
    first = engine.create_configuration(ADMIN, rubric(name="First"))
    second = engine.create_configuration(ADMIN, rubric(name="Second"))

    engine.activate_configuration(ADMIN, first)
    active = engine.activate_configuration(ADMIN, second)

    assert active.id == second
    assert engine.get_active_configuration().id == second
    flags = {config.id: config.is_active for config in engine.list_configurations()}
    assert flags == {first: False, second: True}


def test_activate_unknown_configuration(engine):
    engine.activate_configuration(ADMIN, engine.create_configuration(ADMIN, rubric()))

    with pytest.raises(NotFoundError):
        engine.activate_configuration(ADMIN, 999)

    assert engine.get_active_configuration().name == "Test rubric"


def test_activate_requires_admin(engine):
    config_id = engine.create_configuration(ADMIN, rubric())

    with pytest.raises(AuthorizationError):
        engine.activate_configuration(REVIEWER, config_id)


def test_no_active_configuration(engine):
    with pytest.raises(NotFoundError):
        engine.get_active_configuration()


def test_concurrent_activations_leave_exactly_one_active(engine):
    ids = [engine.create_configuration(ADMIN, rubric(name=f"Rubric {index}")) for index in range(6)]
    errors: list[Exception] = []

    def activate(config_id: int) -> None:
        try:
            engine.activate_configuration(ADMIN, config_id)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=activate, args=(config_id,)) for config_id in ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    active = [config for config in engine.list_configurations() if config.is_active]
    assert len(active) == 1
    assert active[0].id in ids


def test_seed_default_creates_and_activates_bundled_rubric(engine):
    config = engine.seed_default_configuration(ADMIN)

    assert config.is_active is True
    assert config.is_default is True
    assert config.total_max_score == 100
    assert config.pass_threshold == 60
    assert config.criteria_max_total == 100
    assert len(config.criteria) == 18
    hybrid = [item for item in config.criteria if item.evaluation_type is EvaluationType.HYBRID]
    assert [item.auto_scorer for item in hybrid] == ["gender_inclusion"]


def test_seed_default_twice_conflicts(engine):
    engine.seed_default_configuration(ADMIN)

    with pytest.raises(ConflictError):
        engine.seed_default_configuration(ADMIN)

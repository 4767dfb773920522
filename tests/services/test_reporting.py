from __future__ import annotations

import pytest

from grantscoring.actors import Actor, Role
from grantscoring.errors import AuthorizationError
from grantscoring.schemas import AnalyticsFilter

from conftest import ADMIN, NOW, REVIEWER, build_applicant, build_business, manual_rubric

JUDGE = Actor(user_id="judge-1", role=Role.DRAGONS_DEN_JUDGE)


@pytest.fixture
def populated(engine):
    config_id = engine.create_configuration(ADMIN, manual_rubric())
    engine.activate_configuration(ADMIN, config_id)
    first = engine.submit_application(build_applicant(user_id="user-001"), build_business())
    second = engine.submit_application(
        build_applicant(user_id="user-002", gender="male", first_name="Kwame"),
        build_business(name="Volta Cold Chain", country="Ghana", city="Accra"),
    )
    team, plan = engine.get_configuration(config_id).ordered_criteria()
    engine.assign_evaluator(ADMIN, first.id, "reviewer-1")
    engine.record_score(REVIEWER, first.id, team.id, 35)
    engine.record_score(REVIEWER, first.id, plan.id, 30)
    engine.re_evaluate(ADMIN, config_id)
    return first.id, second.id


def test_analytics_reflects_persisted_state(engine, populated):
    report = engine.get_analytics(ADMIN)

    assert report.errors == []
    assert report.overview.total_applications == 2
    assert report.overview.eligible_applications == 1
    assert report.overview.female_count == 1
    assert report.overview.male_count == 1
    team, plan = report.evaluation.criteria
    assert (team.score_count, team.average_score) == (1, 35.0)
    assert (plan.score_count, plan.average_score) == (1, 30.0)
    (reviewer,) = report.evaluators
    assert reviewer.evaluator_id == "reviewer-1"
    assert reviewer.total_assignments == 1
    assert reviewer.completed_evaluations == 1
    assert reviewer.last_activity == NOW
    assert reviewer.is_active is True
    assert report.timeline[-1].month == "2026-10"
    assert report.timeline[-1].submissions == 2


def test_analytics_filter_by_country(engine, populated):
    report = engine.get_analytics(ADMIN, AnalyticsFilter(country="Ghana"))

    assert report.overview.total_applications == 1
    assert report.overview.male_count == 1


def test_analytics_requires_admin(engine, populated):
    with pytest.raises(AuthorizationError):
        engine.get_analytics(REVIEWER)
    with pytest.raises(AuthorizationError):
        engine.export_evaluation_data(REVIEWER)


def test_export_rows_flatten_application_and_scores(engine, populated):
    first_id, second_id = populated

    rows = engine.export_evaluation_data(ADMIN)

    assert [row["application_id"] for row in rows] == [first_id, second_id]
    first = rows[0]
    assert first["business_name"] == "Sun Drip Ltd"
    assert first["age"] == 26
    assert first["total_score"] == 65
    assert first["is_eligible"] is True
    assert first["score: Team"] == 35
    assert first["score: Plan"] == 30
    assert rows[1]["is_eligible"] is False
    assert rows[1]["total_score"] == 0


def test_export_respects_filter(engine, populated):
    rows = engine.export_evaluation_data(ADMIN, AnalyticsFilter(is_eligible=True))

    assert [row["first_name"] for row in rows] == ["Amina"]


def test_leaderboard_ranks_dragons_den_applications(engine, populated):
    first_id, second_id = populated
    engine.bulk_update_status(ADMIN, [second_id, first_id], "dragons_den")

    board = engine.leaderboard(JUDGE)

    assert [(entry.rank, entry.application_id) for entry in board] == [(1, first_id), (2, second_id)]
    leader = board[0]
    assert leader.business_name == "Sun Drip Ltd"
    assert leader.applicant_name == "Amina Otieno"
    assert (leader.total_score, leader.max_score, leader.percentage) == (65, 100, 65)
    assert leader.evaluator_count == 1
    assert leader.is_eligible is True
    runner_up = board[1]
    assert runner_up.country == "Ghana"
    assert (runner_up.total_score, runner_up.percentage, runner_up.evaluator_count) == (0, 0, 0)


def test_leaderboard_status_scope(engine, populated):
    first_id, _ = populated

    assert engine.leaderboard(ADMIN) == []
    everyone = engine.leaderboard(ADMIN, statuses=None)

    assert [entry.application_id for entry in everyone][0] == first_id
    assert {entry.status for entry in everyone} == {"submitted"}


def test_leaderboard_requires_jury_or_admin(engine, populated):
    with pytest.raises(AuthorizationError):
        engine.leaderboard(REVIEWER)

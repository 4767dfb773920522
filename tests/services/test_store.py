from __future__ import annotations

import pytest
from sqlalchemy import select, text, update

from grantscoring.errors import ConflictError, PersistenceError
from grantscoring.schemas import EvaluationHistoryEntry
from grantscoring.store import Database, ResultStore
from grantscoring.store.database import snapshot_execution_options
from grantscoring.store.models import EvaluationHistoryRow, ScoringConfigurationRow

from conftest import ADMIN, NOW, build_applicant, build_business, rubric


def seed_history(engine) -> int:
    application = engine.submit_application(build_applicant(), build_business())
    with engine.database.session_scope() as session:
        ResultStore(session).append_evaluation_history(
            EvaluationHistoryEntry(
                application_id=application.id,
                new_total_score=10,
                change_reason="seed",
                evaluated_by="admin-1",
                evaluated_at=NOW,
            )
        )
    return application.id


def test_history_rows_cannot_be_updated_through_the_orm(engine):
    seed_history(engine)

    with pytest.raises(PersistenceError, match="append-only"):
        with engine.database.session_scope() as session:
            row = session.scalars(select(EvaluationHistoryRow)).first()
            row.change_reason = "rewritten"

    assert engine.evaluation_history(1)[0].change_reason == "seed"


def test_history_rows_cannot_be_deleted_through_the_orm(engine):
    seed_history(engine)

    with pytest.raises(PersistenceError, match="append-only"):
        with engine.database.session_scope() as session:
            session.delete(session.scalars(select(EvaluationHistoryRow)).first())

    assert len(engine.evaluation_history(1)) == 1


def test_history_bulk_update_is_refused_by_sqlite(engine):
    seed_history(engine)

    with pytest.raises((ConflictError, PersistenceError)):
        with engine.database.session_scope() as session:
            session.execute(
                update(EvaluationHistoryRow).values(change_reason="rewritten")
            )

    assert engine.evaluation_history(1)[0].change_reason == "seed"


def test_unique_index_rejects_second_active_configuration(engine):
    first = engine.create_configuration(ADMIN, rubric(name="First"))
    second = engine.create_configuration(ADMIN, rubric(name="Second"))
    engine.activate_configuration(ADMIN, first)

    with pytest.raises(ConflictError):
        with engine.database.session_scope() as session:
            session.execute(
                update(ScoringConfigurationRow)
                .where(ScoringConfigurationRow.id == second)
                .values(is_active=True)
            )

    assert engine.get_active_configuration().id == first


def test_in_memory_database_round_trip():
    database = Database("sqlite://")
    database.create_all()

    with database.session_scope() as session:
        assert session.execute(text("SELECT 1")).scalar_one() == 1

    database.dispose()


@pytest.mark.parametrize(
    ("dialect", "expected"),
    [
        ("sqlite", {}),
        ("postgresql", {"isolation_level": "REPEATABLE READ"}),
        ("mysql", {"isolation_level": "REPEATABLE READ"}),
    ],
)
def test_snapshot_isolation_per_dialect(dialect, expected):
    assert snapshot_execution_options(dialect) == expected


def test_snapshot_scope_reads_on_sqlite():
    database = Database("sqlite://")
    database.create_all()

    with database.session_scope(snapshot=True) as session:
        assert session.execute(text("SELECT 1")).scalar_one() == 1

    database.dispose()

from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from grantscoring.cli import app
from grantscoring.container import create_container

from conftest import build_applicant, build_business


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def invoke(runner: CliRunner, database_url: str, *args: str):
    return runner.invoke(app, ["--database-url", database_url, "--log-level", "ERROR", *args])


def submit_applications(database_url: str) -> None:
    container = create_container(settings={"database": {"url": database_url}})
    engine = container.engine()
    engine.submit_application(build_applicant(user_id="user-001"), build_business())
    engine.submit_application(
        build_applicant(user_id="user-002", gender="male"),
        build_business(name="Volta Cold Chain", country="Ghana", is_registered=False),
    )
    container.database().dispose()


def test_cli_seeds_and_reevaluates(tmp_path: Path, runner: CliRunner, database_url: str) -> None:
    init = invoke(runner, database_url, "init-db")
    seeded = invoke(runner, database_url, "seed-default")
    submit_applications(database_url)
    output_path = tmp_path / "batch.json"

    result = invoke(
        runner,
        database_url,
        "reevaluate",
        "1",
        "--reason",
        "Quarterly review",
        "--output",
        str(output_path),
    )

    assert init.exit_code == 0, init.output
    assert "Database initialised." in init.output
    assert seeded.exit_code == 0, seeded.output
    assert "Seeded configuration 1 (Climate Adaptation Challenge - v2.0)" in seeded.output
    assert result.exit_code == 0, result.output
    assert output_path.exists()

    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["config_id"] == 1
    assert [delta["application_id"] for delta in payload["deltas"]] == [1, 2]
    assert payload["summary"]["total_evaluated"] == 2
    assert payload["failed"] == []
    assert payload["cancelled"] is False


def test_cli_analytics_and_export(tmp_path: Path, runner: CliRunner, database_url: str) -> None:
    invoke(runner, database_url, "seed-default")
    submit_applications(database_url)
    report_path = tmp_path / "analytics.json"
    csv_path = tmp_path / "export" / "applications.csv"

    analytics = invoke(runner, database_url, "analytics", "--output", str(report_path))
    filtered = invoke(runner, database_url, "analytics", "--country", "ghana")
    exported = invoke(runner, database_url, "export", "--output", str(csv_path), "--eligible")

    assert analytics.exit_code == 0, analytics.output
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["overview"]["total_applications"] == 2
    assert report["errors"] == []

    assert filtered.exit_code == 0, filtered.output
    assert '"total_applications": 1' in filtered.output

    assert exported.exit_code == 0, exported.output
    assert "Exported 1 applications" in exported.output
    with csv_path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["business_name"] for row in rows] == ["Sun Drip Ltd"]
    assert rows[0]["is_eligible"] == "True"


def test_cli_reports_engine_errors(runner: CliRunner, database_url: str) -> None:
    invoke(runner, database_url, "seed-default")

    again = invoke(runner, database_url, "seed-default")
    missing = invoke(runner, database_url, "activate", "42")

    assert again.exit_code == 1
    assert '"kind": "conflict"' in again.output
    assert missing.exit_code == 1
    assert '"kind": "not_found"' in missing.output


def test_cli_leaderboard(tmp_path: Path, runner: CliRunner, database_url: str) -> None:
    invoke(runner, database_url, "seed-default")
    submit_applications(database_url)
    default_path = tmp_path / "dragons_den.json"
    board_path = tmp_path / "leaderboard.json"

    default = invoke(runner, database_url, "leaderboard", "--output", str(default_path))
    everyone = invoke(runner, database_url, "leaderboard", "--all", "--output", str(board_path))

    assert default.exit_code == 0, default.output
    assert json.loads(default_path.read_text(encoding="utf-8")) == []
    assert everyone.exit_code == 0, everyone.output
    board = json.loads(board_path.read_text(encoding="utf-8"))
    assert [(entry["rank"], entry["application_id"]) for entry in board] == [(1, 1), (2, 2)]
    assert board[1]["business_name"] == "Volta Cold Chain"
    assert board[1]["total_score"] == 0

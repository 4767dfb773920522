"""Typer CLI entrypoint for administering the scoring engine."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, List, Optional

import typer

from .actors import Actor, Role
from .config import load_yaml_file
from .container import create_container
from .engine import ScoringEngine
from .errors import EngineError
from .logging import configure_logging
from .schemas import AnalyticsFilter

app = typer.Typer(help="Grant application eligibility and scoring CLI.")


@dataclass
class CLIState:
    database_url: Optional[str]
    config: Optional[Path]
    log_level: Optional[str]
    actor: str

    def build_engine(self) -> ScoringEngine:
        settings: dict[str, Any] = {}
        if self.config:
            try:
                settings = load_yaml_file(self.config)
            except ValueError as exc:
                raise typer.BadParameter(str(exc), param_name="config") from exc
        if self.database_url:
            settings.setdefault("database", {})["url"] = self.database_url

        configure_logging(self.log_level or settings.get("log_level", "INFO"), actor=self.actor)

        container = create_container(settings=settings)
        engine = container.engine()
        engine.database.create_all()
        return engine

    @property
    def admin(self) -> Actor:
        return Actor(user_id=self.actor, role=Role.ADMIN)


def _invoke(action: Callable[[], Any]) -> Any:
    try:
        return action()
    except EngineError as exc:
        typer.echo(json.dumps(exc.to_dict(), ensure_ascii=False), err=True)
        raise typer.Exit(code=1) from exc


def _emit(payload: Any, output: Optional[Path]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.echo(f"Saved to {output}.")


def _build_filter(
    statuses: Optional[List[str]],
    submitted_from: Optional[str],
    submitted_to: Optional[str],
    country: Optional[str],
    gender: Optional[str],
    eligible: Optional[bool],
) -> AnalyticsFilter:
    try:
        return AnalyticsFilter(
            statuses=statuses or None,
            submitted_from=date.fromisoformat(submitted_from) if submitted_from else None,
            submitted_to=date.fromisoformat(submitted_to) if submitted_to else None,
            country=country,
            gender=gender,
            is_eligible=eligible,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.callback()
def main_options(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None, envvar="GRANTSCORING_DATABASE_URL", help="SQLAlchemy database URL."
    ),
    config: Optional[Path] = typer.Option(
        None, exists=True, readable=True, dir_okay=False, help="YAML settings path."
    ),
    log_level: Optional[str] = typer.Option(None, help="Log level for structured logging."),
    actor: str = typer.Option("admin", help="User id recorded as the acting administrator."),
) -> None:
    ctx.obj = CLIState(database_url=database_url, config=config, log_level=log_level, actor=actor)


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create the database schema."""
    ctx.obj.build_engine()
    typer.echo("Database initialised.")


@app.command("seed-default")
def seed_default(ctx: typer.Context) -> None:
    """Create and activate the bundled default rubric."""
    state: CLIState = ctx.obj
    engine = state.build_engine()
    config = _invoke(lambda: engine.seed_default_configuration(state.admin))
    typer.echo(f"Seeded configuration {config.id} ({config.name}) and activated it.")


@app.command()
def activate(
    ctx: typer.Context,
    config_id: int = typer.Argument(..., help="Scoring configuration id."),
) -> None:
    """Make a scoring configuration the active one."""
    state: CLIState = ctx.obj
    engine = state.build_engine()
    config = _invoke(lambda: engine.activate_configuration(state.admin, config_id))
    typer.echo(f"Activated configuration {config.id} ({config.name}).")


@app.command()
def reevaluate(
    ctx: typer.Context,
    config_id: int = typer.Argument(..., help="Scoring configuration id."),
    application_id: Optional[List[int]] = typer.Option(
        None, "--application-id", help="Restrict to these applications (repeatable)."
    ),
    reason: Optional[str] = typer.Option(None, help="Change reason recorded in the audit log."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="Output JSON path."),
) -> None:
    """Re-score applications against a configuration."""
    state: CLIState = ctx.obj
    engine = state.build_engine()
    result = _invoke(
        lambda: engine.re_evaluate(state.admin, config_id, application_id or None, reason=reason)
    )
    _emit(result.model_dump(mode="json"), output)


@app.command()
def analytics(
    ctx: typer.Context,
    status: Optional[List[str]] = typer.Option(None, help="Filter by status (repeatable)."),
    submitted_from: Optional[str] = typer.Option(None, "--from", help="Earliest submission date (YYYY-MM-DD)."),
    submitted_to: Optional[str] = typer.Option(None, "--to", help="Latest submission date (YYYY-MM-DD)."),
    country: Optional[str] = typer.Option(None, help="Filter by business country."),
    gender: Optional[str] = typer.Option(None, help="Filter by applicant gender."),
    eligible: Optional[bool] = typer.Option(None, "--eligible/--ineligible", help="Filter by eligibility."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="Output JSON path."),
) -> None:
    """Print the analytics report as JSON."""
    state: CLIState = ctx.obj
    flt = _build_filter(status, submitted_from, submitted_to, country, gender, eligible)
    engine = state.build_engine()
    report = _invoke(lambda: engine.get_analytics(state.admin, flt))
    _emit(report.model_dump(mode="json"), output)


@app.command()
def leaderboard(
    ctx: typer.Context,
    status: Optional[List[str]] = typer.Option(None, help="Rank applications in these statuses (default dragons_den)."),
    all_statuses: bool = typer.Option(False, "--all", help="Rank every application regardless of status."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, help="Output JSON path."),
) -> None:
    """Print applications ranked by current total score."""
    state: CLIState = ctx.obj
    statuses = None if all_statuses else (status or ["dragons_den"])
    engine = state.build_engine()
    board = _invoke(lambda: engine.leaderboard(state.admin, statuses=statuses))
    _emit([entry.model_dump(mode="json") for entry in board], output)


@app.command()
def export(
    ctx: typer.Context,
    output: Path = typer.Option(..., dir_okay=False, resolve_path=True, help="Output CSV path."),
    status: Optional[List[str]] = typer.Option(None, help="Filter by status (repeatable)."),
    country: Optional[str] = typer.Option(None, help="Filter by business country."),
    eligible: Optional[bool] = typer.Option(None, "--eligible/--ineligible", help="Filter by eligibility."),
) -> None:
    """Write per-application evaluation data to CSV."""
    state: CLIState = ctx.obj
    flt = _build_filter(status, None, None, country, None, eligible)
    engine = state.build_engine()
    rows = _invoke(lambda: engine.export_evaluation_data(state.admin, flt))

    fieldnames: list[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    typer.echo(f"Exported {len(rows)} applications to {output}.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

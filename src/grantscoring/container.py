"""Dependency injection container for the scoring engine."""

from __future__ import annotations

from typing import Any, Callable

import pendulum
from dependency_injector import containers, providers

from .clock import utcnow
from .core import EligibilityGate, GateConfig, ScorerRegistry, WeightedScoringEngine
from .core.scorers import (
    FundingTractionScorer,
    GenderInclusionScorer,
    climate_relevance_config,
    climate_relevance_scorer as build_climate_relevance_scorer,
    innovation_config,
    innovation_scorer as build_innovation_scorer,
)
from .core.scorers.market import (
    FinancialViabilityConfig,
    FinancialViabilityScorer,
    LocationFocusConfig,
    LocationFocusScorer,
    MarketPotentialConfig,
    MarketPotentialScorer,
)
from .core.scorers.workforce import JobCreationConfig, JobCreationScorer
from .engine import ScoringEngine
from .schemas.settings import load_settings
from .services import (
    ConfigurationManager,
    EvaluatorService,
    ReEvaluationEngine,
    ReportingService,
    SubmissionService,
)
from .store import Database


class EngineContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    clock = providers.Object(utcnow)
    today = providers.Object(pendulum.today)

    database = providers.Singleton(
        Database,
        url=config.database.url,
        echo=config.database.echo,
    )

    gate_config = providers.Factory(
        GateConfig,
        min_age=config.gate.min_age,
        max_age=config.gate.max_age,
        min_narrative_length=config.gate.min_narrative_length,
    )
    gate = providers.Singleton(EligibilityGate, config=gate_config, today_provider=today)

    market_potential_scorer = providers.Singleton(MarketPotentialScorer)
    job_creation_scorer = providers.Singleton(JobCreationScorer)
    gender_inclusion_scorer = providers.Singleton(GenderInclusionScorer)
    financial_viability_scorer = providers.Singleton(FinancialViabilityScorer)
    funding_traction_scorer = providers.Singleton(FundingTractionScorer)
    location_focus_scorer = providers.Singleton(LocationFocusScorer)
    climate_relevance_scorer = providers.Singleton(build_climate_relevance_scorer)
    innovation_scorer = providers.Singleton(build_innovation_scorer)

    scorer_registry = providers.Singleton(
        ScorerRegistry,
        scorers=providers.List(
            market_potential_scorer,
            job_creation_scorer,
            gender_inclusion_scorer,
            financial_viability_scorer,
            funding_traction_scorer,
            location_focus_scorer,
            climate_relevance_scorer,
            innovation_scorer,
        ),
    )

    scoring_engine = providers.Singleton(WeightedScoringEngine, registry=scorer_registry)

    lifecycle = providers.Singleton(
        ConfigurationManager,
        database=database,
        registry=scorer_registry,
        rubric_total_policy=config.scoring.rubric_total_policy,
        now_provider=clock,
    )

    submissions = providers.Singleton(
        SubmissionService,
        database=database,
        gate=gate,
        scoring=scoring_engine,
        now_provider=clock,
    )

    evaluators = providers.Singleton(EvaluatorService, database=database, now_provider=clock)

    reevaluation = providers.Singleton(
        ReEvaluationEngine,
        database=database,
        gate=gate,
        scoring=scoring_engine,
        max_workers=config.reevaluation.max_workers,
        now_provider=clock,
    )

    reporting = providers.Singleton(
        ReportingService,
        database=database,
        timeline_months=config.analytics.timeline_months,
        active_window_days=config.analytics.active_window_days,
        now_provider=clock,
    )

    engine = providers.Singleton(
        ScoringEngine,
        database=database,
        lifecycle=lifecycle,
        submissions=submissions,
        evaluators=evaluators,
        reevaluation=reevaluation,
        reporting=reporting,
    )


def create_container(
    *,
    settings: dict | None = None,
    now_provider: Callable[[], Any] | None = None,
    today_provider: Callable[[], Any] | None = None,
) -> EngineContainer:
    """Instantiate container with optional overrides."""

    container = EngineContainer()
    app_settings = load_settings(settings or {})
    container.config.from_dict(app_settings.to_settings())

    if now_provider is not None:
        container.clock.override(providers.Object(now_provider))
    if today_provider is not None:
        container.today.override(providers.Object(today_provider))

    scorer_settings = app_settings.scorers

    if "market_potential" in scorer_settings:
        market_config = MarketPotentialConfig(**scorer_settings["market_potential"])
        container.market_potential_scorer.override(
            providers.Singleton(MarketPotentialScorer, config=market_config)
        )

    if "job_creation" in scorer_settings:
        job_config = JobCreationConfig(**scorer_settings["job_creation"])
        container.job_creation_scorer.override(
            providers.Singleton(JobCreationScorer, config=job_config)
        )

    if "financial_viability" in scorer_settings:
        viability_config = FinancialViabilityConfig(**scorer_settings["financial_viability"])
        container.financial_viability_scorer.override(
            providers.Singleton(FinancialViabilityScorer, config=viability_config)
        )

    if "location_focus" in scorer_settings:
        overrides = dict(scorer_settings["location_focus"])
        if "focus_countries" in overrides:
            overrides["focus_countries"] = tuple(
                country.strip().lower() for country in overrides["focus_countries"]
            )
        location_config = LocationFocusConfig(**overrides)
        container.location_focus_scorer.override(
            providers.Singleton(LocationFocusScorer, config=location_config)
        )

    if "climate_relevance" in scorer_settings:
        climate_config = climate_relevance_config(**scorer_settings["climate_relevance"])
        container.climate_relevance_scorer.override(
            providers.Singleton(build_climate_relevance_scorer, config=climate_config)
        )

    if "innovation" in scorer_settings:
        innovation = innovation_config(**scorer_settings["innovation"])
        container.innovation_scorer.override(
            providers.Singleton(build_innovation_scorer, config=innovation)
        )

    return container

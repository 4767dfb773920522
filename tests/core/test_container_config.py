from __future__ import annotations

import pydantic
import pytest

from grantscoring.container import create_container
from grantscoring.schemas.settings import AppSettings, load_settings


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "database": {"url": "sqlite://"},
            "gate": {"min_age": 21, "min_narrative_length": 50},
            "reevaluation": {"max_workers": 2},
            "scorers": {
                "market_potential": {"customers_per_step": 50},
                "job_creation": {"saturation_employees": 20},
                "financial_viability": {"revenue_ceiling": 500_000},
                "location_focus": {"focus_countries": [" Uganda ", "KENYA"]},
                "climate_relevance": {"keywords": ["drought", "flood"], "target_hits": 2},
                "innovation": {"target_hits": 6},
            },
        }
    )

    gate = container.gate()
    registry = container.scorer_registry()

    assert gate.config.min_age == 21
    assert gate.config.max_age == 35
    assert gate.config.min_narrative_length == 50
    assert container.reevaluation()._max_workers == 2
    assert registry.get("market_potential")._config.customers_per_step == 50
    assert registry.get("job_creation")._config.saturation_employees == 20
    assert registry.get("financial_viability")._config.revenue_ceiling == 500_000
    assert registry.get("location_focus")._config.focus_countries == ("uganda", "kenya")
    assert registry.get("climate_relevance")._config.keywords == ("drought", "flood")
    assert registry.get("innovation")._config.target_hits == 6
    assert registry.get("innovation")._config.fields[0] == "description"
    assert container.scoring_engine().registry is registry


def test_container_defaults_share_singletons():
    container = create_container(settings={"database": {"url": "sqlite://"}})

    engine = container.engine()

    assert engine is container.engine()
    assert engine.database is container.database()
    assert container.gate().config.min_narrative_length == 100
    assert container.reevaluation()._max_workers == 4


def test_load_settings_validation():
    settings = load_settings({"scoring": {"rubric_total_policy": "strict"}})

    assert isinstance(settings, AppSettings)
    assert settings.to_settings()["scoring"]["rubric_total_policy"] == "strict"
    assert settings.analytics.timeline_months == 6


@pytest.mark.parametrize(
    "raw",
    [
        {"scoring": {"rubric_total_policy": "lenient"}},
        {"reevaluation": {"max_workers": 0}},
        ["not", "a", "mapping"],
    ],
)
def test_load_settings_rejects_invalid_input(raw):
    with pytest.raises(pydantic.ValidationError):
        load_settings(raw)

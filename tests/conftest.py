from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Iterator

import pendulum
import pytest

from grantscoring.actors import Actor, Role
from grantscoring.container import EngineContainer, create_container
from grantscoring.engine import ScoringEngine
from grantscoring.schemas import Applicant, Application, Business

AS_OF = date(2026, 10, 18)
NOW = pendulum.datetime(2026, 10, 18, 12, 0, tz="UTC")

ADMIN = Actor(user_id="admin-1", role=Role.ADMIN)
REVIEWER = Actor(user_id="reviewer-1", role=Role.TECHNICAL_REVIEWER)
JUROR = Actor(user_id="juror-1", role=Role.JURY_MEMBER)
APPLICANT = Actor(user_id="applicant-1", role=Role.APPLICANT)

DESCRIPTION = (
    "We build solar-powered drip irrigation kits that let smallholder farmers grow "
    "vegetables through the dry season."
)
PROBLEM = (
    "Farmers lose most of their harvest when rains fail, and diesel pumps are too "
    "expensive to run for small plots."
)
CLIMATE_CONTRIBUTION = (
    "Drip irrigation and water harvesting reduce exposure to drought, improve food "
    "security and keep soil moisture stable during heat waves across the region."
)
CLIMATE_IMPACT = (
    "Repeated droughts and flash floods destroyed crops in 2023 and 2024, so our "
    "customers now rely on early warning messages and stored water to keep producing."
)


def build_applicant(**kwargs: Any) -> Applicant:
    defaults: dict[str, Any] = {
        "user_id": "user-001",
        "first_name": "Amina",
        "last_name": "Otieno",
        "gender": "female",
        "date_of_birth": date(2000, 5, 1),
        "citizenship": "Kenya",
        "country_of_residence": "Kenya",
        "education_level": "undergraduate",
        "email": "amina@example.com",
    }
    defaults.update(kwargs)
    return Applicant(**defaults)


def build_business(**kwargs: Any) -> Business:
    defaults: dict[str, Any] = {
        "name": "Sun Drip Ltd",
        "is_registered": True,
        "country": "Kenya",
        "city": "Kisumu",
        "revenue_last_two_years": "25000",
        "full_time_employees_male": 2,
        "full_time_employees_female": 3,
        "part_time_employees_male": 1,
        "part_time_employees_female": 1,
        "description": DESCRIPTION,
        "problem_solved": PROBLEM,
        "climate_adaptation_contribution": CLIMATE_CONTRIBUTION,
        "climate_extreme_impact": CLIMATE_IMPACT,
        "product_service_description": "Solar pump and drip kit sold on a mobile payment plan.",
        "customer_count_last_six_months": 350,
    }
    defaults.update(kwargs)
    return Business(**defaults)


def build_application(application_id: int = 1, **kwargs: Any) -> Application:
    defaults: dict[str, Any] = {
        "id": application_id,
        "applicant": build_applicant(user_id=f"user-{application_id:03d}"),
        "business": build_business(),
        "submitted_at": NOW,
        "created_at": NOW,
    }
    defaults.update(kwargs)
    return Application(**defaults)


def manual_criterion(name: str, max_points: int, sort_order: int, **kwargs: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "category": kwargs.pop("category", "Business"),
        "name": name,
        "max_points": max_points,
        "sort_order": sort_order,
        "evaluation_type": "manual",
        "scoring_levels": [
            {"level": "Weak", "points": 0},
            {"level": "Strong", "points": max_points},
        ],
    }
    payload.update(kwargs)
    return payload


def rubric(**kwargs: Any) -> dict[str, Any]:
    """Two manual criteria plus one auto criterion, summing to 100."""
    payload: dict[str, Any] = {
        "name": "Test rubric",
        "version": "1.0",
        "total_max_score": 100,
        "pass_threshold": 60,
        "criteria": [
            manual_criterion("Team", 40, 1),
            manual_criterion("Plan", 40, 2),
            {
                "category": "Impact",
                "name": "Jobs",
                "max_points": 20,
                "sort_order": 3,
                "evaluation_type": "auto",
                "auto_scorer": "job_creation",
            },
        ],
    }
    payload.update(kwargs)
    return payload


def manual_rubric(**kwargs: Any) -> dict[str, Any]:
    """Only manual criteria, summing to 100."""
    payload: dict[str, Any] = {
        "name": "Manual rubric",
        "version": "1.0",
        "total_max_score": 100,
        "pass_threshold": 60,
        "criteria": [
            manual_criterion("Team", 50, 1),
            manual_criterion("Plan", 50, 2),
        ],
    }
    payload.update(kwargs)
    return payload


def make_container(tmp_path: Path, settings: dict[str, Any] | None = None) -> EngineContainer:
    merged: dict[str, Any] = {"database": {"url": f"sqlite:///{tmp_path / 'engine.db'}"}}
    merged.update(settings or {})
    container = create_container(
        settings=merged,
        now_provider=lambda: NOW,
        today_provider=lambda: AS_OF,
    )
    container.database().create_all()
    return container


@pytest.fixture
def container(tmp_path: Path) -> Iterator[EngineContainer]:
    container = make_container(tmp_path)
    yield container
    container.database().dispose()


@pytest.fixture
def engine(container: EngineContainer) -> ScoringEngine:
    return container.engine()

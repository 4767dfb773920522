"""Mandatory eligibility gate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

import pendulum

from ..schemas import Applicant, Business, GateResult


@dataclass
class GateConfig:
    """Thresholds for the mandatory checks."""

    min_age: int = 18
    max_age: int = 35
    min_narrative_length: int = 100


def exact_age(born: date, on: date) -> int:
    """Whole years between ``born`` and ``on``.

    A 29 February birthday counts as reached on 1 March in non-leap years.
    """
    years = on.year - born.year
    if (on.month, on.day) < (born.month, born.day):
        years -= 1
    return years


class EligibilityGate:
    """Evaluate the five pass/fail mandatory criteria for an application.

    Business plan and impact checks are textual-length proxies: each narrative
    must be strictly longer than ``min_narrative_length`` characters. They do
    not review content.
    """

    def __init__(
        self,
        *,
        config: GateConfig | None = None,
        today_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._config = config or GateConfig()
        self._today_provider = today_provider or pendulum.today

    @property
    def config(self) -> GateConfig:
        return self._config

    def evaluate(
        self,
        applicant: Applicant,
        business: Business,
        *,
        as_of: date | None = None,
    ) -> GateResult:
        reference = self._resolve_reference_date(as_of)
        age = exact_age(applicant.date_of_birth, reference)

        age_eligible = self._config.min_age <= age <= self._config.max_age
        registration_eligible = bool(business.is_registered)
        revenue_eligible = business.revenue_last_two_years > 0
        business_plan_eligible = self._long_enough(
            business.description, business.problem_solved
        )
        impact_eligible = self._long_enough(
            business.climate_adaptation_contribution,
            business.climate_extreme_impact,
        )

        return GateResult(
            age=age,
            age_eligible=age_eligible,
            registration_eligible=registration_eligible,
            revenue_eligible=revenue_eligible,
            business_plan_eligible=business_plan_eligible,
            impact_eligible=impact_eligible,
            is_eligible=(
                age_eligible
                and registration_eligible
                and revenue_eligible
                and business_plan_eligible
                and impact_eligible
            ),
        )

    def _long_enough(self, *texts: str | None) -> bool:
        limit = self._config.min_narrative_length
        return all(len(text or "") > limit for text in texts)

    def _resolve_reference_date(self, as_of: date | None) -> date:
        if as_of is not None:
            return as_of
        today = self._today_provider()
        if isinstance(today, pendulum.DateTime):
            return today.date()
        return today

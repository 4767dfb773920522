"""Market and financial traction scorers."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ...schemas import Application
from .base import scale


@dataclass
class MarketPotentialConfig:
    customers_per_step: int = 100
    steps: int = 10


class MarketPotentialScorer:
    """Customer reach over the last six months, in steps of ``customers_per_step``."""

    key = "market_potential"

    def __init__(self, *, config: MarketPotentialConfig | None = None) -> None:
        self._config = config or MarketPotentialConfig()

    def score(self, application: Application, max_points: int) -> int:
        customers = application.business.customer_count_last_six_months
        steps = min(self._config.steps, customers // self._config.customers_per_step)
        return scale(steps / self._config.steps, max_points)


@dataclass
class FinancialViabilityConfig:
    revenue_floor: float = 1_000.0
    revenue_ceiling: float = 1_000_000.0


class FinancialViabilityScorer:
    """Two-year revenue on a logarithmic scale between floor and ceiling."""

    key = "financial_viability"

    def __init__(self, *, config: FinancialViabilityConfig | None = None) -> None:
        self._config = config or FinancialViabilityConfig()

    def score(self, application: Application, max_points: int) -> int:
        revenue = float(application.business.revenue_last_two_years)
        if revenue <= 0:
            return 0
        low = math.log10(self._config.revenue_floor)
        high = math.log10(self._config.revenue_ceiling)
        fraction = (math.log10(revenue) - low) / (high - low)
        return scale(fraction, max_points)


class FundingTractionScorer:
    """Full credit when the business has already raised external funding."""

    key = "funding_traction"

    def score(self, application: Application, max_points: int) -> int:
        funding = application.business.funding
        if funding is None or not funding.has_external_funding:
            return 0
        return max_points


@dataclass
class LocationFocusConfig:
    focus_countries: tuple[str, ...] = ("ghana", "kenya", "nigeria", "rwanda", "tanzania")


class LocationFocusScorer:
    """Full credit for businesses operating in a programme focus country."""

    key = "location_focus"

    def __init__(self, *, config: LocationFocusConfig | None = None) -> None:
        self._config = config or LocationFocusConfig()

    def score(self, application: Application, max_points: int) -> int:
        country = application.business.country.strip().lower()
        return max_points if country in self._config.focus_countries else 0

"""Workforce-based scorers."""

from __future__ import annotations

from dataclasses import dataclass

from ...schemas import Application
from .base import scale


@dataclass
class JobCreationConfig:
    saturation_employees: int = 10


class JobCreationScorer:
    """Total full and part-time headcount, saturating at ``saturation_employees``."""

    key = "job_creation"

    def __init__(self, *, config: JobCreationConfig | None = None) -> None:
        self._config = config or JobCreationConfig()

    def score(self, application: Application, max_points: int) -> int:
        employees = application.business.total_employees
        saturation = self._config.saturation_employees
        return scale(min(employees, saturation) / saturation, max_points)


class GenderInclusionScorer:
    """Women-led ventures score full marks, others by female workforce share."""

    key = "gender_inclusion"

    def score(self, application: Application, max_points: int) -> int:
        if application.applicant.gender == "female":
            return max_points
        business = application.business
        total = business.total_employees
        if total == 0:
            return 0
        return scale(business.female_employees / total, max_points)

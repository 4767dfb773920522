"""Read-side aggregation of applications, results and evaluator scores.

Everything here is a pure function of its inputs: the same applications,
scores, filter and reference time always produce the same report.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Sequence

import structlog

from ..clock import as_utc
from ..schemas import Application, ApplicationScoreEntry, ScoringCriterion
from ..schemas.analytics import (
    AnalyticsFilter,
    AnalyticsReport,
    BusinessProfile,
    CriterionUtilisation,
    Demographics,
    DistributionEntry,
    EvaluationInsights,
    EvaluatorPerformance,
    Overview,
    TimelinePoint,
)
from .gate import exact_age

AGE_BUCKETS: tuple[str, ...] = ("under-18", "18-24", "25-29", "30-34", "35+")
REVENUE_BUCKETS: tuple[str, ...] = (
    "0",
    "1-9999",
    "10000-49999",
    "50000-99999",
    "100000-499999",
    "500000+",
)
EMPLOYMENT_BUCKETS: tuple[str, ...] = ("0", "1-5", "6-10", "11-20", "21-50", "51+")
SCORE_BUCKETS: tuple[str, ...] = ("0-19", "20-39", "40-59", "60-79", "80-100")

logger = structlog.get_logger(__name__)


def percentage(count: int, total: int) -> int:
    """Share of ``total`` as a whole percentage, rounding half up."""
    if total <= 0:
        return 0
    return int(math.floor(count * 100 / total + 0.5))


def age_bucket(age: int) -> str:
    if age < 18:
        return "under-18"
    if age <= 24:
        return "18-24"
    if age <= 29:
        return "25-29"
    if age <= 34:
        return "30-34"
    return "35+"


def revenue_bucket(revenue: Decimal) -> str:
    if revenue <= 0:
        return "0"
    if revenue < 10_000:
        return "1-9999"
    if revenue < 50_000:
        return "10000-49999"
    if revenue < 100_000:
        return "50000-99999"
    if revenue < 500_000:
        return "100000-499999"
    return "500000+"


def employment_bucket(employees: int) -> str:
    if employees <= 0:
        return "0"
    if employees <= 5:
        return "1-5"
    if employees <= 10:
        return "6-10"
    if employees <= 20:
        return "11-20"
    if employees <= 50:
        return "21-50"
    return "51+"


def score_bucket(score: int) -> str:
    if score < 20:
        return "0-19"
    if score < 40:
        return "20-39"
    if score < 60:
        return "40-59"
    if score < 80:
        return "60-79"
    return "80-100"


def submission_time(application: Application) -> datetime | None:
    value = application.submitted_at or application.created_at
    return as_utc(value) if value is not None else None


def distribution(
    counts: Counter,
    total: int,
    *,
    order: Sequence[str] | None = None,
) -> list[DistributionEntry]:
    """Count + percentage entries.

    With ``order`` every listed key appears (zero counts included) in that
    order; otherwise keys are sorted by descending count then by key.
    """
    if order is not None:
        keys: Iterable[str] = order
    else:
        keys = sorted(counts, key=lambda key: (-counts[key], key))
    return [
        DistributionEntry(key=key, count=counts.get(key, 0), percentage=percentage(counts.get(key, 0), total))
        for key in keys
    ]


def matches_filter(application: Application, flt: AnalyticsFilter, on: date) -> bool:
    applicant = application.applicant
    business = application.business

    if flt.statuses and application.status not in flt.statuses:
        return False
    if flt.submitted_from or flt.submitted_to:
        submitted = submission_time(application)
        if submitted is None:
            return False
        if flt.submitted_from and submitted.date() < flt.submitted_from:
            return False
        if flt.submitted_to and submitted.date() > flt.submitted_to:
            return False
    if flt.country and business.country.lower() != flt.country.lower():
        return False
    if flt.gender and applicant.gender != flt.gender:
        return False
    if flt.age_bucket and age_bucket(exact_age(applicant.date_of_birth, on)) != flt.age_bucket:
        return False
    if flt.education_level and applicant.education_level != flt.education_level:
        return False
    if flt.is_eligible is not None and _is_eligible(application) != flt.is_eligible:
        return False
    return True


def _is_eligible(application: Application) -> bool:
    result = application.current_result
    return bool(result and result.is_eligible)


def build_overview(applications: Sequence[Application], on: date) -> Overview:
    total = len(applications)
    ages = [exact_age(item.applicant.date_of_birth, on) for item in applications]
    return Overview(
        total_applications=total,
        eligible_applications=sum(1 for item in applications if _is_eligible(item)),
        evaluated_applications=sum(
            1
            for item in applications
            if item.current_result is not None and item.current_result.total_score is not None
        ),
        female_count=sum(1 for item in applications if item.applicant.gender == "female"),
        male_count=sum(1 for item in applications if item.applicant.gender == "male"),
        average_age=round(sum(ages) / total, 1) if total else 0.0,
        total_revenue=sum(
            (item.business.revenue_last_two_years for item in applications), Decimal("0")
        ),
        total_employees=sum(item.business.total_employees for item in applications),
    )


def build_demographics(applications: Sequence[Application], on: date) -> Demographics:
    total = len(applications)
    return Demographics(
        gender=distribution(Counter(item.applicant.gender for item in applications), total),
        age=distribution(
            Counter(age_bucket(exact_age(item.applicant.date_of_birth, on)) for item in applications),
            total,
            order=AGE_BUCKETS,
        ),
        education=distribution(
            Counter(item.applicant.education_level for item in applications), total
        ),
        country=distribution(
            Counter(item.business.country.lower() for item in applications), total
        ),
    )


def build_business_profile(applications: Sequence[Application]) -> BusinessProfile:
    total = len(applications)
    return BusinessProfile(
        revenue=distribution(
            Counter(revenue_bucket(item.business.revenue_last_two_years) for item in applications),
            total,
            order=REVENUE_BUCKETS,
        ),
        employment=distribution(
            Counter(employment_bucket(item.business.total_employees) for item in applications),
            total,
            order=EMPLOYMENT_BUCKETS,
        ),
        registration=distribution(
            Counter(
                "registered" if item.business.is_registered else "unregistered"
                for item in applications
            ),
            total,
            order=("registered", "unregistered"),
        ),
    )


def build_evaluation_insights(
    applications: Sequence[Application],
    scores: Sequence[ApplicationScoreEntry],
    criteria: Mapping[int, ScoringCriterion],
) -> EvaluationInsights:
    recorded = [entry for entry in scores if entry.evaluated_at is not None]
    by_criterion: dict[int, list[int]] = defaultdict(list)
    for entry in recorded:
        by_criterion[entry.criteria_id].append(entry.score)

    utilisation: list[CriterionUtilisation] = []
    ordered = sorted(criteria.values(), key=lambda item: (item.config_id, item.sort_order, item.id))
    for criterion in ordered:
        values = by_criterion.get(criterion.id, [])
        average = sum(values) / len(values) if values else 0.0
        utilisation.append(
            CriterionUtilisation(
                criteria_id=criterion.id,
                name=criterion.name,
                category=criterion.category,
                max_points=criterion.max_points,
                score_count=len(values),
                average_score=round(average, 2),
                utilisation=percentage_of(average, criterion.max_points),
            )
        )

    scored = [
        item.current_result.total_score
        for item in applications
        if item.current_result is not None and item.current_result.total_score is not None
    ]
    return EvaluationInsights(
        criteria=utilisation,
        total_score_histogram=distribution(
            Counter(score_bucket(value) for value in scored),
            len(scored),
            order=SCORE_BUCKETS,
        ),
        status=distribution(Counter(item.status for item in applications), len(applications)),
    )


def percentage_of(value: float, maximum: int) -> int:
    if maximum <= 0:
        return 0
    return int(math.floor(value / maximum * 100 + 0.5))


def build_evaluator_performance(
    scores: Sequence[ApplicationScoreEntry],
    *,
    as_of: datetime,
    active_window_days: int,
) -> list[EvaluatorPerformance]:
    grouped: dict[str, list[ApplicationScoreEntry]] = defaultdict(list)
    for entry in scores:
        owner = entry.assigned_to or entry.evaluated_by
        if owner:
            grouped[owner].append(entry)

    window_start = as_utc(as_of) - timedelta(days=active_window_days)
    performance: list[EvaluatorPerformance] = []
    for evaluator_id, entries in grouped.items():
        assigned = {entry.application_id for entry in entries}
        recorded = [entry for entry in entries if entry.evaluated_at is not None]
        completed = {entry.application_id for entry in entries if entry.score > 0}
        last_activity = max((as_utc(entry.evaluated_at) for entry in recorded), default=None)
        average = sum(entry.score for entry in recorded) / len(recorded) if recorded else 0.0
        performance.append(
            EvaluatorPerformance(
                evaluator_id=evaluator_id,
                total_assignments=len(assigned),
                completed_evaluations=len(completed),
                completion_rate=percentage(len(completed), len(assigned)),
                average_score=round(average, 2),
                total_scores=len(recorded),
                last_activity=last_activity,
                is_active=bool(last_activity and last_activity >= window_start),
            )
        )
    performance.sort(key=lambda item: (-item.completed_evaluations, item.evaluator_id))
    return performance


def build_timeline(
    applications: Sequence[Application],
    *,
    as_of: datetime,
    months: int,
) -> list[TimelinePoint]:
    current = as_utc(as_of).start_of("month")
    keys = [current.subtract(months=offset).format("YYYY-MM") for offset in range(months - 1, -1, -1)]
    points = {key: TimelinePoint(month=key) for key in keys}
    for item in applications:
        submitted = submission_time(item)
        if submitted is None:
            continue
        point = points.get(submitted.format("YYYY-MM"))
        if point is None:
            continue
        point.submissions += 1
        if _is_eligible(item):
            point.eligible += 1
        if item.applicant.gender == "female":
            point.female += 1
    return [points[key] for key in keys]


def build_report(
    applications: Sequence[Application],
    scores: Sequence[ApplicationScoreEntry],
    criteria: Mapping[int, ScoringCriterion],
    *,
    flt: AnalyticsFilter | None = None,
    as_of: datetime,
    timeline_months: int = 6,
    active_window_days: int = 7,
) -> AnalyticsReport:
    """Aggregate a snapshot into a dashboard report.

    A section that fails to build is left empty and its error recorded in
    ``report.errors``; the remaining sections are still produced.
    """
    flt = flt or AnalyticsFilter()
    on = as_utc(as_of).date()
    selected = [item for item in applications if matches_filter(item, flt, on)]
    selected_ids = {item.id for item in selected}
    selected_scores = [entry for entry in scores if entry.application_id in selected_ids]

    report = AnalyticsReport(generated_at=as_utc(as_of), filter=flt)
    sections: tuple[tuple[str, Callable[[], object]], ...] = (
        ("overview", lambda: build_overview(selected, on)),
        ("demographics", lambda: build_demographics(selected, on)),
        ("business", lambda: build_business_profile(selected)),
        ("evaluation", lambda: build_evaluation_insights(selected, selected_scores, criteria)),
        (
            "evaluators",
            lambda: build_evaluator_performance(
                selected_scores, as_of=as_of, active_window_days=active_window_days
            ),
        ),
        ("timeline", lambda: build_timeline(selected, as_of=as_of, months=timeline_months)),
    )
    for name, builder in sections:
        try:
            setattr(report, name, builder())
        except Exception as exc:  # noqa: BLE001
            logger.exception("analytics.section_failed", section=name)
            report.errors.append(f"{name}: {exc}")
    return report

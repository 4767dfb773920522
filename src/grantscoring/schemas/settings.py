"""Pydantic settings schema for YAML/dict configuration input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError


class DatabaseSettings(BaseModel):
    url: str = "sqlite:///grantscoring.db"
    echo: bool = False


class GateSettings(BaseModel):
    min_age: int = 18
    max_age: int = 35
    min_narrative_length: int = 100


class ScoringSettings(BaseModel):
    rubric_total_policy: Literal["warn", "strict"] = "warn"


class ReEvaluationSettings(BaseModel):
    max_workers: int = Field(default=4, ge=1, le=64)


class AnalyticsSettings(BaseModel):
    timeline_months: int = Field(default=6, ge=1)
    active_window_days: int = Field(default=7, ge=1)


class AppSettings(BaseModel):
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    gate: GateSettings = Field(default_factory=GateSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    reevaluation: ReEvaluationSettings = Field(default_factory=ReEvaluationSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    scorers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    log_level: str = "INFO"

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_settings(raw: Any) -> AppSettings:
    if raw is None:
        return AppSettings()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppSettings",
            [{"type": "dict_type", "loc": ("settings",), "input": raw}],
        )
    return AppSettings.model_validate(raw)

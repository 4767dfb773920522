"""Transactional services composed from the core and the store."""

from __future__ import annotations

from .evaluators import EvaluatorService
from .lifecycle import ConfigurationManager, parse_configuration_spec
from .reevaluation import ReEvaluationEngine
from .reporting import ReportingService
from .submission import SubmissionService

__all__ = [
    "ConfigurationManager",
    "EvaluatorService",
    "ReEvaluationEngine",
    "ReportingService",
    "SubmissionService",
    "parse_configuration_spec",
]

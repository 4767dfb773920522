"""Eligibility and scoring engine for competitive grant programmes."""

__version__ = "0.3.0"

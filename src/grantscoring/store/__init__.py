"""Persistence layer: SQLAlchemy engine, ORM tables and stores."""

from __future__ import annotations

from .database import Database
from .repositories import ConfigurationStore, RecordStore, ResultStore

__all__ = ["Database", "RecordStore", "ConfigurationStore", "ResultStore"]

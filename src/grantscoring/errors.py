"""Error taxonomy shared by every engine operation."""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for engine failures.

    Carries a machine readable ``kind`` plus the offending field and/or
    identifier so callers can render a precise message.
    """

    kind = "engine_error"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        identifier: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.identifier = identifier

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.field is not None:
            payload["field"] = self.field
        if self.identifier is not None:
            payload["identifier"] = self.identifier
        return payload


class ValidationError(EngineError):
    """Malformed configuration, out-of-range score or missing required data."""

    kind = "validation_error"


class NotFoundError(EngineError):
    """Unknown application, configuration or criterion."""

    kind = "not_found"


class ConflictError(EngineError):
    """Uniqueness or concurrent-update conflict."""

    kind = "conflict"


class AuthorizationError(EngineError):
    """Actor role is not allowed to perform the operation."""

    kind = "authorization_error"


class PersistenceError(EngineError):
    """Store-layer failure."""

    kind = "persistence_error"


__all__ = [
    "EngineError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthorizationError",
    "PersistenceError",
]

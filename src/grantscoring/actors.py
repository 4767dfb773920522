"""Acting user identity and role checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    TECHNICAL_REVIEWER = "technical_reviewer"
    JURY_MEMBER = "jury_member"
    DRAGONS_DEN_JUDGE = "dragons_den_judge"
    APPLICANT = "applicant"


EVALUATOR_ROLES: frozenset[Role] = frozenset(
    {Role.TECHNICAL_REVIEWER, Role.JURY_MEMBER, Role.DRAGONS_DEN_JUDGE}
)


@dataclass(frozen=True, slots=True)
class Actor:
    """The user on whose behalf an operation runs."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_evaluator(self) -> bool:
        return self.role in EVALUATOR_ROLES


SYSTEM_ACTOR = Actor(user_id="system", role=Role.ADMIN)


def require_role(actor: Actor | None, *roles: Role, operation: str) -> Actor:
    """Return ``actor`` when it holds one of ``roles``, otherwise raise."""
    if actor is None:
        raise AuthorizationError(f"{operation} requires an authenticated actor")
    if actor.role not in roles:
        allowed = ", ".join(sorted(role.value for role in roles))
        raise AuthorizationError(
            f"{operation} requires one of: {allowed}",
            identifier=actor.user_id,
        )
    return actor


def require_admin(actor: Actor | None, *, operation: str) -> Actor:
    return require_role(actor, Role.ADMIN, operation=operation)


__all__ = [
    "Actor",
    "Role",
    "EVALUATOR_ROLES",
    "SYSTEM_ACTOR",
    "require_role",
    "require_admin",
]

"""
Role Registry: the role state machine.

Defines:
- Role enum (user, investor, business_person, business_advisor, banker, admin)
- Allowed transitions, approval requirement and description per role
- Restricted roles, which are only reachable through the admin grant path

The table is immutable and loaded at import time.
"""

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Mapping, Optional


class Role(StrEnum):
    USER = "user"
    INVESTOR = "investor"
    BUSINESS_PERSON = "business_person"
    BUSINESS_ADVISOR = "business_advisor"
    BANKER = "banker"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """Return the Role for ``value`` or None when it is not a known role."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_ROLE = Role.USER


@dataclass(frozen=True)
class RoleDefinition:
    role: Role
    allowed_transitions: frozenset[Role]
    requires_approval: bool
    description: str


# ── Transition table ──────────────────────────────────────────────────────

RESTRICTED_ROLES: frozenset[Role] = frozenset({Role.BANKER, Role.ADMIN})

_TRANSITIONS: dict[Role, tuple[Role, ...]] = {
    Role.USER: (Role.INVESTOR, Role.BUSINESS_PERSON, Role.BUSINESS_ADVISOR, Role.BANKER),
    Role.INVESTOR: (Role.USER, Role.BUSINESS_PERSON, Role.BUSINESS_ADVISOR, Role.BANKER),
    Role.BUSINESS_PERSON: (Role.USER, Role.INVESTOR, Role.BUSINESS_ADVISOR, Role.BANKER),
    Role.BUSINESS_ADVISOR: (Role.USER, Role.INVESTOR, Role.BUSINESS_PERSON, Role.BANKER),
    Role.BANKER: (Role.USER, Role.BUSINESS_PERSON, Role.INVESTOR, Role.BUSINESS_ADVISOR),
    Role.ADMIN: (),
}

_DESCRIPTIONS: dict[Role, str] = {
    Role.USER: "General user with browsing privileges",
    Role.INVESTOR: "Can invest in business ideas and manage portfolio",
    Role.BUSINESS_PERSON: "Can post business ideas and seek investments",
    Role.BUSINESS_ADVISOR: "Can provide expert advice and guidance",
    Role.BANKER: "Can create loan schemes and assess risks",
    Role.ADMIN: "Full system administration privileges",
}

ROLE_REGISTRY: Mapping[Role, RoleDefinition] = MappingProxyType({
    role: RoleDefinition(
        role=role,
        allowed_transitions=frozenset(targets),
        requires_approval=role in RESTRICTED_ROLES,
        description=_DESCRIPTIONS[role],
    )
    for role, targets in _TRANSITIONS.items()
})


def allowed_targets(role: Role) -> list[Role]:
    """Allowed transitions from ``role`` in table order."""
    return list(_TRANSITIONS[role])


def is_restricted(role: Role) -> bool:
    return role in RESTRICTED_ROLES


def can_transition(current: Role, requested: Role) -> bool:
    return requested in ROLE_REGISTRY[current].allowed_transitions

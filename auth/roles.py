"""
auth/roles.py -- Role resolution from group claims and role requirements.

resolve_role() is the only place group names turn into a Role. It checks the
groups in fixed precedence order, so a subject in both "Admin" and "Employee"
is always an Admin and a subject in no group is a Candidate.

Requirement names the capability an endpoint needs. satisfies() is an
exhaustive table: adding a Role or a Requirement without updating
_ALLOWED_ROLES makes satisfies() raise instead of silently denying.

Layer rule: no imports from api/, tasks/, or services/.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from auth.models import Role

# Group name -> role, highest precedence first.
_GROUP_PRECEDENCE: tuple[tuple[str, Role], ...] = (
    ("Admin", Role.ADMIN),
    ("Employee", Role.EMPLOYEE),
)

DEFAULT_ROLE = Role.CANDIDATE


def resolve_role(groups: Iterable[str]) -> Role:
    """Derive the single role implied by a set of group names."""
    present = set(groups)
    for group, role in _GROUP_PRECEDENCE:
        if group in present:
            return role
    return DEFAULT_ROLE


class Requirement(str, Enum):
    AUTHENTICATED = "authenticated"
    EMPLOYEE_OR_ADMIN = "employee_or_admin"
    ADMIN_ONLY = "admin_only"


_ALLOWED_ROLES: dict[Requirement, frozenset[Role]] = {
    Requirement.AUTHENTICATED: frozenset(Role),
    Requirement.EMPLOYEE_OR_ADMIN: frozenset({Role.EMPLOYEE, Role.ADMIN}),
    Requirement.ADMIN_ONLY: frozenset({Role.ADMIN}),
}

# Denial messages name the unmet requirement.
DENIAL_MESSAGES: dict[Requirement, str] = {
    Requirement.AUTHENTICATED: "Authentication required.",
    Requirement.EMPLOYEE_OR_ADMIN: "Employee or Admin access required.",
    Requirement.ADMIN_ONLY: "Admin access required.",
}


def satisfies(role: Role, requirement: Requirement) -> bool:
    """Return True if role meets requirement."""
    try:
        allowed = _ALLOWED_ROLES[requirement]
    except KeyError:
        raise ValueError(f"Unhandled requirement: {requirement!r}") from None
    if role not in set(Role):
        raise ValueError(f"Unhandled role: {role!r}")
    return role in allowed

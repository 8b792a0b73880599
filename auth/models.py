"""
auth/models.py -- Domain types for identities and users.

Pattern: Data class (pure data container, zero logic). Stores, the gate, and
the policy module do the work; these types only fix the shape.

Claims come straight from the identity provider and are never persisted as-is.
A Principal is Claims plus the role the gate settled on, and lives only for
the duration of one request. User is the persisted row.

Layer rule: no imports from api/, tasks/, or services/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    """The closed set of roles. Exactly one is attached to every user."""

    ADMIN = "Admin"
    EMPLOYEE = "Employee"
    CANDIDATE = "Candidate"

    @classmethod
    def parse(cls, value: str) -> Role:
        """Return the Role for an exact wire value; raise ValueError otherwise."""
        for role in cls:
            if role.value == value:
                return role
        raise ValueError(f"Unknown role: {value!r}")


@dataclass(frozen=True)
class Claims:
    """Verified attributes asserted by the identity provider."""

    subject_id: str
    email: str
    display_name: str = "User"
    groups: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Principal:
    """The verified, role-resolved caller for one request."""

    subject_id: str
    email: str
    display_name: str
    groups: tuple[str, ...]
    role: Role
    # Role implied by the identity provider's groups. Informational only:
    # every gate and policy decision uses role.
    claims_role: Role = Role.CANDIDATE

    @classmethod
    def from_claims(cls, claims: Claims, role: Role, claims_role: Role | None = None) -> Principal:
        return cls(
            subject_id=claims.subject_id,
            email=claims.email,
            display_name=claims.display_name,
            groups=claims.groups,
            role=role,
            claims_role=claims_role if claims_role is not None else role,
        )


@dataclass
class User:
    """A persisted account, keyed by the identity provider's subject id.

    subject_id is immutable. email and display_name follow the provider on
    every sync; role changes only through the admin role-update operation or
    the bootstrap rule at first creation.
    """

    subject_id: str
    email: str
    display_name: str
    role: Role
    created_at: str = ""  # ISO 8601, set by store on insert

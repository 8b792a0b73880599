"""
auth/reconcile.py -- Reconcile a verified identity with the persisted user row.

Trust boundary: once a user row exists, its role is authoritative. Changing
group membership at the identity provider does not change a persisted role;
only the admin role-update operation does.

Bootstrap: a subject with no user row is treated as, and created as, Candidate,
except the single account whose email equals Settings.bootstrap_admin_email,
which is Admin. The gate uses initial_role() for subjects that have not synced
(or were deleted), so it never disagrees with what reconcile() would store.
Identity-provider groups never grant a role here.

The override is applied at creation only. If another Admin later changes the
bootstrap account's role, later reconciles keep the persisted role.

Layer rule: no imports from api/, tasks/, or services/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.models import Principal, Role, User
from auth.store import UserStore
from core.config import Settings

logger = logging.getLogger("taskflow.auth.reconcile")


@dataclass(frozen=True)
class ReconcileResult:
    user: User
    created: bool


def bootstrap_role(email: str, bootstrap_admin_email: str) -> Role:
    """Return the role a brand-new user with this email starts with."""
    designated = bootstrap_admin_email.strip().lower()
    if designated and email.strip().lower() == designated:
        return Role.ADMIN
    return Role.CANDIDATE


class UserReconciler:
    """Create-or-fetch the user row behind a Principal.

    Usage:
        reconciler = UserReconciler(user_store, settings)
        result = reconciler.reconcile(principal)
        result.user.role   # authoritative role
    """

    def __init__(self, user_store: UserStore, settings: Settings) -> None:
        self.user_store = user_store
        self.bootstrap_admin_email = settings.bootstrap_admin_email

    def initial_role(self, email: str) -> Role:
        """Role a subject with no user row is treated as, and created with."""
        return bootstrap_role(email, self.bootstrap_admin_email)

    def reconcile(self, principal: Principal) -> ReconcileResult:
        existing = self.user_store.get_user(principal.subject_id)
        if existing is not None:
            return ReconcileResult(user=existing, created=False)

        candidate = User(
            subject_id=principal.subject_id,
            email=principal.email,
            display_name=principal.display_name or "User",
            role=self.initial_role(principal.email),
        )
        # Another request may have created the row since get_user(); the
        # upsert then only refreshes the profile and keeps the stored role.
        stored, inserted = self.user_store.upsert_user(candidate)
        if inserted:
            logger.info("User %s created with role %s", stored.email, stored.role.value)
        return ReconcileResult(user=stored, created=inserted)

"""
auth/dependencies.py -- FastAPI Depends() helpers implementing the authorization gate.

Three stages, applied per request:
  1. Authentication -- the Authorization header must be "Bearer <token>" with a
     non-empty token. The token is handed to the IdentityVerifier on
     app.state.verifier. Missing, malformed, expired and rejected credentials
     all raise AuthenticationError (401) with distinct codes and messages.
  2. Identity attachment -- the resulting Principal is stored on
     request.state.principal. Its role is the persisted role when a user row
     exists (looked up fresh on every request). Without a row (not synced yet,
     or deleted) it is the role reconcile() would create the row with, so
     Candidate unless the email is the bootstrap admin's. Identity-provider
     groups are recorded on the Principal as claims_role but never gate.
     Nothing is cached between requests, so an admin role change applies on
     the affected user's very next call.
  3. Role sufficiency -- require(Requirement) returns a dependency that raises
     AuthorizationError (403) naming the unmet requirement.

get_principal() is the soft-to-hard entry point for any authenticated route.
require_employee_or_admin / require_admin are the two gated variants.

Layer rule: no imports from api/, tasks/, or services/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Principal
from auth.reconcile import UserReconciler
from auth.roles import DENIAL_MESSAGES, Requirement, resolve_role, satisfies
from auth.store import UserStore
from auth.tokens import IdentityVerifier, VerificationError
from core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger("taskflow.auth")

_BEARER_PREFIX = "bearer"

# VerificationError.reason -> (code, message). Anything unlisted collapses to
# the generic authentication_failed response.
_VERIFICATION_FAILURES: dict[str, tuple[str, str]] = {
    "expired": ("token_expired", "Token has expired. Please sign in again."),
    "invalid": ("token_invalid", "Invalid token. Please sign in again."),
}
_GENERIC_FAILURE = ("authentication_failed", "Authentication failed.")


def extract_bearer_token(header_value: str | None) -> str:
    """Return the token from an Authorization header value.

    Raises AuthenticationError("missing") when there is no header and
    AuthenticationError("malformed") when the scheme is not Bearer or the
    token part is empty.
    """
    if not header_value or not header_value.strip():
        raise AuthenticationError("missing", "Authorization header missing.")
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != _BEARER_PREFIX or not token.strip():
        raise AuthenticationError("malformed", "Malformed authorization header.")
    return token.strip()


def authenticate(request: Request) -> Principal:
    """Run stages 1 and 2 and return the request's Principal."""
    token = extract_bearer_token(request.headers.get("Authorization"))

    verifier: IdentityVerifier = request.app.state.verifier
    try:
        claims = verifier.verify(token)
    except VerificationError as exc:
        code, message = _VERIFICATION_FAILURES.get(exc.reason, _GENERIC_FAILURE)
        logger.warning("Token verification failed (%s) from %s", exc.reason, _client_host(request))
        raise AuthenticationError(code, message) from exc

    user_store: UserStore = request.app.state.user_store
    reconciler: UserReconciler = request.app.state.reconciler
    claims_role = resolve_role(claims.groups)
    role = user_store.get_role(claims.subject_id)
    if role is None:
        # Not synced yet, or deleted: the role reconcile() would create.
        role = reconciler.initial_role(claims.email)
    if role is not claims_role:
        logger.debug("Group role %s not applied to %s (effective %s)", claims_role.value, claims.email, role.value)

    principal = Principal.from_claims(claims, role, claims_role)
    request.state.principal = principal
    logger.debug("Token verified for %s (%s)", principal.email, role.value)
    return principal


def get_principal(request: Request) -> Principal:
    """Require authentication. Raises AuthenticationError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        principal = authenticate(request)
    return principal


def require(requirement: Requirement):
    """Build a dependency that enforces requirement on top of get_principal()."""

    def dependency(request: Request) -> Principal:
        principal = get_principal(request)
        if not satisfies(principal.role, requirement):
            logger.warning(
                "%s denied for %s (%s) on %s %s",
                requirement.value,
                principal.email,
                principal.role.value,
                request.method,
                request.url.path,
            )
            raise AuthorizationError("forbidden", DENIAL_MESSAGES[requirement])
        return principal

    dependency.__name__ = f"require_{requirement.value}"
    return dependency


require_employee_or_admin = require(Requirement.EMPLOYEE_OR_ADMIN)
require_admin = require(Requirement.ADMIN_ONLY)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"

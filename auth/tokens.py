"""
auth/tokens.py -- Identity verification for Cognito-issued ID tokens.

Security design decisions:
  JWT: python-jose. The token is checked against the user pool's JWKS: the
       signing key is selected by the header kid, and the algorithm comes from
       the JWKS entry (never from the token header). Issuer must match the
       configured pool, audience must match the app client id, and token_use
       must be "id" -- access tokens carry no email or profile claims.

  Failure classification: every failure raises VerificationError with a
       reason the gate can map to a user-facing message:
         expired    -- signature valid but exp is in the past
         invalid    -- signature, issuer, audience, kid, or claim checks failed
         malformed  -- the string is not a decodable JWT at all
         unavailable -- the JWKS could not be fetched or parsed
       The verifier never retries; the caller resubmits a fresh token.

  JWKS cache: the key set is cached for Settings.jwks_cache_seconds so a
       request does not cost a round-trip to Cognito. Only public keys are
       cached -- no per-user or per-request state lives here.

Layer rule: no imports from api/, tasks/, or services/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

import requests
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from auth.models import Claims
from core.config import Settings

logger = logging.getLogger("taskflow.auth")

_JWKS_TIMEOUT_SECONDS = 5
_FAILURE_BACKOFF_SECONDS = 30


class VerificationError(Exception):
    """Raised when a credential fails verification."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class IdentityVerifier(Protocol):
    """Anything that turns an opaque bearer token into verified Claims."""

    def verify(self, token: str) -> Claims: ...


# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------


def fetch_jwks(url: str) -> dict:
    """Download a JWKS document. Raises VerificationError("unavailable") on failure."""
    try:
        resp = requests.get(url, timeout=_JWKS_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        raise VerificationError("unavailable") from exc
    if resp.status_code != 200:
        raise VerificationError("unavailable")
    try:
        jwks = resp.json()
    except ValueError as exc:
        raise VerificationError("unavailable") from exc
    if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
        raise VerificationError("unavailable")
    return jwks


class JWKSCache:
    """Time-bounded in-memory copy of one JWKS document.

    At most one thread downloads at a time. While a refresh is in flight, or
    after it failed, other callers keep getting the previous key set instead
    of waiting on the network. A failed download is not retried for
    _FAILURE_BACKOFF_SECONDS, so an outage costs one request per backoff
    window rather than one per verification. Callers only block when there is
    no key set at all yet.
    """

    def __init__(self, url: str, ttl_seconds: int, fetcher: Callable[[str], dict] = fetch_jwks) -> None:
        self.url = url
        self.ttl_seconds = ttl_seconds
        self._fetcher = fetcher
        # (jwks, expires_at) replaced as one tuple so readers never see a torn pair.
        self._state: tuple[dict | None, float] = (None, 0.0)
        self._retry_at = 0.0
        self._fetch_lock = threading.Lock()

    def _fresh(self) -> dict | None:
        jwks, expires_at = self._state
        if jwks is not None and time.time() < expires_at:
            return jwks
        return None

    def get(self) -> dict:
        jwks = self._fresh()
        if jwks is not None:
            return jwks

        stale, _ = self._state
        if not self._fetch_lock.acquire(blocking=stale is None):
            return stale
        try:
            jwks = self._fresh()
            if jwks is not None:
                return jwks
            stale, _ = self._state
            if time.time() < self._retry_at:
                if stale is not None:
                    return stale
                raise VerificationError("unavailable")
            try:
                jwks = self._fetcher(self.url)
            except VerificationError:
                self._retry_at = time.time() + _FAILURE_BACKOFF_SECONDS
                if stale is None:
                    raise
                logger.warning("JWKS refresh from %s failed; serving the previous key set", self.url)
                return stale
            self._state = (jwks, time.time() + self.ttl_seconds)
            logger.info("JWKS refreshed from %s (%d keys)", self.url, len(jwks["keys"]))
            return jwks
        finally:
            self._fetch_lock.release()

    def find_key(self, kid: str) -> dict | None:
        for key in self.get()["keys"]:
            if isinstance(key, dict) and key.get("kid") == kid:
                return key
        return None


# ---------------------------------------------------------------------------
# Cognito verifier
# ---------------------------------------------------------------------------


class CognitoVerifier:
    """Verify Cognito ID tokens and extract Claims.

    Usage:
        verifier = CognitoVerifier(get_settings())
        claims = verifier.verify(raw_token)
    """

    def __init__(self, settings: Settings, jwks_fetcher: Callable[[str], dict] = fetch_jwks) -> None:
        self.issuer = settings.cognito_issuer
        self.client_id = settings.cognito_client_id
        self.jwks = JWKSCache(settings.cognito_jwks_url, settings.jwks_cache_seconds, jwks_fetcher)

    def verify(self, token: str) -> Claims:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise VerificationError("malformed") from exc

        kid = header.get("kid")
        if not kid:
            raise VerificationError("invalid")
        key = self.jwks.find_key(kid)
        if key is None:
            raise VerificationError("invalid")

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[key.get("alg", "RS256")],
                audience=self.client_id,
                issuer=self.issuer,
                # ID tokens may carry at_hash; the matching access token is not sent to us.
                options={"verify_at_hash": False},
            )
        except ExpiredSignatureError as exc:
            raise VerificationError("expired") from exc
        except (JWTClaimsError, JWTError) as exc:
            raise VerificationError("invalid") from exc

        if payload.get("token_use") != "id":
            raise VerificationError("invalid")
        return claims_from_payload(payload)


def claims_from_payload(payload: dict) -> Claims:
    """Map Cognito ID-token claims onto Claims.

    email falls back to the Cognito username for pools that sign in by
    username; display_name falls back to the custom firstName attribute and
    then to "User".
    """
    subject_id = payload.get("sub")
    if not isinstance(subject_id, str) or not subject_id:
        raise VerificationError("invalid")
    email = payload.get("email") or payload.get("cognito:username") or payload.get("username") or ""
    display_name = payload.get("given_name") or payload.get("custom:firstName") or "User"
    raw_groups = payload.get("cognito:groups") or []
    if not isinstance(raw_groups, list):
        raw_groups = []
    return Claims(
        subject_id=subject_id,
        email=str(email),
        display_name=str(display_name),
        groups=tuple(str(g) for g in raw_groups),
    )

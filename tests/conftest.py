"""
tests/conftest.py -- Shared test fixtures for Taskflow integration tests.

This module provides:
  - StaticVerifier: a stand-in IdentityVerifier mapping fixed tokens to Claims
  - make_engine(): isolated named shared-memory SQLite engine per test scope
  - _patch_lifespan(): wires test stores and the fake verifier into app.state,
    bypassing real startup
  - api_client: TestClient + stores + verifier for route integration tests
  - user_store / task_store: fresh stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process, for as long as
one connection stays open -- the fixtures hold one open for their lifetime.

DEBUG must be set before any core/api import so get_settings() does not
demand real Cognito configuration.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api.main -- Settings is read at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DEFAULT_RATE_LIMIT", "10000/minute")
os.environ.setdefault("BOOTSTRAP_ADMIN_EMAIL", "founder@example.com")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.models import Claims
from auth.reconcile import UserReconciler
from auth.store import UserStore
from auth.tokens import VerificationError
from core.config import get_settings
from core.db import create_db_engine
from tasks.store import TaskStore

# ---------------------------------------------------------------------------
# Fake identity boundary
# ---------------------------------------------------------------------------


class StaticVerifier:
    """IdentityVerifier that knows a fixed set of tokens.

    register() returns a token string for the given claims. The special
    tokens "expired-token" and "garbage" raise the matching VerificationError.
    Any other unknown token is "invalid".
    """

    def __init__(self) -> None:
        self._claims: dict[str, Claims] = {}

    def register(self, subject_id: str, email: str, name: str = "User", groups: tuple[str, ...] = ()) -> str:
        token = f"tok-{subject_id}-{uuid.uuid4().hex[:8]}"
        self._claims[token] = Claims(subject_id=subject_id, email=email, display_name=name, groups=groups)
        return token

    def verify(self, token: str) -> Claims:
        if token == "expired-token":
            raise VerificationError("expired")
        if token == "garbage":
            raise VerificationError("malformed")
        try:
            return self._claims[token]
        except KeyError:
            raise VerificationError("invalid") from None


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_engine(db_suffix: str) -> Engine:
    """Create an engine on an isolated named shared-memory SQLite database."""
    url = f"sqlite:///file:test_taskflow_{db_suffix}?mode=memory&cache=shared&uri=true"
    return create_db_engine(url)


def _patch_lifespan(engine: Engine, user_store: UserStore, task_store: TaskStore, verifier: StaticVerifier):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.engine = engine
        app.state.user_store = user_store
        app.state.task_store = task_store
        app.state.verifier = verifier
        app.state.reconciler = UserReconciler(user_store, get_settings())
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures -- one fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine(uuid.uuid4().hex)
    keeper = eng.connect()  # keeps the shared in-memory database alive
    yield eng
    keeper.close()
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def task_store(engine: Engine, user_store: UserStore) -> TaskStore:
    return TaskStore(engine)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test function
# ---------------------------------------------------------------------------


@pytest.fixture
def api_client(
    engine: Engine,
    user_store: UserStore,
    task_store: TaskStore,
) -> Generator[tuple[TestClient, StaticVerifier], None, None]:
    """Yield (client, verifier) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan, so tests
    hit real route handlers, dependencies and stores, but tokens are resolved
    by StaticVerifier instead of Cognito. base_url uses localhost so the
    TrustedHostMiddleware accepts the requests.
    """
    verifier = StaticVerifier()
    app.router.lifespan_context = _patch_lifespan(engine, user_store, task_store, verifier)
    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, verifier

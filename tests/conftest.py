"""
tests/conftest.py -- Shared test fixtures for localauth tests.

This module provides:
  - make_email(): unique email per call so module-scoped DBs never collide
  - run(): drive an AuthService coroutine from a sync test
  - store / issuer / hasher / service: isolated unit-test objects
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the TestClient fixture because it runs the app in a separate thread. Plain
:memory: DBs are per-connection and would present a blank schema there.
Unit-test fixtures stay on one thread, so plain :memory: is fine for them.

DEBUG must be set before any api/core import so get_settings() can
auto-generate the token secrets instead of raising ValueError.

bcrypt rounds are dropped to the minimum (4) so the suite stays fast; the
cost factor does not change hashing semantics.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import. TestClient sends
# Host: testserver, which TrustedHostMiddleware must accept.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer

ACCESS_SECRET = "a" * 40
REFRESH_SECRET = "r" * 40
TEST_ROUNDS = 4


def make_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@example.com"


def run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore, issuer: TokenIssuer, hasher: PasswordHasher) -> AuthService:
    return AuthService(store=store, issuer=issuer, hasher=hasher)


# ---------------------------------------------------------------------------
# Integration fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, token_issuer: TokenIssuer):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and issuer into app.state so routes see an isolated
    database and known secrets.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_issuer = token_issuer
        app.state.auth_service = AuthService(
            store=user_store,
            issuer=token_issuer,
            hasher=PasswordHasher(rounds=TEST_ROUNDS),
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, UserStore, TokenIssuer], None, None]:
    """Yield (client, store, issuer) for API integration tests.

    One TestClient and one shared-memory DB per test module.
    """
    db_url = f"sqlite:///file:test_auth_{request.module.__name__}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    token_issuer = TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)

    app.router.lifespan_context = _patch_lifespan(user_store, token_issuer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, token_issuer

    user_store.close()

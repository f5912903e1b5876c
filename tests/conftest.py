"""
tests/conftest.py -- Shared test fixtures for SessionAuth tests.

This module provides:
  - store / verifier / sessions: isolated in-memory AuthStore and the two
    services built on it, one fresh database per test
  - client: TestClient over the assembled ASGI app (API + web routes) with a
    patched lifespan and follow_redirects=False

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.

DEBUG and BCRYPT_ROUNDS must be set before any app import so get_settings()
auto-generates SECRET_KEY and hashes stay cheap.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager, suppress

# CRITICAL: Set before any auth/core/api import -- get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.credentials import CredentialVerifier
from auth.sessions import SessionManager
from auth.store import AuthStore
from core.limiter import limiter

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
TEST_ROUNDS = 4  # bcrypt minimum -- keeps the suite fast

# Login is rate limited to 10/minute; the suite logs in far more than that.
limiter.enabled = False


def make_store(name: str | None = None) -> AuthStore:
    """Create an isolated named shared-memory AuthStore."""
    name = name or uuid.uuid4().hex
    return AuthStore(f"sqlite:///file:test_auth_{name}?mode=memory&cache=shared&uri=true")


# ---------------------------------------------------------------------------
# Unit fixtures -- fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AuthStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def verifier(store: AuthStore) -> CredentialVerifier:
    return CredentialVerifier(store, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def sessions(store: AuthStore) -> SessionManager:
    return SessionManager(store, ttl_seconds=3600, secret_key=TEST_SECRET)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AuthStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and services into app.state so routes see an
    isolated database rather than the configured one. The purge_task is a
    long-sleeping coroutine so shutdown can cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.verifier = CredentialVerifier(store, bcrypt_rounds=TEST_ROUNDS)
        app.state.sessions = SessionManager(store, ttl_seconds=3600, secret_key=TEST_SECRET)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.purge_task

    return test_lifespan


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the full app, backed by a per-module store.

    follow_redirects=False so web route tests can assert on Location headers.
    """
    store = make_store()
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as c:
        yield c

    store.close()

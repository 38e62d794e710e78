"""
tests/conftest.py -- Shared test fixtures for the movie catalog.

This module provides:
  - _make_test_stores(): isolated in-memory DBs for users/sessions and movies
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - user_store / movie_store / catalog: store-level fixtures for unit tests
  - web_client: TestClient with follow_redirects=False for route tests
  - register_user() / login_as(): helpers for multi-user scenarios

Design: named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
Every fixture instance gets a fresh uuid-suffixed name, so tests never see each
other's rows.

DEBUG must be set before any core/auth import so get_settings() auto-generates
SECRET_KEY instead of raising. Rate limiting is switched off so the many logins
below are not throttled.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any project import -- Settings is read at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth import service as auth_service
from auth.store import UserStore
from catalog.service import CatalogService
from catalog.store import MovieStore

TEST_YEAR = 2026

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _make_test_stores() -> tuple[UserStore, MovieStore]:
    return UserStore(db_url=_memory_url("test_users")), MovieStore(db_url=_memory_url("test_movies"))


def _patch_lifespan(user_store: UserStore, movie_store: MovieStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() a
    real asyncio.Task, exactly as the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.movie_store = movie_store
        app.state.catalog = CatalogService(movie_store, user_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


def register_user(store: UserStore, username: str, email: str | None = None, password: str = "secret1") -> int:
    """Register through the real service and return the new user's ID."""
    email = email or f"{username}@x.com"
    auth_service.register(store, username, email, password)
    return store.get_by_email(email).id


def login_as(client: TestClient, email: str, password: str = "secret1") -> None:
    """Log the client in, replacing whatever session cookie it held."""
    client.cookies.clear()
    resp = client.post("/login", data={"email": email, "password": password})
    assert resp.status_code == 302, f"login failed: {resp.status_code} {resp.text[:200]}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, MovieStore], None, None]:
    user_store, movie_store = _make_test_stores()
    yield user_store, movie_store
    movie_store.close()
    user_store.close()


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def movie_store(stores) -> MovieStore:
    return stores[1]


@pytest.fixture
def catalog(stores) -> CatalogService:
    """CatalogService with the calendar pinned so year bounds are deterministic."""
    user_store, movie_store = stores
    return CatalogService(movie_store, user_store, current_year=TEST_YEAR)


@pytest.fixture
def web_client(stores) -> Generator[TestClient, None, None]:
    """TestClient over the full ASGI app with isolated stores.

    follow_redirects=False is essential: route tests assert on redirect
    locations, which disappear once the client follows them.
    """
    user_store, movie_store = stores
    app.router.lifespan_context = _patch_lifespan(user_store, movie_store)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client

"""
tests/conftest.py -- Shared test fixtures for the agenda service.

This module provides:
  - settings:      a Settings instance built from explicit values
  - user_store / event_store / scheduler: in-memory stores for unit tests
  - make_user:     factory that registers a user with a hashed password
  - auth_headers:  factory that mints an Authorization header for a user
  - api_client:    TestClient running the real app against isolated stores

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process. Each test gets its own name so
events created in one test never collide with dates used in another.

JWT_SECRET / JWT_EXPIRES_IN are set before any app import so code paths that
call get_settings() find a complete environment.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from types import SimpleNamespace

# Set before any core/auth import so get_settings() can build Settings.
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("JWT_EXPIRES_IN", "3600")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, hash_password
from core.config import Settings
from events.scheduler import SchedulingEngine
from events.store import EventStore

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
DEFAULT_PASSWORD = "abcdef"

# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, jwt_secret=TEST_SECRET, jwt_expires_in=3600)


@pytest.fixture
def token_service(settings: Settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def event_store() -> Generator[EventStore, None, None]:
    store = EventStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def scheduler(event_store: EventStore) -> SchedulingEngine:
    return SchedulingEngine(event_store)


@pytest.fixture
def make_user(user_store: UserStore) -> Callable[..., User]:
    """Return a factory: make_user(name, email, is_admin=False, password=DEFAULT_PASSWORD) -> User."""

    def _make(name: str, email: str, is_admin: bool = False, password: str = DEFAULT_PASSWORD) -> User:
        user_id = user_store.create_user(
            User(name=name, email=email, hashed_password=hash_password(password), is_admin=is_admin)
        )
        return user_store.get_by_id(user_id)

    return _make


@pytest.fixture
def auth_headers(token_service: TokenService) -> Callable[[User], dict[str, str]]:
    """Return a factory: auth_headers(user) -> {"Authorization": "Bearer <jwt>"}."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_service.issue(user)}"}

    return _headers


# ---------------------------------------------------------------------------
# API integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(state: SimpleNamespace):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = state.settings
        app.state.user_store = state.user_store
        app.state.event_store = state.event_store
        app.state.token_service = state.token_service
        app.state.scheduler = SchedulingEngine(state.event_store)
        yield

    return test_lifespan


@pytest.fixture
def api_state(settings: Settings, token_service: TokenService) -> Generator[SimpleNamespace, None, None]:
    """Isolated stores on one named shared-memory database."""
    db_url = f"sqlite:///file:test_agenda_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    state = SimpleNamespace(
        settings=settings,
        token_service=token_service,
        user_store=UserStore(db_url),
        event_store=EventStore(db_url),
    )
    yield state
    state.event_store.close()
    state.user_store.close()


@pytest.fixture
def api_client(api_state: SimpleNamespace) -> Generator[TestClient, None, None]:
    """TestClient over the real FastAPI app with a patched lifespan."""
    app.router.lifespan_context = _patch_lifespan(api_state)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def api_user(api_state: SimpleNamespace) -> Callable[..., User]:
    """Like make_user, but registers the user in the API client's store."""

    def _make(name: str, email: str, is_admin: bool = False, password: str = DEFAULT_PASSWORD) -> User:
        store: UserStore = api_state.user_store
        user_id = store.create_user(
            User(name=name, email=email, hashed_password=hash_password(password), is_admin=is_admin)
        )
        return store.get_by_id(user_id)

    return _make

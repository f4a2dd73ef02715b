"""
tests/conftest.py -- Shared test fixtures for the Whendy auth test suite.

This module provides:
  - clock: FakeClock (tests/helpers.py) injected into TokenCodec -- no real time in token tests
  - codec / registry / manager: fresh, isolated auth components per test
  - api_client: TestClient wired to isolated components via a patched lifespan

Design: every fixture builds its own SessionStoreRegistry through
default_registry(), so no test can leak a registered backend or a stored
session into another.

The DEBUG env var must be set before any core import so get_settings() can
auto-generate SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core/api import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.factory import build_session_manager, build_token_codec
from auth.models import SessionManagerConfig
from auth.sessions import SessionManager
from auth.store import SessionStoreRegistry, default_registry
from auth.tokens import TokenCodec
from core.config import Settings
from tests.helpers import TEST_KEY, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    """Plain codec: no expiry, issuer or audience."""
    return TokenCodec(TEST_KEY, clock=clock)


@pytest.fixture
def registry() -> SessionStoreRegistry:
    return default_registry()


@pytest.fixture
def manager(registry: SessionStoreRegistry) -> SessionManager:
    return SessionManager(SessionManagerConfig(cookie_name="whsessionid"), registry)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _test_settings() -> Settings:
    return Settings(
        _env_file=None,
        debug=False,
        secret_key=TEST_KEY,
        token_expire_seconds=3600,
        token_issuer="whendy-tests",
        token_audience="api",
        session_cookie_max_age=600,
    )


def _patch_lifespan(settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    Wires isolated components into app.state so TestClient routes never share
    sessions with another test module.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.session_registry = default_registry()
        app.state.session_manager = build_session_manager(settings, app.state.session_registry)
        app.state.token_codec = build_token_codec(settings)
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by fresh auth components.

    The base URL is plain http, so the client's cookie jar never replays the
    Secure session cookie on its own -- tests pass the Cookie header
    explicitly and stay deterministic.
    """
    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(_test_settings())
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    app.router.lifespan_context = original

"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import fakeredis
import pytest
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI
from fastapi.testclient import TestClient

from editorial_ai.core.config import get_settings


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis(fake_server):
    """Async client the routes use (bound to TestClient's loop on first call)."""
    return FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def seed_redis(fake_server):
    """Sync client on the same server, for arranging data from plain tests."""
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def api_settings(monkeypatch):
    """Route-level settings come from the environment through get_settings()."""
    monkeypatch.setenv("SHARED_CONTACT_IDENTIFIERS", '["studio@example.com"]')
    monkeypatch.setenv("WORKER_CALLBACK_TOKEN", "worker-secret")
    monkeypatch.setenv("SUGGESTION_MODEL", "m1")
    monkeypatch.setenv("SUGGESTION_COOLDOWN_SECONDS", "300")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def api_client(api_settings, fake_redis):
    """FastAPI test client with fakeredis behind get_redis.

    Uses a test lifespan: no real Redis connection and no background sweep.
    """
    from fastapi.middleware.cors import CORSMiddleware

    from editorial_ai.api.routes import api_router
    from editorial_ai.db.redis import get_redis
    from editorial_ai.main import register_exception_handlers
    from editorial_ai.middleware.correlation import setup_correlation_middleware

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        app.state.shutting_down = False
        yield

    app = FastAPI(
        title=api_settings.app_name,
        description="Editorial AI Suggestions - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id testing)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")
    app.dependency_overrides[get_redis] = lambda: fake_redis

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    app.dependency_overrides.clear()

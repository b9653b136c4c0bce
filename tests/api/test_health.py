"""Tests for liveness and readiness probes."""

import pytest
from fastapi.testclient import TestClient

import editorial_ai.db.redis as redis_mod

pytestmark = pytest.mark.unit


def test_health_is_healthy(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "editorial-ai"}


def test_health_returns_503_while_shutting_down(api_client: TestClient):
    api_client.app.state.shutting_down = True

    response = api_client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["status"] == "shutting_down"


def test_ready_is_degraded_without_redis(api_client: TestClient, monkeypatch):
    monkeypatch.setattr(redis_mod, "_redis", None)

    response = api_client.get("/api/ready")

    assert response.status_code == 503
    assert response.json() == {"status": "degraded", "checks": {"redis": False}}


def test_ready_when_redis_answers(api_client: TestClient, fake_redis, monkeypatch):
    monkeypatch.setattr(redis_mod, "_redis", fake_redis)

    response = api_client.get("/api/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"redis": True}}


def test_get_redis_before_init_raises(monkeypatch):
    monkeypatch.setattr(redis_mod, "_redis", None)

    with pytest.raises(RuntimeError, match="Redis not initialized"):
        redis_mod.get_redis()

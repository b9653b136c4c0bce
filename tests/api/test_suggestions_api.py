"""Integration tests for suggestion API endpoints.

Tests cover:
- POST /api/events/{id}/suggestions opens an attempt and queues a generation job
- Cooldown (429 + Retry-After) and force regeneration
- Worker callback POST /api/suggestions/{id}/finish (token, 404, 409, validation)
- History, latest and single-attempt reads with event access and creator visibility
- GET /api/events/suggestion-meta
- Auth requirement
"""

import json

import pytest
from fastapi.testclient import TestClient

from editorial_ai.suggestions.generator_fake import HAPPY_PATH_SUGGESTION

pytestmark = pytest.mark.unit

OWNER = {"X-Profile-Id": "P1", "X-Profile-Email": "Studio@Example.com", "X-Profile-Role": "stagiaire"}
TEAMMATE = {"X-Profile-Id": "P2", "X-Profile-Email": "studio@example.com", "X-Profile-Role": "stagiaire"}
OUTSIDER = {"X-Profile-Id": "P9", "X-Profile-Email": "someone@else.com", "X-Profile-Role": "stagiaire"}
ADMIN = {"X-Profile-Id": "admin-1", "X-Profile-Email": "boss@example.com", "X-Profile-Role": "admin"}


@pytest.fixture
def worker_headers(api_settings):
    return {"X-Worker-Token": api_settings.worker_callback_token}


@pytest.fixture
def seeded(seed_redis):
    """Two events owned by P1 (E2 backed up by P2) and one owned by someone else."""
    events = {
        "E1": {
            "title": "Portes ouvertes du studio",
            "category": "evenement",
            "prep_start_date": "2026-11-02",
            "start_date": "2026-11-09",
            "owner_profile_id": "P1",
        },
        "E2": {
            "title": "Teaser",
            "category": "reel",
            "prep_start_date": "2026-10-20",
            "start_date": "2026-10-25",
            "owner_profile_id": "P1",
            "backup_owner_profile_id": "P2",
        },
        "E9": {
            "title": "Autre equipe",
            "category": "post",
            "prep_start_date": "2026-10-01",
            "start_date": "2026-10-02",
            "owner_profile_id": "P7",
        },
    }
    for event_id, fields in events.items():
        seed_redis.hset(f"editorial_event:{event_id}", mapping=fields)
        seed_redis.sadd("editorial_events", event_id)
    seed_redis.sadd("profiles:by_contact:studio@example.com", "P1", "P2")
    return seed_redis


def request_suggestion(client: TestClient, event_id: str = "E1", headers=OWNER, force: bool = False):
    return client.post(f"/api/events/{event_id}/suggestions", json={"force": force}, headers=headers)


def test_request_suggestion_opens_attempt_and_queues_job(api_client: TestClient, seeded):
    response = request_suggestion(api_client)

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "generating"

    record = seeded.hgetall(f"suggestion:{data['suggestion_id']}")
    assert record["status"] == "generating"
    assert record["result_json"] == "{}"
    assert record["model"] == "m1"
    assert "error_message" not in record

    job = json.loads(seeded.lindex("suggestions:dispatch", 0))
    assert job["suggestion_id"] == data["suggestion_id"]
    assert job["input_summary"] == record["input_summary"]


def test_request_without_body_defaults_to_no_force(api_client: TestClient, seeded):
    response = api_client.post("/api/events/E1/suggestions", headers=OWNER)

    assert response.status_code == 202


def test_request_requires_auth(api_client: TestClient, seeded):
    response = api_client.post("/api/events/E1/suggestions", json={})

    assert response.status_code == 401
    assert "debug_id" in response.json()


def test_unknown_role_is_forbidden(api_client: TestClient, seeded):
    response = request_suggestion(api_client, headers={**OWNER, "X-Profile-Role": "intern"})

    assert response.status_code == 403


def test_request_for_missing_or_foreign_event_is_404(api_client: TestClient, seeded):
    assert request_suggestion(api_client, event_id="nope").status_code == 404
    assert request_suggestion(api_client, event_id="E9").status_code == 404
    assert seeded.llen("suggestions:dispatch") == 0


def test_admin_can_request_for_any_event(api_client: TestClient, seeded):
    assert request_suggestion(api_client, event_id="E9", headers=ADMIN).status_code == 202


def test_second_request_hits_cooldown_unless_forced(api_client: TestClient, seeded):
    assert request_suggestion(api_client).status_code == 202

    cooled = request_suggestion(api_client)
    assert cooled.status_code == 429
    assert 0 < int(cooled.headers["Retry-After"]) <= 300

    forced = request_suggestion(api_client, force=True)
    assert forced.status_code == 202
    assert seeded.llen("suggestions:dispatch") == 2


def test_worker_finish_ready_then_latest_shows_result(api_client: TestClient, seeded, worker_headers):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]
    payload = json.dumps(HAPPY_PATH_SUGGESTION)

    finish = api_client.post(
        f"/api/suggestions/{suggestion_id}/finish",
        json={"status": "ready", "result_json": payload},
        headers=worker_headers,
    )
    assert finish.status_code == 200
    assert finish.json() == {"suggestion_id": suggestion_id}

    latest = api_client.get("/api/events/E1/suggestions/latest", headers=OWNER)
    assert latest.status_code == 200
    data = latest.json()
    assert data["id"] == suggestion_id
    assert data["status"] == "ready"
    assert json.loads(data["result_json"]) == HAPPY_PATH_SUGGESTION
    assert data["error_message"] is None
    assert data["updated_at"] >= data["created_at"]


def test_worker_finish_error_trims_message(api_client: TestClient, seeded, worker_headers):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]

    api_client.post(
        f"/api/suggestions/{suggestion_id}/finish",
        json={"status": "error", "error_message": "  timeout  "},
        headers=worker_headers,
    )

    data = api_client.get(f"/api/suggestions/{suggestion_id}", headers=OWNER).json()
    assert data["status"] == "error"
    assert data["error_message"] == "timeout"
    assert data["result_json"] == "{}"


def test_second_finish_is_409(api_client: TestClient, seeded, worker_headers):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]
    url = f"/api/suggestions/{suggestion_id}/finish"

    assert api_client.post(url, json={"status": "ready", "result_json": "{}"}, headers=worker_headers).status_code == 200
    again = api_client.post(url, json={"status": "error", "error_message": "late"}, headers=worker_headers)

    assert again.status_code == 409
    assert seeded.hget(f"suggestion:{suggestion_id}", "status") == "ready"


def test_finish_into_generating_is_409(api_client: TestClient, seeded, worker_headers):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]

    response = api_client.post(
        f"/api/suggestions/{suggestion_id}/finish",
        json={"status": "generating"},
        headers=worker_headers,
    )

    assert response.status_code == 409


def test_finish_unknown_attempt_is_404(api_client: TestClient, seeded, worker_headers):
    response = api_client.post("/api/suggestions/missing/finish", json={"status": "ready"}, headers=worker_headers)

    assert response.status_code == 404


def test_finish_requires_worker_token(api_client: TestClient, seeded):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]
    url = f"/api/suggestions/{suggestion_id}/finish"

    assert api_client.post(url, json={"status": "ready"}).status_code == 401
    assert api_client.post(url, json={"status": "ready"}, headers={"X-Worker-Token": "wrong"}).status_code == 401
    assert seeded.hget(f"suggestion:{suggestion_id}", "status") == "generating"


def test_finish_validates_status(api_client: TestClient, seeded, worker_headers):
    response = api_client.post("/api/suggestions/x/finish", json={"status": "done"}, headers=worker_headers)

    assert response.status_code == 422


def test_history_is_oldest_first_and_scoped(api_client: TestClient, seeded):
    first = request_suggestion(api_client, event_id="E2").json()["suggestion_id"]
    second = request_suggestion(api_client, event_id="E2", force=True).json()["suggestion_id"]

    owner_view = api_client.get("/api/events/E2/suggestions", headers=OWNER)
    assert owner_view.status_code == 200
    assert [a["id"] for a in owner_view.json()] == [first, second]

    # Backup owner sharing the owner's contact sees who asked
    teammate_view = api_client.get("/api/events/E2/suggestions", headers=TEAMMATE).json()
    assert {a["created_by_profile_id"] for a in teammate_view} == {"P1"}

    assert api_client.get("/api/events/E2/suggestions", headers=OUTSIDER).status_code == 404


def test_creator_hidden_from_viewer_outside_scope(api_client: TestClient, seeded):
    suggestion_id = request_suggestion(api_client, event_id="E1", headers=ADMIN).json()["suggestion_id"]

    data = api_client.get(f"/api/suggestions/{suggestion_id}", headers=OWNER).json()

    assert data["id"] == suggestion_id
    assert data["created_by_profile_id"] is None


def test_latest_is_null_without_attempts_or_access(api_client: TestClient, seeded):
    assert api_client.get("/api/events/E1/suggestions/latest", headers=OWNER).json() is None

    request_suggestion(api_client)

    assert api_client.get("/api/events/E1/suggestions/latest", headers=OUTSIDER).json() is None
    assert api_client.get("/api/events/nope/suggestions/latest", headers=OWNER).json() is None


def test_get_suggestion_access_and_not_found(api_client: TestClient, seeded):
    suggestion_id = request_suggestion(api_client).json()["suggestion_id"]

    assert api_client.get(f"/api/suggestions/{suggestion_id}", headers=OUTSIDER).status_code == 404
    assert api_client.get("/api/suggestions/missing", headers=OWNER).status_code == 404


def test_suggestion_meta_lists_visible_events(api_client: TestClient, seeded, worker_headers):
    suggestion_id = request_suggestion(api_client, event_id="E1").json()["suggestion_id"]
    api_client.post(
        f"/api/suggestions/{suggestion_id}/finish",
        json={"status": "error", "error_message": "boom"},
        headers=worker_headers,
    )

    response = api_client.get("/api/events/suggestion-meta", headers=OWNER)

    assert response.status_code == 200
    rows = response.json()
    assert [row["event_id"] for row in rows] == ["E2", "E1"]
    assert rows[0]["suggestion"] == {"has_suggestion": False, "updated_at": None, "status": None}
    assert rows[1]["suggestion"]["has_suggestion"] is True
    assert rows[1]["suggestion"]["status"] == "error"

    admin_rows = api_client.get("/api/events/suggestion-meta", headers=ADMIN).json()
    assert [row["event_id"] for row in admin_rows] == ["E9", "E2", "E1"]


def test_responses_carry_request_id(api_client: TestClient, seeded):
    response = api_client.get("/api/events/E1/suggestions", headers={**OWNER, "X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_redis_outage_is_503_with_debug_id(api_client: TestClient, seeded, fake_server):
    fake_server.connected = False

    response = request_suggestion(api_client)

    assert response.status_code == 503
    assert response.json()["detail"] == "Suggestion store unavailable"
    assert "debug_id" in response.json()

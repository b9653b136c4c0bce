"""Shared test fixtures for all test groups."""

import pytest
from fakeredis import aioredis

from editorial_ai.core.config import Settings
from editorial_ai.domain.events import EditorialEvent
from editorial_ai.domain.profiles import Profile, Role
from editorial_ai.suggestions.generator_fake import SuggestionGeneratorFake
from editorial_ai.suggestions.state_machine import SuggestionLifecycle
from editorial_ai.suggestions.store import AttemptStore

SHARED_CONTACT = "studio@example.com"


@pytest.fixture
async def redis_client():
    """Fresh fake Redis per test."""
    client = aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def store(redis_client):
    return AttemptStore(redis_client)


@pytest.fixture
def lifecycle(store):
    return SuggestionLifecycle(store)


@pytest.fixture
def generator_fake():
    """SuggestionGeneratorFake with happy_path scenario (default)."""
    return SuggestionGeneratorFake(scenario="happy_path")


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env file."""
    return Settings(
        _env_file=None,
        suggestion_model="m1",
        suggestion_prompt_version="v1",
        suggestion_cooldown_seconds=300,
        shared_contact_identifiers=[SHARED_CONTACT],
    )


@pytest.fixture
def admin():
    return Profile(id="admin-1", email="boss@example.com", role=Role.ADMIN)


@pytest.fixture
def owner():
    return Profile(id="P1", email="  Studio@Example.com ", role=Role.STAGIAIRE)


@pytest.fixture
def teammate():
    """Different profile sharing the owner's contact identifier."""
    return Profile(id="P2", email="studio@example.com", role=Role.STAGIAIRE)


@pytest.fixture
def outsider():
    return Profile(id="P9", email="someone@else.com", role=Role.STAGIAIRE)


@pytest.fixture
def event():
    return EditorialEvent(
        id="E1",
        title="Portes ouvertes du studio",
        category="evenement",
        prep_start_date="2026-11-02",
        start_date="2026-11-09",
        notes="Mettre en avant la nouvelle console.",
        owner_profile_id="P1",
    )


@pytest.fixture
def save_event(redis_client):
    """Writes an event the way the communication module stores it."""

    async def _save(event: EditorialEvent) -> None:
        mapping = {
            key: value
            for key, value in event.model_dump(exclude={"id"}).items()
            if value is not None
        }
        await redis_client.hset(f"editorial_event:{event.id}", mapping=mapping)
        await redis_client.sadd("editorial_events", event.id)

    return _save


@pytest.fixture
def register_contact(redis_client):
    """Adds profile ids under a normalized contact identifier."""

    async def _register(contact: str, *profile_ids: str) -> None:
        await redis_client.sadd(f"profiles:by_contact:{contact}", *profile_ids)

    return _register

"""Editorial events as consumed by the suggestion pipeline.

Events are owned by the communication module; the pipeline only needs the
fields that feed the prompt and the ownership fields that gate access.
"""

from pydantic import BaseModel, Field
from redis.asyncio import Redis

from editorial_ai.domain.profiles import Profile


class EditorialEvent(BaseModel):
    """Editorial calendar entry a suggestion is generated for."""

    id: str
    title: str = Field(..., min_length=1)
    category: str
    prep_start_date: str  # YYYY-MM-DD, internal preparation deadline
    start_date: str  # YYYY-MM-DD, publication date
    end_date: str | None = None
    notes: str | None = None
    owner_profile_id: str
    backup_owner_profile_id: str | None = None


def can_access_event(profile: Profile, event: EditorialEvent) -> bool:
    """Admins see every event; others only events they own or back up."""
    if profile.is_admin:
        return True
    return event.owner_profile_id == profile.id or (
        event.backup_owner_profile_id is not None and event.backup_owner_profile_id == profile.id
    )


def event_sort_key(event: EditorialEvent) -> tuple[str, str, str]:
    """Calendar order: preparation date, then publication date, then title."""
    return (event.prep_start_date, event.start_date, event.title)


class EventDirectory:
    """Read-only lookups against the event records the communication module maintains.

    - ``editorial_event:{id}``: hash of EditorialEvent fields
    - ``editorial_events``: set of all event ids
    """

    ALL_EVENTS_KEY = "editorial_events"

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, event_id: str) -> EditorialEvent | None:
        data = await self.redis.hgetall(f"editorial_event:{event_id}")
        if not data:
            return None
        return EditorialEvent.model_validate({**data, "id": event_id})

    async def list_events(self) -> list[EditorialEvent]:
        event_ids = sorted(await self.redis.smembers(self.ALL_EVENTS_KEY))
        if not event_ids:
            return []

        async with self.redis.pipeline(transaction=False) as pipe:
            for event_id in event_ids:
                pipe.hgetall(f"editorial_event:{event_id}")
            rows = await pipe.execute()

        # Ids left in the index after their record was removed are skipped
        return [
            EditorialEvent.model_validate({**data, "id": event_id})
            for event_id, data in zip(event_ids, rows)
            if data
        ]

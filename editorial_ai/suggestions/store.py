"""AttemptStore: Redis-backed storage for suggestion attempts.

Layout:
- ``suggestion:{id}``: hash holding one attempt record
- ``event:{event_id}:suggestions``: sorted set, score = created_at, member =
  ``{insertion counter:020d}:{id}`` so equal timestamps keep insertion order
- ``suggestions:generating``: sorted set of attempts still in flight, score = created_at
- ``suggestions:counter``: atomic insertion counter
"""

import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from editorial_ai.core.exceptions import AttemptNotFoundError, StoreUnavailableError
from editorial_ai.suggestions.schemas import SuggestionAttempt, SuggestionStatus

logger = structlog.get_logger(__name__)

Precondition = Callable[[SuggestionAttempt], None]


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Surface transient Redis failures as StoreUnavailableError (no retry here)."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as exc:
        logger.warning("attempt_store_unavailable", operation=operation, error=str(exc))
        raise StoreUnavailableError(f"Attempt store unavailable during {operation}") from exc


def _most_recently_updated(attempts: list[SuggestionAttempt]) -> SuggestionAttempt | None:
    """Highest updated_at; ``attempts`` is oldest first and max() keeps the first of equals."""
    if not attempts:
        return None
    return max(attempts, key=lambda attempt: attempt.updated_at)


class AttemptStore:
    """Durable keyed storage for SuggestionAttempt records."""

    RECORD_PREFIX = "suggestion:"
    IN_FLIGHT_KEY = "suggestions:generating"
    COUNTER_KEY = "suggestions:counter"

    def __init__(self, redis: Redis):
        self.redis = redis

    def _record_key(self, suggestion_id: str) -> str:
        return f"{self.RECORD_PREFIX}{suggestion_id}"

    def _event_key(self, event_id: str) -> str:
        return f"event:{event_id}:suggestions"

    async def insert(self, attempt: SuggestionAttempt) -> str:
        """Store a new attempt under a freshly assigned id and return the id.

        Any id already set on ``attempt`` is ignored. Only the insertion
        counter is shared between concurrent inserts.
        """
        suggestion_id = uuid.uuid4().hex
        record = attempt.model_copy(update={"id": suggestion_id})

        with _store_errors("insert"):
            counter = await self.redis.incr(self.COUNTER_KEY)
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hset(self._record_key(suggestion_id), mapping=record.to_redis_hash())
                pipe.zadd(
                    self._event_key(record.event_id),
                    {f"{counter:020d}:{suggestion_id}": record.created_at},
                )
                if record.status == SuggestionStatus.GENERATING:
                    pipe.zadd(self.IN_FLIGHT_KEY, {suggestion_id: record.created_at})
                await pipe.execute()

        return suggestion_id

    async def patch(
        self,
        suggestion_id: str,
        fields: dict[str, Any],
        precondition: Precondition | None = None,
    ) -> SuggestionAttempt:
        """Apply a partial update to one record atomically and return the result.

        ``None`` values remove the field. ``precondition`` runs against the
        current record inside the watched section; if it raises, nothing is
        written. Raises AttemptNotFoundError if the id does not exist.
        """
        key = self._record_key(suggestion_id)
        removed = [name for name, value in fields.items() if value is None]

        with _store_errors("patch"):
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        data = await pipe.hgetall(key)
                        if not data:
                            raise AttemptNotFoundError(suggestion_id)

                        current = SuggestionAttempt.from_redis_hash(data)
                        if precondition is not None:
                            precondition(current)

                        updated = current.model_copy(update=fields)

                        pipe.multi()
                        pipe.hset(key, mapping=updated.to_redis_hash())
                        if removed:
                            pipe.hdel(key, *removed)
                        if updated.is_terminal:
                            pipe.zrem(self.IN_FLIGHT_KEY, suggestion_id)
                        await pipe.execute()
                        return updated
                    except WatchError:
                        # Another writer touched the record between WATCH and EXEC
                        logger.debug("attempt_patch_retry", suggestion_id=suggestion_id)
                        continue

    async def get_by_id(self, suggestion_id: str) -> SuggestionAttempt:
        """Return the attempt or raise AttemptNotFoundError."""
        with _store_errors("get_by_id"):
            data = await self.redis.hgetall(self._record_key(suggestion_id))
        if not data:
            raise AttemptNotFoundError(suggestion_id)
        return SuggestionAttempt.from_redis_hash(data)

    async def list_by_event(self, event_id: str) -> list[SuggestionAttempt]:
        """Return every attempt for an event, oldest first (insertion order on ties)."""
        with _store_errors("list_by_event"):
            members = await self.redis.zrange(self._event_key(event_id), 0, -1)
            if not members:
                return []

            async with self.redis.pipeline(transaction=False) as pipe:
                for member in members:
                    _counter, suggestion_id = member.split(":", 1)
                    pipe.hgetall(self._record_key(suggestion_id))
                rows = await pipe.execute()

        return [SuggestionAttempt.from_redis_hash(row) for row in rows if row]

    async def latest_for_event(self, event_id: str) -> SuggestionAttempt | None:
        """Most recently updated attempt for an event (earlier creation wins ties)."""
        return _most_recently_updated(await self.list_by_event(event_id))

    async def latest_for_events(self, event_ids: list[str]) -> dict[str, SuggestionAttempt | None]:
        """latest_for_event for many events in two pipelined round trips."""
        if not event_ids:
            return {}

        with _store_errors("latest_for_events"):
            async with self.redis.pipeline(transaction=False) as pipe:
                for event_id in event_ids:
                    pipe.zrange(self._event_key(event_id), 0, -1)
                member_lists = await pipe.execute()

            owners = []
            async with self.redis.pipeline(transaction=False) as pipe:
                for event_id, members in zip(event_ids, member_lists):
                    for member in members:
                        _counter, suggestion_id = member.split(":", 1)
                        pipe.hgetall(self._record_key(suggestion_id))
                        owners.append(event_id)
                rows = await pipe.execute() if owners else []

        by_event: dict[str, list[SuggestionAttempt]] = {event_id: [] for event_id in event_ids}
        for event_id, row in zip(owners, rows):
            if row:
                by_event[event_id].append(SuggestionAttempt.from_redis_hash(row))
        return {event_id: _most_recently_updated(attempts) for event_id, attempts in by_event.items()}

    async def list_in_flight(self, created_before: int) -> list[str]:
        """Ids still generating whose created_at is at or before ``created_before``."""
        with _store_errors("list_in_flight"):
            return await self.redis.zrangebyscore(self.IN_FLIGHT_KEY, "-inf", created_before)

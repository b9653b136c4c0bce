"""SuggestionService: request-side orchestration and read paths for suggestions.

Wires the event access rule, the regeneration cooldown, the lifecycle
controller and the dispatch queue together, and shapes attempts for
viewers (creator hidden outside the viewer's visibility scope).
"""

import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from editorial_ai.core.config import Settings, get_settings
from editorial_ai.core.exceptions import (
    EventAccessDeniedError,
    StoreUnavailableError,
    SuggestionCooldownError,
)
from editorial_ai.domain.events import EditorialEvent, EventDirectory, can_access_event, event_sort_key
from editorial_ai.domain.profiles import Profile, ProfileDirectory
from editorial_ai.domain.suggestion_content import build_input_summary, build_prompt
from editorial_ai.domain.visibility import VisibilityResolver, visible_creator_id
from editorial_ai.suggestions.schemas import (
    CreatedAttempt,
    EventSuggestionSummary,
    GenerationJob,
    SuggestionAttempt,
    SuggestionAttemptView,
    SuggestionMeta,
    SuggestionStatus,
)
from editorial_ai.suggestions.state_machine import SuggestionLifecycle, now_ms
from editorial_ai.suggestions.worker import DispatchQueue

logger = structlog.get_logger(__name__)

DISPATCH_FAILED_MESSAGE = "Generation could not be dispatched"


class SuggestionService:
    """Request and read AI suggestions for editorial events.

    Constructor uses dependency injection so tests can supply fakeredis-backed
    collaborators.

    Args:
        lifecycle: Attempt lifecycle controller (owns the attempt store)
        queue: Dispatch queue the generation worker consumes
        events: Event records (ownership gates access)
        profiles: Contact index used to expand the viewer's scope
        resolver: Co-visibility rule
        settings: Model, prompt version and cooldown configuration
    """

    def __init__(
        self,
        lifecycle: SuggestionLifecycle,
        queue: DispatchQueue,
        events: EventDirectory,
        profiles: ProfileDirectory,
        resolver: VisibilityResolver,
        settings: Settings | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.queue = queue
        self.events = events
        self.profiles = profiles
        self.resolver = resolver
        self.settings = settings or get_settings()

    @property
    def store(self):
        return self.lifecycle.store

    # ------------------------------------------------------------------
    # Generation requests
    # ------------------------------------------------------------------

    async def request_suggestion(
        self,
        event: EditorialEvent,
        requester: Profile,
        force: bool = False,
        now: int | None = None,
    ) -> CreatedAttempt:
        """Open an attempt for ``event`` and hand it to the generation worker.

        Refused while the latest attempt for the event was updated within the
        cooldown window, unless ``force`` is set (explicit regeneration).

        Raises:
            EventAccessDeniedError: requester cannot access the event
            SuggestionCooldownError: recent suggestion exists and force is False
            StoreUnavailableError: attempt store or dispatch queue unreachable
        """
        if not can_access_event(requester, event):
            raise EventAccessDeniedError(event.id, requester.id)

        now = now if now is not None else now_ms()
        cooldown_ms = self.settings.suggestion_cooldown_seconds * 1000

        if not force and cooldown_ms > 0:
            latest = await self.store.latest_for_event(event.id)
            if latest is not None and latest.updated_at > now - cooldown_ms:
                retry_after = max(1, (latest.updated_at + cooldown_ms - now + 999) // 1000)
                logger.info(
                    "suggestion_request_cooldown",
                    event_id=event.id,
                    profile_id=requester.id,
                    retry_after_seconds=retry_after,
                )
                raise SuggestionCooldownError(event.id, retry_after)

        model = self.settings.suggestion_model.strip() or "gpt-4o-mini"
        prompt_version = self.settings.suggestion_prompt_version
        input_summary = build_input_summary(event)

        created = await self.lifecycle.create_suggestion_attempt(
            event_id=event.id,
            created_by_profile_id=requester.id,
            model=model,
            prompt_version=prompt_version,
            input_summary=input_summary,
            now=now,
        )

        job = GenerationJob(
            suggestion_id=created.suggestion_id,
            model=model,
            prompt_version=prompt_version,
            input_summary=input_summary,
            prompt=build_prompt(event),
        )
        try:
            await self.queue.push(job)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            # Nobody will ever call back for this attempt: close it now
            logger.error(
                "suggestion_dispatch_failed",
                suggestion_id=created.suggestion_id,
                event_id=event.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await self.lifecycle.finish_suggestion_attempt(
                created.suggestion_id,
                SuggestionStatus.ERROR,
                error_message=DISPATCH_FAILED_MESSAGE,
            )
            raise StoreUnavailableError(DISPATCH_FAILED_MESSAGE) from exc

        logger.info(
            "suggestion_requested",
            suggestion_id=created.suggestion_id,
            event_id=event.id,
            profile_id=requester.id,
            forced=force,
        )
        return created

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    async def present(self, attempts: list[SuggestionAttempt], viewer: Profile) -> list[SuggestionAttemptView]:
        """Shape attempts for ``viewer``, hiding creators outside the viewer's scope."""
        if not attempts:
            return []
        access_ids = await self.profiles.access_profile_ids(viewer, self.resolver)
        return [
            SuggestionAttemptView.from_attempt(
                attempt,
                visible_creator_id(viewer, access_ids, attempt.created_by_profile_id),
            )
            for attempt in attempts
        ]

    async def get_latest_suggestion(self, event: EditorialEvent | None, viewer: Profile) -> SuggestionAttemptView | None:
        """Latest attempt for the event page.

        Missing or inaccessible events read as None; the page renders an
        empty state instead of an error.
        """
        if event is None or not can_access_event(viewer, event):
            return None
        latest = await self.store.latest_for_event(event.id)
        if latest is None:
            return None
        return (await self.present([latest], viewer))[0]

    async def list_history(self, event: EditorialEvent, viewer: Profile) -> list[SuggestionAttemptView]:
        """Every attempt for an event, oldest first.

        Raises:
            EventAccessDeniedError: viewer cannot access the event
        """
        if not can_access_event(viewer, event):
            raise EventAccessDeniedError(event.id, viewer.id)
        return await self.present(await self.store.list_by_event(event.id), viewer)

    async def get_attempt(self, suggestion_id: str, viewer: Profile) -> SuggestionAttemptView:
        """Single attempt, gated on access to the event it belongs to.

        Raises:
            AttemptNotFoundError: unknown id
            EventAccessDeniedError: viewer cannot access the attempt's event
        """
        attempt = await self.store.get_by_id(suggestion_id)
        event = await self.events.get(attempt.event_id)
        if event is None or not can_access_event(viewer, event):
            raise EventAccessDeniedError(attempt.event_id, viewer.id)
        return (await self.present([attempt], viewer))[0]

    async def list_events_with_suggestion_meta(
        self,
        events: list[EditorialEvent],
        viewer: Profile,
    ) -> list[EventSuggestionSummary]:
        """Visible events in calendar order, each with its latest suggestion status."""
        visible = sorted((e for e in events if can_access_event(viewer, e)), key=event_sort_key)

        latest_by_event = await self.store.latest_for_events([e.id for e in visible])

        summaries = []
        for event in visible:
            latest = latest_by_event[event.id]
            meta = (
                SuggestionMeta(has_suggestion=True, updated_at=latest.updated_at, status=latest.status)
                if latest is not None
                else SuggestionMeta(has_suggestion=False)
            )
            summaries.append(
                EventSuggestionSummary(
                    event_id=event.id,
                    title=event.title,
                    prep_start_date=event.prep_start_date,
                    start_date=event.start_date,
                    suggestion=meta,
                )
            )
        return summaries

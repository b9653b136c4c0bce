"""AI suggestion API routes: request generation, read history, worker callback."""

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from editorial_ai.core.auth import require_profile
from editorial_ai.core.config import get_settings
from editorial_ai.core.exceptions import (
    AttemptNotFoundError,
    EventAccessDeniedError,
    InvalidTransitionError,
    StoreUnavailableError,
    SuggestionCooldownError,
    SuggestionPipelineError,
)
from editorial_ai.db.redis import get_redis
from editorial_ai.domain.events import EditorialEvent, EventDirectory
from editorial_ai.domain.profiles import Profile, ProfileDirectory
from editorial_ai.domain.visibility import VisibilityResolver
from editorial_ai.services.suggestion_service import SuggestionService
from editorial_ai.suggestions.schemas import (
    EventSuggestionSummary,
    FinishSuggestionRequest,
    SuggestionAttemptView,
    SuggestionStatus,
)
from editorial_ai.suggestions.state_machine import SuggestionLifecycle
from editorial_ai.suggestions.store import AttemptStore
from editorial_ai.suggestions.worker import DispatchQueue

router = APIRouter()


class RequestSuggestionBody(BaseModel):
    """Request body for suggestion generation."""

    force: bool = False  # "Regenerate": bypass the cooldown


class RequestSuggestionResponse(BaseModel):
    suggestion_id: str
    status: SuggestionStatus


class FinishSuggestionResponse(BaseModel):
    suggestion_id: str


def get_suggestion_service(redis=Depends(get_redis)) -> SuggestionService:
    settings = get_settings()
    return SuggestionService(
        lifecycle=SuggestionLifecycle(AttemptStore(redis)),
        queue=DispatchQueue(redis),
        events=EventDirectory(redis),
        profiles=ProfileDirectory(redis),
        resolver=VisibilityResolver(settings.shared_contact_identifiers),
        settings=settings,
    )


def require_worker(x_worker_token: str | None = Header(default=None)) -> None:
    """Worker callbacks must present the shared token when one is configured."""
    expected = get_settings().worker_callback_token
    if expected and not secrets.compare_digest(x_worker_token or "", expected):
        raise HTTPException(status_code=401, detail="Invalid worker token")


def to_http_error(exc: SuggestionPipelineError) -> HTTPException:
    """Map pipeline errors onto HTTP status codes."""
    if isinstance(exc, AttemptNotFoundError):
        return HTTPException(status_code=404, detail="Suggestion not found")
    if isinstance(exc, EventAccessDeniedError):
        return HTTPException(status_code=404, detail="Event not found")
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, SuggestionCooldownError):
        return HTTPException(
            status_code=429,
            detail=str(exc),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(status_code=503, detail="Suggestion store unavailable")
    return HTTPException(status_code=500, detail="Suggestion pipeline error")


async def _load_event(service: SuggestionService, event_id: str) -> EditorialEvent:
    event = await service.events.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/events/suggestion-meta", response_model=list[EventSuggestionSummary])
async def list_events_with_suggestion_meta(
    profile: Profile = Depends(require_profile),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Visible events in calendar order with their latest suggestion status."""
    try:
        return await service.list_events_with_suggestion_meta(await service.events.list_events(), profile)
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc


@router.post(
    "/events/{event_id}/suggestions",
    status_code=202,
    response_model=RequestSuggestionResponse,
)
async def request_suggestion(
    event_id: str,
    body: RequestSuggestionBody | None = None,
    profile: Profile = Depends(require_profile),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Open a suggestion attempt and dispatch it to the generation worker.

    Raises:
        HTTPException(404): event missing or not accessible
        HTTPException(429): recent suggestion exists and force is False
        HTTPException(503): store or dispatch queue unavailable
    """
    event = await _load_event(service, event_id)
    force = body.force if body is not None else False
    try:
        created = await service.request_suggestion(event, profile, force=force)
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc
    return RequestSuggestionResponse(suggestion_id=created.suggestion_id, status=SuggestionStatus.GENERATING)


@router.get("/events/{event_id}/suggestions", response_model=list[SuggestionAttemptView])
async def list_suggestion_history(
    event_id: str,
    profile: Profile = Depends(require_profile),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Every attempt for the event, oldest first."""
    event = await _load_event(service, event_id)
    try:
        return await service.list_history(event, profile)
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc


@router.get("/events/{event_id}/suggestions/latest", response_model=SuggestionAttemptView | None)
async def get_latest_suggestion(
    event_id: str,
    profile: Profile = Depends(require_profile),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Latest attempt for the event page; null when there is none or the event is not visible."""
    try:
        return await service.get_latest_suggestion(await service.events.get(event_id), profile)
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc


@router.get("/suggestions/{suggestion_id}", response_model=SuggestionAttemptView)
async def get_suggestion(
    suggestion_id: str,
    profile: Profile = Depends(require_profile),
    service: SuggestionService = Depends(get_suggestion_service),
):
    try:
        return await service.get_attempt(suggestion_id, profile)
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc


@router.post(
    "/suggestions/{suggestion_id}/finish",
    response_model=FinishSuggestionResponse,
    dependencies=[Depends(require_worker)],
)
async def finish_suggestion(
    suggestion_id: str,
    body: FinishSuggestionRequest,
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Generation worker callback: close the attempt as ready or error.

    Raises:
        HTTPException(404): unknown suggestion id
        HTTPException(409): status is "generating" or the attempt is already closed
    """
    try:
        finished = await service.lifecycle.finish_suggestion_attempt(
            suggestion_id,
            body.status,
            result_json=body.result_json,
            error_message=body.error_message,
        )
    except SuggestionPipelineError as exc:
        raise to_http_error(exc) from exc
    return FinishSuggestionResponse(suggestion_id=finished.suggestion_id)

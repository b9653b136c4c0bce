"""Suggestion attempt schemas and lifecycle constants."""

from enum import Enum

from pydantic import BaseModel, Field

# Canonical payload stored on creation, replaced once on the move to READY
EMPTY_RESULT_JSON = "{}"


class SuggestionStatus(str, Enum):
    """Suggestion attempt lifecycle states."""

    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({SuggestionStatus.READY, SuggestionStatus.ERROR})


class SuggestionAttempt(BaseModel):
    """One request-and-response cycle of AI suggestion generation for an event."""

    id: str = ""  # assigned by AttemptStore.insert
    event_id: str
    created_by_profile_id: str
    created_at: int  # epoch milliseconds
    updated_at: int  # epoch milliseconds, never below created_at
    status: SuggestionStatus = SuggestionStatus.GENERATING
    model: str
    prompt_version: str
    input_summary: str
    result_json: str = EMPTY_RESULT_JSON
    error_message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_redis_hash(self) -> dict[str, str]:
        """Flatten to a Redis hash mapping. Absent error_message is omitted, never ''."""
        mapping = {
            "id": self.id,
            "event_id": self.event_id,
            "created_by_profile_id": self.created_by_profile_id,
            "created_at": str(self.created_at),
            "updated_at": str(self.updated_at),
            "status": self.status.value,
            "model": self.model,
            "prompt_version": self.prompt_version,
            "input_summary": self.input_summary,
            "result_json": self.result_json,
        }
        if self.error_message is not None:
            mapping["error_message"] = self.error_message
        return mapping

    @classmethod
    def from_redis_hash(cls, data: dict[str, str]) -> "SuggestionAttempt":
        return cls(
            id=data["id"],
            event_id=data["event_id"],
            created_by_profile_id=data["created_by_profile_id"],
            created_at=int(data["created_at"]),
            updated_at=int(data["updated_at"]),
            status=SuggestionStatus(data["status"]),
            model=data["model"],
            prompt_version=data["prompt_version"],
            input_summary=data["input_summary"],
            result_json=data.get("result_json", EMPTY_RESULT_JSON),
            error_message=data.get("error_message"),
        )


class CreatedAttempt(BaseModel):
    """Result of opening an attempt."""

    suggestion_id: str


class FinishedAttempt(BaseModel):
    """Result of closing an attempt."""

    suggestion_id: str


class GenerationJob(BaseModel):
    """What the generation worker receives for one dispatched attempt."""

    suggestion_id: str
    model: str
    prompt_version: str
    input_summary: str
    prompt: str = ""


class SuggestionMeta(BaseModel):
    """Latest-attempt summary shown next to an event in lists."""

    has_suggestion: bool
    updated_at: int | None = None
    status: SuggestionStatus | None = None


class FinishSuggestionRequest(BaseModel):
    """Worker callback payload."""

    status: SuggestionStatus
    result_json: str | None = None
    error_message: str | None = Field(default=None, max_length=4000)


class SuggestionAttemptView(BaseModel):
    """Attempt as returned to a viewer; creator hidden outside the viewer's scope."""

    id: str
    event_id: str
    created_by_profile_id: str | None
    created_at: int
    updated_at: int
    status: SuggestionStatus
    model: str
    prompt_version: str
    input_summary: str
    result_json: str
    error_message: str | None = None

    @classmethod
    def from_attempt(cls, attempt: SuggestionAttempt, created_by_profile_id: str | None) -> "SuggestionAttemptView":
        return cls(**attempt.model_dump(exclude={"created_by_profile_id"}), created_by_profile_id=created_by_profile_id)


class EventSuggestionSummary(BaseModel):
    """One row of the events list: event id, title, latest suggestion meta."""

    event_id: str
    title: str
    prep_start_date: str
    start_date: str
    suggestion: SuggestionMeta

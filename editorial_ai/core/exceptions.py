class SuggestionPipelineError(Exception):
    """Base exception for the suggestion pipeline."""

    pass


class AttemptNotFoundError(SuggestionPipelineError):
    """Raised when a suggestion attempt id does not exist."""

    def __init__(self, suggestion_id: str):
        self.suggestion_id = suggestion_id
        super().__init__(f"Suggestion attempt '{suggestion_id}' not found")


class InvalidTransitionError(SuggestionPipelineError):
    """Raised when a status transition is not allowed by the lifecycle."""

    def __init__(self, suggestion_id: str | None, from_status: str | None, to_status: str):
        self.suggestion_id = suggestion_id
        self.from_status = from_status
        self.to_status = to_status
        if from_status is None:
            message = f"Cannot finish suggestion attempt into '{to_status}'"
        else:
            message = f"Suggestion attempt '{suggestion_id}' cannot move from '{from_status}' to '{to_status}'"
        super().__init__(message)


class StoreUnavailableError(SuggestionPipelineError):
    """Raised when the backing store cannot be reached."""

    pass


class SuggestionCooldownError(SuggestionPipelineError):
    """Raised when a recent suggestion exists and regeneration was not forced."""

    def __init__(self, event_id: str, retry_after_seconds: int):
        self.event_id = event_id
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"A suggestion for event '{event_id}' was generated recently. "
            f"Wait {retry_after_seconds} seconds or force a regeneration."
        )


class InvalidSuggestionResultError(SuggestionPipelineError):
    """Raised when generator output does not match the expected suggestion shape."""

    pass


class EventAccessDeniedError(SuggestionPipelineError):
    """Raised when a profile asks for suggestions on an event it cannot access."""

    def __init__(self, event_id: str, profile_id: str):
        self.event_id = event_id
        self.profile_id = profile_id
        super().__init__(f"Profile '{profile_id}' cannot access event '{event_id}'")

"""Suggestion attempt lifecycle: open an attempt, close it exactly once."""

import time

import structlog

from editorial_ai.core.exceptions import InvalidTransitionError
from editorial_ai.suggestions.schemas import (
    EMPTY_RESULT_JSON,
    CreatedAttempt,
    FinishedAttempt,
    SuggestionAttempt,
    SuggestionStatus,
)
from editorial_ai.suggestions.store import AttemptStore

logger = structlog.get_logger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def normalize_error_message(message: str | None) -> str | None:
    """Trim an error message; blank after trimming means absent."""
    if message is None:
        return None
    trimmed = message.strip()
    return trimmed or None


class SuggestionLifecycle:
    """Manages suggestion attempt transitions with validation."""

    # Valid state transitions
    TRANSITIONS = {
        SuggestionStatus.GENERATING: [SuggestionStatus.READY, SuggestionStatus.ERROR],
        SuggestionStatus.READY: [],  # Terminal state
        SuggestionStatus.ERROR: [],  # Terminal state
    }

    def __init__(self, store: AttemptStore):
        self.store = store

    @classmethod
    def can_transition(cls, current: SuggestionStatus, target: SuggestionStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, [])

    async def create_suggestion_attempt(
        self,
        event_id: str,
        created_by_profile_id: str,
        model: str,
        prompt_version: str,
        input_summary: str,
        now: int | None = None,
    ) -> CreatedAttempt:
        """Open a new attempt in GENERATING with the empty result payload.

        Other in-flight attempts for the same event are left alone; each
        request gets an independent attempt. The returned id is readable as
        soon as this call returns.

        Args:
            event_id: Editorial event the attempt belongs to
            created_by_profile_id: Requesting profile
            model: Generation model identifier
            prompt_version: Prompt template version
            input_summary: Snapshot of the input context
            now: Current time in epoch ms (for deterministic testing)

        Returns:
            CreatedAttempt with the new suggestion_id
        """
        ts = now if now is not None else now_ms()

        suggestion_id = await self.store.insert(
            SuggestionAttempt(
                event_id=event_id,
                created_by_profile_id=created_by_profile_id,
                created_at=ts,
                updated_at=ts,
                status=SuggestionStatus.GENERATING,
                model=model,
                prompt_version=prompt_version,
                input_summary=input_summary,
                result_json=EMPTY_RESULT_JSON,
                error_message=None,
            )
        )

        logger.info(
            "suggestion_attempt_created",
            suggestion_id=suggestion_id,
            event_id=event_id,
            created_by_profile_id=created_by_profile_id,
            model=model,
            prompt_version=prompt_version,
        )
        return CreatedAttempt(suggestion_id=suggestion_id)

    async def finish_suggestion_attempt(
        self,
        suggestion_id: str,
        status: SuggestionStatus,
        result_json: str | None = None,
        error_message: str | None = None,
        now: int | None = None,
    ) -> FinishedAttempt:
        """Close an attempt into READY or ERROR.

        ``result_json`` is applied only on READY and only when given;
        ``error_message`` only on ERROR, where a blank message is stored as
        absent. Finishing an attempt that is already terminal is
        rejected; the status check and the write happen in one store
        transaction.

        Raises:
            InvalidTransitionError: target is unknown or GENERATING, or the attempt is already terminal
            AttemptNotFoundError: suggestion_id does not exist
        """
        try:
            status = SuggestionStatus(status)
        except ValueError:
            logger.warning(
                "suggestion_transition_rejected",
                suggestion_id=suggestion_id,
                to_status=str(status),
                reason="unknown_status",
            )
            raise InvalidTransitionError(suggestion_id, None, str(status)) from None
        if status == SuggestionStatus.GENERATING:
            logger.warning(
                "suggestion_transition_rejected",
                suggestion_id=suggestion_id,
                to_status=status.value,
                reason="finish_into_generating",
            )
            raise InvalidTransitionError(suggestion_id, None, status.value)

        ts = now if now is not None else now_ms()
        fields: dict = {"status": status}
        # The payload is only replaced on READY, the message only set on ERROR
        if status == SuggestionStatus.READY and result_json is not None:
            fields["result_json"] = result_json
        if status == SuggestionStatus.ERROR and error_message is not None:
            fields["error_message"] = normalize_error_message(error_message)

        def check_transition(current: SuggestionAttempt) -> None:
            if not self.can_transition(current.status, status):
                logger.warning(
                    "suggestion_transition_rejected",
                    suggestion_id=suggestion_id,
                    from_status=current.status.value,
                    to_status=status.value,
                    reason="already_terminal",
                )
                raise InvalidTransitionError(suggestion_id, current.status.value, status.value)
            # Clock skew between writers must never put updated_at before created_at
            fields["updated_at"] = max(ts, current.created_at)

        updated = await self.store.patch(suggestion_id, fields, precondition=check_transition)

        logger.info(
            "suggestion_attempt_finished",
            suggestion_id=suggestion_id,
            event_id=updated.event_id,
            status=updated.status.value,
            has_error_message=updated.error_message is not None,
            duration_ms=updated.updated_at - updated.created_at,
        )
        return FinishedAttempt(suggestion_id=suggestion_id)

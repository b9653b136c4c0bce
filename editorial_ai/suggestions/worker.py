"""Generation worker boundary: dispatch queue, generator protocol, job runner.

An attempt is opened by the request path, then a GenerationJob is pushed on
a Redis list. A worker pops it, runs a SuggestionGenerator, and closes the
attempt exactly once, with the cleaned result (READY) or the failure
message (ERROR).
"""

from typing import Protocol, runtime_checkable

import structlog
from redis.asyncio import Redis

from editorial_ai.core.exceptions import InvalidTransitionError, SuggestionPipelineError
from editorial_ai.domain.suggestion_content import parse_suggestion_result
from editorial_ai.suggestions.schemas import GenerationJob, SuggestionStatus
from editorial_ai.suggestions.state_machine import SuggestionLifecycle

logger = structlog.get_logger(__name__)

DEFAULT_GENERATION_ERROR = "AI generation failed."


@runtime_checkable
class SuggestionGenerator(Protocol):
    """Produces the raw model output for one generation job.

    Implementations own the model call. They raise on failure; the message
    of the raised exception becomes the attempt's error message.
    """

    async def generate(self, job: GenerationJob) -> str:
        ...


class DispatchQueue:
    """FIFO of generation jobs waiting for a worker (Redis list)."""

    QUEUE_KEY = "suggestions:dispatch"

    def __init__(self, redis: Redis):
        self.redis = redis

    async def push(self, job: GenerationJob) -> int:
        """Enqueue a job. Returns the queue length after the push."""
        return await self.redis.rpush(self.QUEUE_KEY, job.model_dump_json())

    async def pop(self, timeout: float | None = None) -> GenerationJob | None:
        """Dequeue the oldest job, optionally blocking up to ``timeout`` seconds."""
        if timeout:
            item = await self.redis.blpop([self.QUEUE_KEY], timeout=timeout)
            raw = item[1] if item else None
        else:
            raw = await self.redis.lpop(self.QUEUE_KEY)
        if raw is None:
            return None
        return GenerationJob.model_validate_json(raw)

    async def length(self) -> int:
        return await self.redis.llen(self.QUEUE_KEY)


async def run_generation_job(
    job: GenerationJob,
    generator: SuggestionGenerator,
    lifecycle: SuggestionLifecycle,
) -> SuggestionStatus:
    """Run one job and close its attempt. Returns the attempt's terminal status.

    Generator and validation failures close the attempt as ERROR. Failures
    of the finish call itself propagate to the caller (the worker's own
    delivery mechanism decides whether to retry).
    """
    log = logger.bind(suggestion_id=job.suggestion_id, model=job.model, prompt_version=job.prompt_version)

    try:
        raw = await generator.generate(job)
        result_json = parse_suggestion_result(raw)
    except Exception as exc:
        message = str(exc).strip() or DEFAULT_GENERATION_ERROR
        log.warning("suggestion_generation_failed", error=message, error_type=type(exc).__name__)
        try:
            await lifecycle.finish_suggestion_attempt(
                job.suggestion_id,
                SuggestionStatus.ERROR,
                error_message=message,
            )
        except InvalidTransitionError:
            # Already closed elsewhere (e.g. the staleness sweep)
            log.info("suggestion_already_closed", attempted_status=SuggestionStatus.ERROR.value)
            return (await lifecycle.store.get_by_id(job.suggestion_id)).status
        return SuggestionStatus.ERROR

    try:
        await lifecycle.finish_suggestion_attempt(
            job.suggestion_id,
            SuggestionStatus.READY,
            result_json=result_json,
        )
    except InvalidTransitionError:
        log.info("suggestion_already_closed", attempted_status=SuggestionStatus.READY.value)
        return (await lifecycle.store.get_by_id(job.suggestion_id)).status

    log.info("suggestion_generation_completed", result_bytes=len(result_json))
    return SuggestionStatus.READY


async def process_next_job(
    queue: DispatchQueue,
    generator: SuggestionGenerator,
    lifecycle: SuggestionLifecycle,
    timeout: float | None = None,
) -> bool:
    """Pop one job and run it. Returns True if a job was processed, False if queue empty."""
    job = await queue.pop(timeout=timeout)
    if job is None:
        return False

    try:
        await run_generation_job(job, generator, lifecycle)
    except SuggestionPipelineError as exc:
        logger.error(
            "suggestion_job_finish_failed",
            suggestion_id=job.suggestion_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise
    return True

"""Staleness reconciliation for attempts stuck in GENERATING.

A worker that dies mid-generation never calls back, which would leave its
attempt GENERATING forever. The sweep closes such attempts as ERROR with a
synthetic timeout message. It goes through the same guarded finish path as
the worker, so an attempt the worker closed in the meantime is left alone.

Runs as an asyncio.Task from the application lifespan (StaleAttemptSweeper).
"""

import asyncio

import structlog

from editorial_ai.core.exceptions import AttemptNotFoundError, InvalidTransitionError, StoreUnavailableError
from editorial_ai.suggestions.schemas import SuggestionStatus
from editorial_ai.suggestions.state_machine import SuggestionLifecycle, now_ms

logger = structlog.get_logger(__name__)

STALE_ATTEMPT_MESSAGE = "Generation timed out"


async def reconcile_stale_attempts(
    lifecycle: SuggestionLifecycle,
    stale_after_seconds: int,
    now: int | None = None,
) -> int:
    """Close every attempt created more than ``stale_after_seconds`` ago that is still generating.

    Args:
        lifecycle: Lifecycle controller used to close the attempts
        stale_after_seconds: Age threshold
        now: Current time in epoch ms (for deterministic testing)

    Returns:
        Number of attempts moved to ERROR
    """
    now = now if now is not None else now_ms()
    cutoff = now - stale_after_seconds * 1000

    candidates = await lifecycle.store.list_in_flight(created_before=cutoff)
    if not candidates:
        return 0

    closed = 0
    for suggestion_id in candidates:
        try:
            await lifecycle.finish_suggestion_attempt(
                suggestion_id,
                SuggestionStatus.ERROR,
                error_message=STALE_ATTEMPT_MESSAGE,
                now=now,
            )
        except (InvalidTransitionError, AttemptNotFoundError) as exc:
            # Closed by the worker between the scan and the patch
            logger.debug("stale_attempt_skipped", suggestion_id=suggestion_id, reason=type(exc).__name__)
            continue
        closed += 1

    logger.info("stale_attempts_reconciled", closed=closed, scanned=len(candidates), cutoff=cutoff)
    return closed


class StaleAttemptSweeper:
    """Periodic driver for reconcile_stale_attempts.

    Usage:
        sweeper = StaleAttemptSweeper(lifecycle, stale_after_seconds=900, interval_seconds=60)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, lifecycle: SuggestionLifecycle, stale_after_seconds: int, interval_seconds: float) -> None:
        self.lifecycle = lifecycle
        self.stale_after_seconds = stale_after_seconds
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """Sweep every ``interval_seconds`` until cancelled.

        A failed round is logged and skipped; the next round tries again.
        """
        logger.info(
            "stale_sweeper_started",
            stale_after_seconds=self.stale_after_seconds,
            interval_seconds=self.interval_seconds,
        )
        while True:
            try:
                await reconcile_stale_attempts(self.lifecycle, self.stale_after_seconds)
            except StoreUnavailableError as exc:
                logger.warning("stale_sweep_skipped", error=str(exc))
            except Exception as exc:
                logger.warning(
                    "stale_sweep_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.warning("stale_sweeper_exited_with_error", error=str(exc), error_type=type(exc).__name__)
        self._task = None
        logger.info("stale_sweeper_stopped")

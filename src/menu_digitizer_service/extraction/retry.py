"""Bounded retry combinator for extraction attempts."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from menu_digitizer_service.extraction.errors import ExtractionExhaustedError, MenuExtractionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retries(
    max_attempts: int,
    attempt: Callable[[int], Awaitable[T]],
    on_failure: Callable[[int, MenuExtractionError], None] | None = None,
) -> T:
    """Run `attempt` until it succeeds or `max_attempts` runs have failed.

    Attempts run strictly one after another with no delay in between. Only
    MenuExtractionError is retried; any other exception, including
    cancellation, propagates immediately.

    Args:
        max_attempts: Upper bound on the number of attempts (>= 1)
        attempt: Coroutine factory called with the 1-based attempt number
        on_failure: Optional callback invoked with each recorded failure

    Returns:
        The value of the first successful attempt

    Raises:
        ExtractionExhaustedError: Every attempt failed; carries the last error
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: MenuExtractionError | None = None
    for attempt_number in range(1, max_attempts + 1):
        try:
            return await attempt(attempt_number)
        except MenuExtractionError as e:
            last_error = e
            logger.warning(
                f"Extraction attempt {attempt_number}/{max_attempts} failed: {e.reason}: {e}"
            )
            if on_failure is not None:
                on_failure(attempt_number, e)

    raise ExtractionExhaustedError(last_error=last_error, attempts=max_attempts)

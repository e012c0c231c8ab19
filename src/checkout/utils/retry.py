"""Bounded retries with exponential backoff for idempotent calls.

Only calls that are safe to repeat go through here: payment verification and
carrier label purchases keyed by order id. Payment capture never does.
"""

import time

import structlog

logger = structlog.get_logger(__name__)


def call_with_retry(
    func,
    *,
    attempts: int,
    backoff_seconds: float,
    retry_on: tuple[type[BaseException], ...],
    operation: str,
    sleep=time.sleep,
):
    """Call ``func`` up to ``attempts`` times, retrying only on ``retry_on``.

    The last transient error is re-raised once every attempt is used; any other
    exception propagates immediately.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as exc:
            if attempt == attempts:
                logger.warning(
                    "Retries exhausted",
                    operation=operation,
                    attempts=attempts,
                    error=str(exc),
                )
                raise
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.info(
                "Retrying after transient failure",
                operation=operation,
                attempt=attempt,
                delay=delay,
                error=str(exc),
            )
            if delay > 0:
                sleep(delay)

"""
Exponential backoff retry for idempotent operations.

Only wrap operations that are safe to repeat (propagating a match,
scoring a match, reading the performance feed). Lineup saves are never
retried here; a rejected save is a user-facing answer, not a fault.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError

from playingxi.config import settings
from playingxi.errors import FeedUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth another attempt: lost connections, lock timeouts, feed hiccups
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (OperationalError, FeedUnavailable)


def with_retry(
    func: Callable[[], T],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
    description: str = "Operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds or attempts run out.

    Args:
        func: Zero-argument callable performing one attempt
        max_attempts: Maximum attempts (default from settings)
        base_delay: Initial delay between attempts (doubles each attempt)
        retry_on: Exception types that trigger another attempt
        description: Description for logging
        sleep: Sleep function (overridable in tests)

    Returns:
        Result of ``func``

    Raises:
        The last exception if all attempts fail, or any exception not in
        ``retry_on`` immediately.
    """
    if max_attempts is None:
        max_attempts = settings.feed_max_retries
    if base_delay is None:
        base_delay = settings.feed_retry_base_delay

    last_error: Optional[BaseException] = None

    for attempt in range(max_attempts):
        try:
            return func()
        except retry_on as e:
            last_error = e

            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                # Jitter to avoid workers retrying in lockstep
                delay += random.uniform(0, base_delay)

                logger.warning(
                    "[Retry %d/%d] %s failed: %s. Retrying in %.1fs...",
                    attempt + 1, max_attempts, description, e, delay,
                )
                sleep(delay)

    logger.error("%s failed after %d attempts: %s", description, max_attempts, last_error)
    raise last_error

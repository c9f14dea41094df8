# src/sources/retry.py

"""Exponential backoff shared by every networked source."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from src.config.settings import Settings
from src.errors import MalformedResponse, SourceUnavailable

logger = logging.getLogger("pharma_prices.retry")

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay to wait after failed attempt ``attempt`` (1-based)."""
    return base_delay * 2 ** (attempt - 1)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    source_name: str,
    max_attempts: int | None = None,
    base_delay: float | None = None,
) -> T:
    """Await ``operation`` until it succeeds or attempts run out.

    The first attempt runs immediately; failed attempt ``n`` is followed
    by a ``base_delay * 2**(n-1)`` second pause (1s, 2s, 4s, ...).

    A ``MalformedResponse`` is raised at once, without retrying.

    Raises:
        SourceUnavailable: every attempt failed.  The last error is
            chained as ``__cause__``.
    """
    attempts = max_attempts or Settings.MAX_RETRIES
    base = base_delay if base_delay is not None else Settings.RETRY_BASE_DELAY
    last_exc: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except MalformedResponse:
            # Same bytes next time; only transport failures are retried
            raise
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "[%s] Attempt %d/%d failed: %s",
                source_name,
                attempt,
                attempts,
                exc,
            )
            if attempt < attempts:
                await asyncio.sleep(backoff_delay(attempt, base))

    raise SourceUnavailable(
        f"{source_name} unavailable after {attempts} attempts",
        context={"source": source_name, "attempts": attempts},
    ) from last_exc

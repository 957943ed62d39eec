"""Retry decisions and backoff for the Notion transport.

* :func:`should_retry` -- is a failed request worth another attempt?
* :func:`compute_backoff` -- how long to wait before it.

Only the transport retries.  The fetcher and the generator treat whatever
the transport raises as final for the page at hand.
"""

from __future__ import annotations

import random

import httpx

# Statuses Notion documents as transient.
RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Decide whether a request should be retried.

    Parameters
    ----------
    status_code:
        HTTP status of the response, or ``None`` if none was received.
    exception:
        The transport exception, or ``None`` if a response was received.
    attempt:
        The attempt that just failed (0-indexed).
    max_attempts:
        Total attempts allowed, including the first.
    """
    if attempt + 1 >= max_attempts:
        return False
    if exception is not None:
        return isinstance(exception, RETRYABLE_EXCEPTIONS)
    if status_code is not None:
        return status_code in RETRYABLE_STATUSES
    return False


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Delay in seconds before the next attempt.

    A server-supplied ``Retry-After`` wins; otherwise the delay is
    ``base * 2**attempt`` capped at *maximum*.  With *jitter* the delay is
    scaled to a random 50-100 % of its value.
    """
    if retry_after is not None:
        delay = retry_after
    else:
        delay = min(base * (2 ** attempt), maximum)

    if jitter:
        delay *= 0.5 + random.random() * 0.5

    return delay

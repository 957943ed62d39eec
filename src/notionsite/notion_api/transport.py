"""HTTP transport for the Notion API.

Request lifecycle:

1. Acquire a token-bucket slot (wait if needed).
2. Send the request with auth and version headers.
3. On ``2xx`` -- return the parsed JSON body.
4. On ``429`` -- honour ``Retry-After``, sleep, retry.
5. On ``5xx`` / network error -- exponential backoff, retry.
6. On any other ``4xx`` -- raise the matching typed error immediately.
7. When attempts run out -- raise :class:`NotionSiteRetryExhaustedError`
   (or :class:`NotionSiteNetworkError` for a final network failure).
"""

from __future__ import annotations

import json as _json
import sys
import time
from collections.abc import Iterator
from typing import Any

import httpx

from notionsite.config import NotionSiteConfig
from notionsite.errors import (
    NotionSiteAuthError,
    NotionSiteNetworkError,
    NotionSiteNotFoundError,
    NotionSitePermissionError,
    NotionSiteRetryExhaustedError,
    NotionSiteValidationError,
)
from notionsite.observability import NoopMetricsHook, get_logger
from notionsite.utils.redact import redact

from .rate_limit import TokenBucket
from .retries import RETRYABLE_STATUSES, compute_backoff, should_retry

log = get_logger("notionsite.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the typed error for a non-retryable 4xx response."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    notion_message = body.get("message", response.text[:500])
    notion_code = body.get("code", "")
    ctx: dict[str, Any] = {"status_code": status, "notion_code": notion_code}

    if status == 401:
        raise NotionSiteAuthError(
            message=f"Authentication failed on {method} {path}: {notion_message}",
            context=ctx,
        )
    if status == 403:
        raise NotionSitePermissionError(
            message=f"Permission denied on {method} {path}: {notion_message}",
            context={**ctx, "operation": f"{method} {path}"},
        )
    if status == 404:
        raise NotionSiteNotFoundError(
            message=f"Resource not found on {method} {path}: {notion_message}",
            context={**ctx, "path": path},
        )
    raise NotionSiteValidationError(
        message=f"Client error {status} on {method} {path}: {notion_message}",
        context={**ctx, "body": body},
    )


def _dump_exchange(
    config: NotionSiteConfig,
    method: str,
    response: httpx.Response,
    json_payload: Any,
) -> None:
    """Write a redacted dump of the request/response to stderr."""
    if not config.debug_dump_payload:
        return
    try:
        resp_body: Any = response.json()
    except ValueError:
        resp_body = response.text[:1000]
    dump: dict[str, Any] = {
        "method": method,
        "url": str(response.url),
        "response_status": response.status_code,
        "response_body": resp_body,
    }
    if json_payload is not None:
        dump["request_body"] = json_payload
    print(
        _json.dumps(redact(dump, config.token), indent=2, default=str),
        file=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class NotionTransport:
    """Synchronous HTTP transport with auth, retry, and rate limiting.

    Safe to share between the generator's worker threads.

    Parameters
    ----------
    config:
        Controls headers, pacing, retries, timeouts and proxying.
    client:
        Optional pre-built :class:`httpx.Client` (tests pass one backed by
        :class:`httpx.MockTransport`).  Must already carry ``base_url``.
    """

    def __init__(
        self,
        config: NotionSiteConfig,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._bucket = TokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = client or httpx.Client(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.notion_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    # -- public API --------------------------------------------------------

    def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an HTTP request against the Notion API.

        Parameters
        ----------
        method:
            HTTP method (``GET``, ``POST``, ``PATCH``).
        path:
            API path relative to ``base_url`` (e.g. ``/pages/<id>``).
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``params=``).

        Returns
        -------
        dict
            Parsed JSON response body.

        Raises
        ------
        NotionSiteAuthError
            On 401 responses.
        NotionSitePermissionError
            On 403 responses.
        NotionSiteNotFoundError
            On 404 responses.
        NotionSiteValidationError
            On 400 and other non-retryable 4xx responses.
        NotionSiteRetryExhaustedError
            When all attempts failed with retryable statuses.
        NotionSiteNetworkError
            When the final attempt failed at the transport level.
        """
        max_attempts = self._config.retry_max_attempts
        last_status: int | None = None
        json_payload = kwargs.get("json")
        tags = {"method": method, "path": path}

        for attempt in range(max_attempts):
            wait = self._bucket.acquire()
            if wait > 0:
                self._metrics.timing("notionsite.rate_limit_wait_ms", wait * 1000, tags=tags)

            t0 = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                self._metrics.increment(
                    "notionsite.requests_total", tags={**tags, "status": "error"},
                )
                log.warning(
                    "Request network error",
                    extra={"extra_fields": {
                        "op": "request", **tags,
                        "attempt": attempt + 1, "error": str(exc),
                    }},
                )
                if not should_retry(None, exc, attempt, max_attempts):
                    raise NotionSiteNetworkError(
                        message=f"Network error on {method} {path}: {exc}",
                        context={"url": path, "attempt": attempt + 1},
                        cause=exc,
                    ) from exc
                self._metrics.increment(
                    "notionsite.retries_total", tags={**tags, "reason": "network_error"},
                )
                time.sleep(self._backoff(attempt))
                continue

            elapsed_ms = (time.monotonic() - t0) * 1000
            last_status = response.status_code
            status_tags = {**tags, "status": str(response.status_code)}
            self._metrics.increment("notionsite.requests_total", tags=status_tags)
            self._metrics.timing("notionsite.request_duration_ms", elapsed_ms, tags=status_tags)
            _dump_exchange(self._config, method, response, json_payload)

            if 200 <= response.status_code < 300:
                if response.status_code == 204 or not response.content:
                    return {}
                result: dict = response.json()
                return result

            if response.status_code not in RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)

            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            retry_after: float | None = None
            reason = "server_error"
            if response.status_code == 429:
                retry_after = _parse_retry_after(response)
                reason = "rate_limited"
                self._metrics.increment("notionsite.rate_limited_total", tags=tags)
                log.warning(
                    "Rate limited by Notion API",
                    extra={"extra_fields": {
                        "op": "request", **tags, "status_code": 429,
                        "retry_after": retry_after, "attempt": attempt + 1,
                    }},
                )

            self._metrics.increment("notionsite.retries_total", tags={**tags, "reason": reason})
            time.sleep(self._backoff(attempt, retry_after))

        raise NotionSiteRetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context={"attempts": max_attempts, "last_status_code": last_status},
        )

    def paginate(
        self,
        path: str,
        method: str = "POST",
        page_size: int | None = None,
        **kwargs: Any,
    ) -> Iterator[dict]:
        """Auto-paginate a Notion list endpoint, yielding each result item.

        Cursors are threaded sequentially.  Iteration stops when the
        response reports ``has_more`` false, returns zero results, or
        carries no ``next_cursor``.

        Parameters
        ----------
        path:
            API path to paginate (e.g. ``/databases/<id>/query``).
        method:
            ``POST`` puts ``start_cursor``/``page_size`` in the JSON body,
            anything else puts them in the query string.
        page_size:
            Items per round.  Defaults to ``config.page_size``.
        **kwargs:
            Forwarded to :meth:`request`.
        """
        size = page_size or self._config.page_size
        cursor: str | None = None

        while True:
            if method.upper() in ("POST", "PATCH"):
                body: dict = dict(kwargs.get("json") or {})
                body["page_size"] = size
                if cursor is not None:
                    body["start_cursor"] = cursor
                kwargs["json"] = body
            else:
                params: dict = dict(kwargs.get("params") or {})
                params["page_size"] = size
                if cursor is not None:
                    params["start_cursor"] = cursor
                kwargs["params"] = params

            data = self.request(method, path, **kwargs)
            results = data.get("results", [])
            yield from results

            if not results or not data.get("has_more", False):
                break
            cursor = data.get("next_cursor")
            if cursor is None:
                break

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> NotionTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _backoff(self, attempt: int, retry_after: float | None = None) -> float:
        return compute_backoff(
            attempt,
            base=self._config.retry_base_delay,
            maximum=self._config.retry_max_delay,
            jitter=self._config.retry_jitter,
            retry_after=retry_after,
        )

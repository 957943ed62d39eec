"""Metrics hook protocol and no-op default implementation.

notion-site emits counters and timings at the points that matter for a
publishing run: API requests, retries, pagination rounds, media downloads
and per-page outcomes.  By default a :class:`NoopMetricsHook` is used so
there is zero overhead.  Supply any object satisfying :class:`MetricsHook`
through ``NotionSiteConfig.metrics`` to route them elsewhere.

Emitted metric names:

* ``notionsite.requests_total``            -- counter
* ``notionsite.retries_total``             -- counter
* ``notionsite.rate_limited_total``        -- counter
* ``notionsite.request_duration_ms``       -- timing
* ``notionsite.rate_limit_wait_ms``        -- timing
* ``notionsite.fetch_rounds_total``        -- counter
* ``notionsite.media_download_total``      -- counter (tag ``status``)
* ``notionsite.pages_total``               -- counter (tag ``status``)
* ``notionsite.page_render_duration_ms``   -- timing
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric.

        Parameters
        ----------
        name:
            Dot-delimited metric name, e.g. ``"notionsite.requests_total"``.
        value:
            Amount to increment by.  Defaults to ``1``.
        tags:
            Optional key-value tags for the data point.
        """
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

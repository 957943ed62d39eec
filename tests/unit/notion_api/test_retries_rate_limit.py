"""Unit tests for retries.py and rate_limit.py."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import httpx
import pytest

from notionsite.notion_api.rate_limit import TokenBucket
from notionsite.notion_api.retries import compute_backoff, should_retry

# ---------------------------------------------------------------------------
# should_retry
# ---------------------------------------------------------------------------


class TestShouldRetry:
    def test_returns_false_on_last_attempt(self):
        assert should_retry(500, None, attempt=2, max_attempts=3) is False

    def test_returns_false_when_attempt_exceeds_max(self):
        assert should_retry(429, None, attempt=5, max_attempts=3) is False

    def test_timeout_is_retryable(self):
        exc = httpx.ReadTimeout("timed out", request=MagicMock())
        assert should_retry(None, exc, attempt=0, max_attempts=3) is True

    def test_connect_error_is_retryable(self):
        assert should_retry(None, httpx.ConnectError("refused"), attempt=0, max_attempts=3) is True

    def test_other_exception_not_retryable(self):
        assert should_retry(None, ValueError("x"), attempt=0, max_attempts=3) is False

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_transient_statuses_retryable(self, status):
        assert should_retry(status, None, attempt=0, max_attempts=3) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409])
    def test_client_errors_not_retryable(self, status):
        assert should_retry(status, None, attempt=0, max_attempts=3) is False

    def test_nothing_to_judge(self):
        assert should_retry(None, None, attempt=0, max_attempts=3) is False


# ---------------------------------------------------------------------------
# compute_backoff
# ---------------------------------------------------------------------------


class TestComputeBackoff:
    def test_exponential_growth(self):
        delays = [compute_backoff(i, base=1.0, jitter=False) for i in range(4)]
        assert delays == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_maximum(self):
        assert compute_backoff(10, base=1.0, maximum=5.0, jitter=False) == 5.0

    def test_retry_after_wins(self):
        assert compute_backoff(3, base=1.0, jitter=False, retry_after=0.25) == 0.25

    def test_jitter_range(self):
        for _ in range(50):
            delay = compute_backoff(2, base=1.0, jitter=True)
            assert 2.0 <= delay <= 4.0


# ---------------------------------------------------------------------------
# TokenBucket
# ---------------------------------------------------------------------------


class TestTokenBucket:
    def test_invalid_rate(self):
        with pytest.raises(ValueError, match="rate_rps"):
            TokenBucket(rate_rps=0)

    def test_invalid_burst(self):
        with pytest.raises(ValueError, match="burst"):
            TokenBucket(rate_rps=1, burst=0)

    def test_burst_served_without_waiting(self):
        bucket = TokenBucket(rate_rps=1.0, burst=3)
        assert [bucket.acquire() for _ in range(3)] == [0.0, 0.0, 0.0]

    def test_waits_for_deficit(self):
        bucket = TokenBucket(rate_rps=2.0, burst=1)
        with patch("notionsite.notion_api.rate_limit.time.monotonic", return_value=100.0), \
                patch("notionsite.notion_api.rate_limit.time.sleep") as sleep:
            bucket.last_refill = 100.0
            assert bucket.acquire() == 0.0
            wait = bucket.acquire()
        assert wait == pytest.approx(0.5)
        sleep.assert_called_once_with(pytest.approx(0.5))

    def test_shared_between_threads(self):
        bucket = TokenBucket(rate_rps=10_000.0, burst=100)
        waits: list[float] = []

        def worker():
            for _ in range(10):
                waits.append(bucket.acquire())

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(waits) == 50
        assert bucket.tokens <= 100

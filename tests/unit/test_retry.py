"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Unit tests for retry logic utilities.
"""

import pytest

from mrcloud.core.retry import RetryPolicy, retry_async
from mrcloud.exceptions import DecodeError, TransportError


class TestRetryPolicy:
    """Tests for backoff delays."""

    def test_exponential_delays(self):
        policy = RetryPolicy(max_attempts=5, base_delay=0.5, backoff_factor=2.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [0.5, 1.0, 2.0, 4.0]

    def test_constant_delays(self):
        policy = RetryPolicy(base_delay=0.25, backoff_factor=1.0)
        assert policy.delay_for(1) == policy.delay_for(4) == 0.25


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_successful_operation_no_retry(self, recording_sleep):
        """Test that successful operations don't trigger retries."""
        call_count = 0

        async def operation():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await retry_async(operation, "op", sleep=recording_sleep)

        assert result == "success"
        assert call_count == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_transient_failure_with_retry(self, recording_sleep):
        """Test that transient failures trigger retries with backoff."""
        call_count = 0

        async def failing_then_succeeding():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise TransportError("connection reset")
            return "success"

        result = await retry_async(
            failing_then_succeeding,
            "op",
            RetryPolicy(max_attempts=5, base_delay=0.1, backoff_factor=3.0),
            sleep=recording_sleep,
        )

        assert result == "success"
        assert call_count == 3
        assert recording_sleep.delays == pytest.approx([0.1, 0.3])

    @pytest.mark.asyncio
    async def test_permanent_failure_after_max_attempts(self, recording_sleep):
        """Test that the last transient error is raised once attempts are exhausted."""
        call_count = 0

        async def always_failing():
            nonlocal call_count
            call_count += 1
            raise TransportError(f"failure {call_count}")

        with pytest.raises(TransportError, match="failure 3"):
            await retry_async(always_failing, "op", RetryPolicy(max_attempts=3), sleep=recording_sleep)

        assert call_count == 3
        assert len(recording_sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_non_transient_error_propagates_immediately(self, recording_sleep):
        """Test that non-transient errors are not retried."""
        call_count = 0

        async def undecodable():
            nonlocal call_count
            call_count += 1
            raise DecodeError("bad body")

        with pytest.raises(DecodeError):
            await retry_async(undecodable, "op", sleep=recording_sleep)

        assert call_count == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_on_retry_callback(self, recording_sleep):
        seen = []
        attempts = iter([TransportError("a"), TransportError("b"), None])

        async def operation():
            error = next(attempts)
            if error is not None:
                raise error
            return 42

        result = await retry_async(
            operation,
            "op",
            on_retry=lambda attempt, exc: seen.append((attempt, str(exc))),
            sleep=recording_sleep,
        )

        assert result == 42
        assert seen == [(1, "a"), (2, "b")]

    @pytest.mark.asyncio
    async def test_custom_transient_exceptions(self, recording_sleep):
        call_count = 0

        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise ConnectionError("refused")
            return "ok"

        policy = RetryPolicy(transient_exceptions=(ConnectionError,))
        assert await retry_async(flaky, "op", policy, sleep=recording_sleep) == "ok"

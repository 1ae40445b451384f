"""Unit tests for the retry utility."""
from __future__ import annotations

import pytest

from auction_worker.infra.metrics.prometheus import REGISTRY
from auction_worker.utils.retry import RetryError, RetryStrategy, retry


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.unit
class TestRetryDecorator:
    """Test suite for retry decorator."""

    async def test_retry_succeeds_first_attempt(self):
        """Test that retry decorator doesn't retry on success."""
        call_count = 0

        @retry(max_attempts=3)
        async def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = await successful_func()
        assert result == "success"
        assert call_count == 1

    async def test_retry_succeeds_after_retries(self):
        """Test that retry decorator retries until success."""
        call_count = 0
        sleep = SleepRecorder()

        @retry(max_attempts=3, initial_delay=0.01, jitter=False, sleep=sleep)
        async def eventually_successful():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("Not yet")
            return "success"

        result = await eventually_successful()
        assert result == "success"
        assert call_count == 3
        assert len(sleep.delays) == 2

    async def test_retry_fails_after_max_attempts(self):
        """Test that retry raises RetryError after max attempts."""
        call_count = 0

        @retry(max_attempts=3, initial_delay=0.0, jitter=False, operation="always_fails")
        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise ValueError("Always fails")

        before = REGISTRY.get_sample_value(
            "retry_exhausted_total", {"operation": "always_fails"}
        ) or 0.0

        with pytest.raises(RetryError) as exc_info:
            await always_fails()

        assert call_count == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, ValueError)
        assert "after 3 attempts" in str(exc_info.value)
        assert REGISTRY.get_sample_value(
            "retry_exhausted_total", {"operation": "always_fails"}
        ) == before + 1

    async def test_retry_only_retries_specified_exceptions(self):
        """Test that retry only retries specified exception types."""
        call_count = 0

        @retry(max_attempts=3, initial_delay=0.01, exceptions=(ValueError,))
        async def raises_type_error():
            nonlocal call_count
            call_count += 1
            raise TypeError("Not retryable")

        with pytest.raises(TypeError):
            await raises_type_error()

        assert call_count == 1

    async def test_linear_backoff_delays(self):
        """Linear backoff waits initial_delay times the failed attempt number."""
        sleep = SleepRecorder()

        @retry(
            max_attempts=4,
            initial_delay=0.5,
            max_delay=10.0,
            jitter=False,
            backoff="linear",
            sleep=sleep,
        )
        async def always_fails():
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            await always_fails()

        assert sleep.delays == [0.5, 1.0, 1.5]

    async def test_on_retry_receives_failed_attempt_number(self):
        seen: list[tuple[str, int]] = []
        call_count = 0

        @retry(
            max_attempts=3,
            initial_delay=0.0,
            jitter=False,
            on_retry=lambda exc, attempt: seen.append((str(exc), attempt)),
        )
        async def fails_twice():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError(f"fail {call_count}")
            return call_count

        assert await fails_twice() == 3
        assert seen == [("fail 1", 1), ("fail 2", 2)]

    async def test_single_attempt_wraps_first_failure(self):
        @retry(max_attempts=1, exceptions=(ValueError,))
        async def fails():
            raise ValueError("once")

        with pytest.raises(RetryError) as exc_info:
            await fails()

        assert exc_info.value.attempts == 1


@pytest.mark.unit
class TestRetryStrategy:
    def test_exponential_delay_capped(self):
        strategy = RetryStrategy(initial_delay=1.0, max_delay=5.0, jitter=False)

        assert [strategy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_stays_in_range(self):
        strategy = RetryStrategy(initial_delay=1.0, jitter=True, jitter_range=(0.5, 1.5))

        for _ in range(20):
            assert 0.5 <= strategy.delay_for(1) <= 1.5

    def test_retry_if_overrides_exception_types(self):
        strategy = RetryStrategy(exceptions=(ValueError,), retry_if=lambda e: "transient" in str(e))

        assert strategy.should_retry(RuntimeError("transient glitch")) is True
        assert strategy.should_retry(ValueError("permanent")) is False

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError):
            RetryStrategy(max_attempts=0)

    def test_stop_after_delay_exhausts_early(self):
        strategy = RetryStrategy(max_attempts=10, stop_after_delay=1.0)

        assert strategy.is_exhausted(1, elapsed=0.5) is False
        assert strategy.is_exhausted(1, elapsed=1.0) is True
        assert strategy.is_exhausted(10, elapsed=0.0) is True

import asyncio

import pytest

from suppscore.utils.retry import RetryPolicy, exponential_backoff, flat_jitter, run_with_retry


@pytest.mark.asyncio
async def test_retries_on_result_until_budget_is_spent(sleeps):
    calls = []

    async def operation(attempt):
        calls.append(attempt)
        return "rate limited"

    policy = RetryPolicy(
        max_attempts=3,
        retry_on_result=lambda result: result == "rate limited",
        delay=exponential_backoff(1.0),
    )
    result = await run_with_retry(operation, policy, sleep=sleeps)

    assert result == "rate limited"
    assert calls == [1, 2, 3]
    assert sleeps.calls == [1.0, 2.0]


@pytest.mark.asyncio
async def test_stops_at_first_good_result(sleeps):
    async def operation(attempt):
        return attempt

    policy = RetryPolicy(max_attempts=5, retry_on_result=lambda result: result < 2)
    assert await run_with_retry(operation, policy, sleep=sleeps) == 2
    assert len(sleeps.calls) == 1


@pytest.mark.asyncio
async def test_non_retryable_exception_raises_immediately(sleeps):
    calls = []

    async def operation(attempt):
        calls.append(attempt)
        raise KeyError("nope")

    policy = RetryPolicy(max_attempts=3, retry_on_exception=lambda e: isinstance(e, ValueError))
    with pytest.raises(KeyError):
        await run_with_retry(operation, policy, sleep=sleeps)
    assert calls == [1]
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_retryable_exception_then_success(sleeps):
    retried = []

    async def operation(attempt):
        if attempt < 3:
            raise ValueError("transient")
        return "ok"

    policy = RetryPolicy(max_attempts=3, retry_on_exception=lambda e: isinstance(e, ValueError))
    result = await run_with_retry(
        operation, policy, sleep=sleeps, on_retry=lambda attempt, error: retried.append(attempt)
    )

    assert result == "ok"
    assert retried == [1, 2]


@pytest.mark.asyncio
async def test_cancellation_is_never_retried(sleeps):
    calls = []

    async def operation(attempt):
        calls.append(attempt)
        raise asyncio.CancelledError()

    policy = RetryPolicy(max_attempts=3, retry_on_exception=lambda e: True)
    with pytest.raises(asyncio.CancelledError):
        await run_with_retry(operation, policy, sleep=sleeps)
    assert calls == [1]


def test_flat_jitter_stays_in_range():
    delay = flat_jitter(0.5)
    for attempt in range(1, 50):
        assert 0 <= delay(attempt) <= 0.5


def test_exponential_backoff_doubles():
    delay = exponential_backoff(0.5)
    assert [delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

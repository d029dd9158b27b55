"""
Async retry helper parameterized by attempt budget, retry predicates and delay.

Used by the provider chain (single stealth retry on 429/400) and by the
scoring call (5xx/network retries with jitter).
"""
import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


def _never(_: Any) -> bool:
    return False


@dataclass
class RetryPolicy:
    """How many attempts to make and when to make another one."""
    max_attempts: int
    retry_on_result: Callable[[Any], bool] = _never
    retry_on_exception: Callable[[BaseException], bool] = _never
    delay: Callable[[int], float] = lambda attempt: 0.0


def exponential_backoff(base: float = 1.0) -> Callable[[int], float]:
    """Delay of ``base * 2**(attempt-1)`` seconds after a failed attempt."""
    return lambda attempt: base * (2 ** (attempt - 1))


def flat_jitter(max_seconds: float = 0.5) -> Callable[[int], float]:
    """Uniform random delay in ``[0, max_seconds]``."""
    return lambda attempt: random.uniform(0, max_seconds)


async def run_with_retry(
    operation: Callable[[int], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, Any], None]] = None,
) -> T:
    """
    Run ``operation(attempt)`` until it succeeds or the policy gives up.

    ``attempt`` is 1-based. A result for which ``retry_on_result`` is true, or
    an exception for which ``retry_on_exception`` is true, triggers another
    attempt while the budget allows. The last result is returned and the last
    exception re-raised once the budget is spent. ``asyncio.CancelledError``
    is never retried.

    Args:
        operation: coroutine factory taking the attempt number
        policy: attempt budget and predicates
        sleep: awaitable sleep, injectable for tests
        on_retry: callback invoked with (attempt, result_or_exception) before sleeping
    """
    attempt = 1
    while True:
        try:
            result = await operation(attempt)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if attempt >= policy.max_attempts or not policy.retry_on_exception(e):
                raise
            outcome: Any = e
        else:
            if attempt >= policy.max_attempts or not policy.retry_on_result(result):
                return result
            outcome = result

        if on_retry is not None:
            on_retry(attempt, outcome)
        await sleep(policy.delay(attempt))
        attempt += 1

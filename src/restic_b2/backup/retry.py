"""Bounded retry with a pluggable backoff policy

Usage:
    outcome = retry_call(
        lambda attempt: runner.backup(...),
        max_attempts=3,
        backoff=exponential_backoff(30),
        should_retry=lambda result: result.category.retryable,
    )
    if outcome.exhausted:
        ...
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

BackoffPolicy = Callable[[int], float]


def exponential_backoff(base: float) -> BackoffPolicy:
    """``delay = base * 2 ** (attempt - 1)``: 30, 60, 120, ... for base=30"""

    def policy(attempt: int) -> float:
        return base * 2 ** (attempt - 1)

    return policy


@dataclass
class RetryOutcome(Generic[T]):
    """Result of the last attempt plus what it took to get there

    Attributes:
        result: Value returned by the last attempt
        attempts: Number of attempts made
        delays: Sleeps performed between attempts, in order
        exhausted: True when the last result still wanted a retry
    """

    result: T
    attempts: int
    delays: List[float] = field(default_factory=list)
    exhausted: bool = False


def retry_call(
    operation: Callable[[int], T],
    max_attempts: int,
    backoff: BackoffPolicy,
    should_retry: Callable[[T], bool],
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, T, float], None]] = None,
) -> RetryOutcome[T]:
    """Call ``operation(attempt)`` until it no longer asks for a retry

    The operation is called at most ``max_attempts`` times. After a failed
    attempt ``n`` that is not the last one, ``backoff(n)`` seconds are slept.
    Exceptions raised by the operation propagate unchanged.

    Args:
        operation: Called with the 1-based attempt number
        max_attempts: Upper bound on calls, at least 1
        backoff: Delay policy, called with the failed attempt number
        should_retry: Whether a result is a transient failure
        sleep: Sleep function (injectable for tests)
        on_retry: Called with (attempt, result, delay) before each sleep
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delays: List[float] = []
    attempt = 1
    while True:
        result = operation(attempt)
        if not should_retry(result):
            return RetryOutcome(result=result, attempts=attempt, delays=delays)
        if attempt >= max_attempts:
            return RetryOutcome(result=result, attempts=attempt, delays=delays, exhausted=True)

        delay = backoff(attempt)
        if on_retry is not None:
            on_retry(attempt, result, delay)
        logger.debug(f"Attempt {attempt}/{max_attempts} failed; sleeping {delay}s")
        sleep(delay)
        delays.append(delay)
        attempt += 1

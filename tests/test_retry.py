import asyncio

import pytest

from voiceprep.core.exceptions import ExternalServiceError, ExternalTimeoutError
from voiceprep.core.retry import RetryPolicy


class Flaky:
    def __init__(self, failures, retryable=True):
        self.failures = failures
        self.retryable = retryable
        self.attempts = 0

    async def __call__(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ExternalServiceError("flaky", status_code=503, retryable=self.retryable)
        return "ok"


def make_policy(**kwargs):
    delays = []

    async def record_sleep(seconds):
        delays.append(seconds)

    return RetryPolicy(sleep=record_sleep, **kwargs), delays


async def test_retries_with_backoff_schedule():
    policy, delays = make_policy(max_attempts=3, backoff_seconds=[3.0, 6.0])
    operation = Flaky(failures=2)

    assert await policy.run(operation) == "ok"
    assert operation.attempts == 3
    assert delays == [3.0, 6.0]


async def test_raises_last_error_when_attempts_exhausted():
    policy, delays = make_policy(max_attempts=3, backoff_seconds=[3.0, 6.0])
    operation = Flaky(failures=5)

    with pytest.raises(ExternalServiceError):
        await policy.run(operation)
    assert operation.attempts == 3


async def test_non_retryable_error_stops_immediately():
    policy, delays = make_policy(max_attempts=3)
    operation = Flaky(failures=5, retryable=False)

    with pytest.raises(ExternalServiceError):
        await policy.run(operation)
    assert operation.attempts == 1
    assert delays == []


async def test_attempt_timeout_becomes_external_timeout():
    policy = RetryPolicy.single_attempt(timeout=0.01)

    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(ExternalTimeoutError):
        await policy.run(slow, description="slow call")


async def test_deadline_cuts_attempts_short():
    policy, delays = make_policy(max_attempts=3, backoff_seconds=[3.0, 6.0], attempt_timeout=120.0, deadline=0.05)
    attempts = []

    async def hang():
        attempts.append(1)
        await asyncio.sleep(10)

    loop = asyncio.get_running_loop()
    started = loop.time()
    with pytest.raises(ExternalTimeoutError):
        await policy.run(hang, description="hanging call")

    assert loop.time() - started < 1.0
    assert len(attempts) == 1
    assert delays == []


async def test_deadline_allows_retries_that_fit():
    policy, delays = make_policy(max_attempts=3, backoff_seconds=[0.0], deadline=5.0)
    operation = Flaky(failures=2)

    assert await policy.run(operation) == "ok"
    assert operation.attempts == 3
    assert delays == [0.0, 0.0]


def test_delay_repeats_last_entry():
    policy = RetryPolicy(max_attempts=5, backoff_seconds=[1.0, 2.0])
    assert [policy.delay_before(n) for n in (2, 3, 4, 5)] == [1.0, 2.0, 2.0, 2.0]


def test_invalid_policy_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(attempt_timeout=0)
    with pytest.raises(ValueError):
        RetryPolicy(deadline=0)

from __future__ import annotations

import pytest

from rainstatus.providers.base import (
    PayloadValidationError,
    RateLimited,
    TransportError,
    UpstreamStatusError,
)
from rainstatus.retry import ExhaustedRetries, RetryPolicy, is_retryable


class FlakyCall:
    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.attempts = 0

    def __call__(self):
        self.attempts += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def test_transport_errors_then_success(sleeps):
    policy = RetryPolicy(sleep=sleeps.append)
    call = FlakyCall(TransportError("down"), TransportError("down"), "ok")

    assert policy.call(call) == "ok"
    assert call.attempts == 3
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_four_attempts(sleeps):
    policy = RetryPolicy(sleep=sleeps.append)
    call = FlakyCall(*[UpstreamStatusError(503)] * 5)

    with pytest.raises(ExhaustedRetries) as excinfo:
        policy.call(call)

    assert call.attempts == 4
    assert excinfo.value.attempts == 4
    assert isinstance(excinfo.value.last_error, UpstreamStatusError)
    assert not excinfo.value.rate_limited
    assert sleeps == [1.0, 2.0, 4.0]


@pytest.mark.parametrize(
    "error",
    [UpstreamStatusError(404), UpstreamStatusError(400), PayloadValidationError("no description")],
)
def test_non_retryable_errors_fail_immediately(sleeps, error):
    policy = RetryPolicy(sleep=sleeps.append)
    call = FlakyCall(error, "never reached")

    with pytest.raises(type(error)):
        policy.call(call)

    assert call.attempts == 1
    assert sleeps == []


def test_rate_limit_is_retried_and_reported(sleeps):
    retries = []
    policy = RetryPolicy(sleep=sleeps.append)
    call = FlakyCall(RateLimited(), "ok")

    result = policy.call(call, on_retry=lambda attempt, exc, delay: retries.append((attempt, type(exc), delay)))

    assert result == "ok"
    assert retries == [(1, RateLimited, 1.0)]


def test_exhausted_rate_limit_is_flagged(sleeps):
    policy = RetryPolicy(max_retries=1, sleep=sleeps.append)

    with pytest.raises(ExhaustedRetries) as excinfo:
        policy.call(FlakyCall(RateLimited(), RateLimited()))

    assert excinfo.value.rate_limited


def test_unexpected_errors_are_not_swallowed(sleeps):
    policy = RetryPolicy(sleep=sleeps.append)
    call = FlakyCall(KeyError("bug"))

    with pytest.raises(KeyError):
        policy.call(call)

    assert call.attempts == 1


def test_custom_base_delay(sleeps):
    policy = RetryPolicy(max_retries=2, base_delay=0.5, sleep=sleeps.append)

    with pytest.raises(ExhaustedRetries):
        policy.call(FlakyCall(TransportError("x"), TransportError("x"), TransportError("x")))

    assert sleeps == [0.5, 1.0]
    assert policy.max_attempts == 3


def test_retry_classification():
    assert is_retryable(TransportError("timeout"))
    assert is_retryable(UpstreamStatusError(500))
    assert is_retryable(RateLimited())
    assert not is_retryable(UpstreamStatusError(403))
    assert not is_retryable(PayloadValidationError("bad"))
    assert not is_retryable(ValueError("bad"))


def test_invalid_policy_arguments():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(base_delay=-1)

"""
Unit tests for RetryPolicy.
"""

import pytest

from expecto.retry import RetryPolicy, RetryPredicate
from expecto.transport import (
    AttemptTimeoutError,
    BodyError,
    ConnectError,
    HTTPResponse,
    TransportError,
)


def response(status: int) -> HTTPResponse:
    return HTTPResponse(status=status)


# ============================================================================
# Construction
# ============================================================================


def test_defaults():
    """Test the default policy sends a single attempt."""
    policy = RetryPolicy()

    assert policy.max_attempts == 1
    assert policy.attempts == 1
    assert policy.predicate == RetryPredicate.SERVER_ERRORS


def test_zero_attempts_means_one():
    """Test max_attempts=0 still allows one attempt."""
    assert RetryPolicy(max_attempts=0).attempts == 1


def test_from_retries():
    """Test retries count extra attempts."""
    assert RetryPolicy.from_retries(2).max_attempts == 3
    assert RetryPolicy.from_retries(-1).max_attempts == 1


def test_string_predicate_is_coerced():
    """Test preset names are accepted as strings."""
    assert RetryPolicy(predicate="timeouts_only").predicate == RetryPredicate.TIMEOUTS_ONLY


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": -1},
        {"min_delay": -0.1},
        {"min_delay": 2.0, "max_delay": 1.0},
        {"multiplier": 0.5},
        {"attempt_timeout": 0},
        {"predicate": "sometimes"},
    ],
)
def test_invalid_values_rejected(kwargs):
    """Test invalid settings raise ValueError."""
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


# ============================================================================
# Backoff
# ============================================================================


def test_calculate_delay_grows_and_caps():
    """Test delays double from min_delay and stop at max_delay."""
    policy = RetryPolicy(min_delay=0.1, max_delay=0.5, multiplier=2.0)

    delays = [policy.calculate_delay(i) for i in range(5)]

    assert delays == pytest.approx([0.1, 0.2, 0.4, 0.5, 0.5])


# ============================================================================
# Predicates
# ============================================================================


@pytest.mark.parametrize(
    "predicate, error, status, expected",
    [
        (RetryPredicate.NEVER, AttemptTimeoutError("t"), None, False),
        (RetryPredicate.NEVER, None, 503, False),
        (RetryPredicate.TIMEOUTS_ONLY, AttemptTimeoutError("t"), None, True),
        (RetryPredicate.TIMEOUTS_ONLY, ConnectError("c"), None, False),
        (RetryPredicate.TIMEOUTS_ONLY, None, 503, False),
        (RetryPredicate.SERVER_ERRORS, AttemptTimeoutError("t"), None, True),
        (RetryPredicate.SERVER_ERRORS, ConnectError("c"), None, True),
        (RetryPredicate.SERVER_ERRORS, TransportError("x"), None, False),
        (RetryPredicate.SERVER_ERRORS, None, 500, True),
        (RetryPredicate.SERVER_ERRORS, None, 404, False),
        (RetryPredicate.SERVER_ERRORS, None, 200, False),
        (RetryPredicate.ALL_ERRORS, TransportError("x"), None, True),
        (RetryPredicate.ALL_ERRORS, None, 404, True),
        (RetryPredicate.ALL_ERRORS, None, 302, False),
    ],
)
def test_preset_predicates(predicate, error, status, expected):
    """Test which outcomes each preset retries."""
    policy = RetryPolicy(predicate=predicate)
    resp = response(status) if status is not None else None

    assert policy.should_retry(error, resp) is expected


@pytest.mark.parametrize("predicate", list(RetryPredicate))
def test_body_errors_never_retried(predicate):
    """Test no preset retries a body error."""
    policy = RetryPolicy(predicate=predicate)

    assert policy.should_retry(BodyError("broken"), None) is False


def test_custom_predicate():
    """Test a callable predicate decides on its own."""
    seen = []

    def retry_on_429(error, resp):
        seen.append((error, resp))
        return resp is not None and resp.status == 429

    policy = RetryPolicy(predicate=retry_on_429)

    assert policy.should_retry(None, response(429)) is True
    assert policy.should_retry(None, response(500)) is False
    assert len(seen) == 2

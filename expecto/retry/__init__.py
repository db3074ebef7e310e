"""
Retry Layer

This package resends a logical request under a backoff policy while
honoring an external cancel token and deadline.

Usage:
    from expecto.retry import CancelToken, RetryExecutor, RetryPolicy, RetryPredicate
    from expecto.transport import BodyReplay, HTTPRequest, HTTPTransport

    transport = HTTPTransport("http://localhost:8000")
    request = HTTPRequest(method="POST", url="/jobs")
    body = BodyReplay.from_bytes(b'{"name": "nightly"}')

    policy = RetryPolicy(
        max_attempts=3,
        predicate=RetryPredicate.SERVER_ERRORS,
        attempt_timeout=5.0,
    )
    executor = RetryExecutor(policy, token=CancelToken.with_timeout(20.0))

    async with transport:
        outcome = await executor.execute(
            lambda data, timeout: transport.send(request, data, timeout),
            body,
        )
        print(outcome.response.status, outcome.attempts)
"""

# Policy
from .policy import (
    DEFAULT_MAX_DELAY,
    DEFAULT_MIN_DELAY,
    RetryPolicy,
    RetryPredicate,
)

# Cancellation
from .cancellation import CancelToken

# Executor
from .executor import RetryExecutor, RetryOutcome
from .race import RaceResult, race

# Errors
from .exceptions import (
    AttemptFailed,
    DeadlineExceeded,
    RetriesExhausted,
    RetryError,
    SendCancelled,
)

__all__ = [
    # Policy
    "RetryPolicy",
    "RetryPredicate",
    "DEFAULT_MIN_DELAY",
    "DEFAULT_MAX_DELAY",
    # Cancellation
    "CancelToken",
    # Executor
    "RetryExecutor",
    "RetryOutcome",
    "race",
    "RaceResult",
    # Errors
    "RetryError",
    "SendCancelled",
    "DeadlineExceeded",
    "RetriesExhausted",
    "AttemptFailed",
]

"""
Retry policies.

A RetryPolicy says how many attempts a request may take, which outcomes
are worth another attempt, and how long to wait in between:

    policy = RetryPolicy(
        max_attempts=3,
        predicate=RetryPredicate.SERVER_ERRORS,
        min_delay=0.05,
        max_delay=5.0,
    )

Delays grow exponentially from min_delay by multiplier and are capped at
max_delay. The predicate is either a preset or any callable taking
(error, response) and returning True to retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Union

from ..transport.models import (
    AttemptTimeoutError,
    BodyError,
    ConnectError,
    TransportError,
)

if TYPE_CHECKING:
    from ..transport.models import HTTPResponse

DEFAULT_MIN_DELAY = 0.05
DEFAULT_MAX_DELAY = 5.0
DEFAULT_MULTIPLIER = 2.0


class RetryPredicate(str, Enum):
    """Preset retry predicates."""
    # Never retry
    NEVER = "never"
    # Retry attempts that hit their own timeout
    TIMEOUTS_ONLY = "timeouts_only"
    # Retry timeouts, connection errors and 5xx responses
    SERVER_ERRORS = "server_errors"
    # Retry every transport error and every 4xx/5xx response
    ALL_ERRORS = "all_errors"


RetryCallable = Callable[["BaseException | None", "HTTPResponse | None"], bool]
Predicate = Union[RetryPredicate, RetryCallable]


@dataclass
class RetryPolicy:
    """
    Attempt budget, retry predicate and backoff range.

    Attributes:
        max_attempts: Total attempts allowed; 0 and 1 both mean one attempt
        predicate: Preset or (error, response) -> bool callable
        min_delay: First backoff delay, in seconds
        max_delay: Upper bound for backoff delays, in seconds
        multiplier: Growth factor between consecutive delays
        attempt_timeout: Timeout of a single attempt, in seconds
    """
    max_attempts: int = 1
    predicate: Predicate = RetryPredicate.SERVER_ERRORS
    min_delay: float = DEFAULT_MIN_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    multiplier: float = DEFAULT_MULTIPLIER
    attempt_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.min_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.min_delay > self.max_delay:
            raise ValueError("min_delay must not exceed max_delay")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be > 0")
        if isinstance(self.predicate, str) and not isinstance(self.predicate, RetryPredicate):
            self.predicate = RetryPredicate(self.predicate)

    @classmethod
    def from_retries(cls, retries: int, **kwargs) -> RetryPolicy:
        """Build a policy from a retry count (attempts = retries + 1)."""
        return cls(max_attempts=max(retries, 0) + 1, **kwargs)

    @property
    def attempts(self) -> int:
        """Number of attempts actually allowed."""
        return max(self.max_attempts, 1)

    def calculate_delay(self, retry: int) -> float:
        """
        Calculate delay before a retry.

        Args:
            retry: Retry number, 0-based (0 is the wait after attempt 1)

        Returns:
            Delay in seconds
        """
        delay = self.min_delay * (self.multiplier ** retry)
        return min(delay, self.max_delay)

    def should_retry(
        self,
        error: BaseException | None,
        response: HTTPResponse | None = None,
    ) -> bool:
        """
        Decide whether an attempt outcome deserves another attempt.

        Exactly one of error and response is set. Body errors are never
        retried by the presets since the body can't be sent again.
        """
        predicate = self.predicate

        if not isinstance(predicate, RetryPredicate):
            return bool(predicate(error, response))

        if predicate == RetryPredicate.NEVER:
            return False

        if isinstance(error, BodyError):
            return False

        if predicate == RetryPredicate.TIMEOUTS_ONLY:
            return isinstance(error, AttemptTimeoutError)

        if predicate == RetryPredicate.SERVER_ERRORS:
            if error is not None:
                return isinstance(error, (AttemptTimeoutError, ConnectError))
            return response is not None and response.status >= 500

        # ALL_ERRORS
        if error is not None:
            return isinstance(error, TransportError)
        return response is not None and response.status >= 400

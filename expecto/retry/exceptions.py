"""
Terminal errors of a retried request.

Every error carries the number of attempts actually sent and the error
of the last failed attempt, which is also chained as __cause__.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..transport.models import HTTPResponse


class RetryError(Exception):
    """
    Base class for terminal retry outcomes.

    Attributes:
        message: Human-readable description
        attempts: Number of attempts that were sent
        last_error: Error of the last failed attempt, if any
        last_response: Last retryable response, if any
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: BaseException | None = None,
        last_response: HTTPResponse | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.attempts = attempts
        self.last_error = last_error
        self.last_response = last_response
        self.__cause__ = last_error

    def __str__(self) -> str:
        return f"{self.message} (attempts: {self.attempts})"


class SendCancelled(RetryError):
    """The cancel token fired during an attempt or a backoff sleep."""


class DeadlineExceeded(RetryError):
    """The overall deadline passed, or would pass before the next attempt."""


class RetriesExhausted(RetryError):
    """Every allowed attempt failed with a retryable error."""


class AttemptFailed(RetryError):
    """An attempt failed with an error the policy does not retry."""

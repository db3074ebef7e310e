"""
Retry executor.

RetryExecutor sends one logical request up to policy.attempts times:

    executor = RetryExecutor(policy, token=CancelToken.with_timeout(10))
    outcome = await executor.execute(send, body)

send(body_bytes, timeout) performs a single attempt and returns an
HTTPResponse or raises a TransportError. Every attempt is raced against
the cancel token and its timeout; so is every backoff sleep. The body is
rewound before each attempt after the first.

Terminal outcomes are raised as RetryError subclasses after being passed
to the optional on_terminal callback.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from ..transport.body import BodyReplay
from ..transport.models import (
    AttemptTimeoutError,
    BodyError,
    ConnectError,
    HTTPResponse,
    TransportError,
)
from .cancellation import CancelToken
from .exceptions import (
    AttemptFailed,
    DeadlineExceeded,
    RetriesExhausted,
    RetryError,
    SendCancelled,
)
from .policy import RetryPolicy
from .race import race

logger = logging.getLogger(__name__)

SendFn = Callable[[bytes | None, float | None], Awaitable[HTTPResponse]]
TerminalCallback = Callable[[RetryError], Any]


@dataclass
class RetryOutcome:
    """
    A response the caller should assert on.

    Attributes:
        response: Response of the last attempt
        attempts: Number of attempts that were sent
        elapsed: Seconds from the first attempt to the response
        errors: Errors of the earlier, retried attempts
    """
    response: HTTPResponse
    attempts: int
    elapsed: float
    errors: list[BaseException] = field(default_factory=list)


class RetryExecutor:
    """
    Send a request with backoff, honoring cancellation and deadline.

    Attributes:
        policy: Attempt budget, predicate and backoff
        token: External cancellation signal and deadline
        on_terminal: Called with the terminal error before it is raised
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        token: CancelToken | None = None,
        on_terminal: TerminalCallback | None = None,
    ):
        self.policy = policy or RetryPolicy()
        self.token = token or CancelToken()
        self.on_terminal = on_terminal

    async def execute(self, send: SendFn, body: BodyReplay | None = None) -> RetryOutcome:
        """
        Run attempts until a response is accepted or a terminal error occurs.

        Returns:
            RetryOutcome with the accepted response. When attempts run out
            on a retryable response, that response is returned.

        Raises:
            SendCancelled: Token cancelled during an attempt or backoff
            DeadlineExceeded: Deadline passed, or would pass before the
                next attempt
            AttemptFailed: Non-retryable error (including body errors)
            RetriesExhausted: Last allowed attempt failed with a retryable error
        """
        policy = self.policy
        token = self.token
        max_attempts = policy.attempts
        started = time.monotonic()
        errors: list[BaseException] = []
        last_error: BaseException | None = None
        last_response: HTTPResponse | None = None
        attempt = 0

        while True:
            attempt += 1
            sent = attempt - 1

            if token.cancelled:
                raise self._stop(SendCancelled(
                    f"request cancelled before attempt {attempt}: {token.reason}",
                    sent, last_error, last_response,
                ))

            try:
                data = self._body_view(body, attempt)
            except BodyError as e:
                raise self._stop(AttemptFailed(
                    f"request body could not be read: {e}",
                    sent, e,
                ))

            remaining = token.remaining()
            if remaining is not None and remaining <= 0:
                raise self._stop(DeadlineExceeded(
                    f"deadline exceeded before attempt {attempt}",
                    sent, last_error, last_response,
                ))

            timeout = _min_timeout(remaining, policy.attempt_timeout)
            deadline_bound = remaining is not None and (
                policy.attempt_timeout is None or remaining <= policy.attempt_timeout
            )

            logger.debug(f"Attempt {attempt}/{max_attempts} (timeout={_fmt(timeout)})")

            result = await race(send(data, timeout), token.wait(), timeout=timeout)

            if result.index == 1:
                raise self._stop(SendCancelled(
                    f"request cancelled during attempt {attempt}: {token.reason}",
                    attempt, last_error, last_response,
                ))

            response: HTTPResponse | None = None
            error: BaseException | None = None

            if result.timed_out:
                error = AttemptTimeoutError(f"attempt {attempt} timed out after {_fmt(timeout)}")
            else:
                try:
                    response = result.task.result()
                except TransportError as e:
                    error = e
                except asyncio.TimeoutError as e:
                    error = AttemptTimeoutError(f"attempt {attempt} timed out: {e}")
                    error.__cause__ = e
                except OSError as e:
                    error = ConnectError(f"attempt {attempt} failed: {e}")
                    error.__cause__ = e

            # The race timer stands in for the deadline when it is the tighter bound.
            # A timeout raised by the transport only counts once the deadline passed.
            if isinstance(error, AttemptTimeoutError) and (
                (result.timed_out and deadline_bound) or token.expired
            ):
                raise self._stop(DeadlineExceeded(
                    f"deadline exceeded during attempt {attempt}",
                    attempt, error, last_response,
                ))

            if error is None and not policy.should_retry(None, response):
                elapsed = time.monotonic() - started
                logger.debug(f"Attempt {attempt} -> {response.status} in {elapsed:.3f}s")
                return RetryOutcome(response, attempt, elapsed, errors)

            if error is not None and not policy.should_retry(error, None):
                raise self._stop(AttemptFailed(
                    f"attempt {attempt} failed: {error}",
                    attempt, error, last_response,
                ))

            # Retryable outcome
            if error is not None:
                errors.append(error)
                last_error = error
            last_response = response
            reason = str(error) if error is not None else f"status {response.status}"

            if attempt >= max_attempts:
                if response is not None:
                    elapsed = time.monotonic() - started
                    logger.warning(
                        f"Giving up after {attempt} attempts, last response: {response.status}"
                    )
                    return RetryOutcome(response, attempt, elapsed, errors)
                raise self._stop(RetriesExhausted(
                    f"giving up after {attempt} attempts: {error}",
                    attempt, error,
                ))

            delay = policy.calculate_delay(attempt - 1)
            remaining = token.remaining()
            if remaining is not None and remaining <= delay:
                raise self._stop(DeadlineExceeded(
                    f"deadline would pass before attempt {attempt + 1}",
                    attempt, last_error, last_response,
                ))

            logger.info(f"Attempt {attempt} failed ({reason}), retrying in {delay:.3f}s")

            result = await race(asyncio.sleep(delay), token.wait())
            if result.index == 1:
                raise self._stop(SendCancelled(
                    f"request cancelled before attempt {attempt + 1}: {token.reason}",
                    attempt, last_error, last_response,
                ))

    def _body_view(self, body: BodyReplay | None, attempt: int) -> bytes | None:
        if body is None:
            return None
        if attempt > 1:
            body.rewind()
        return body.read()

    def _stop(self, error: RetryError) -> RetryError:
        logger.warning(str(error))
        if self.on_terminal is not None:
            self.on_terminal(error)
        return error


def _min_timeout(a: float | None, b: float | None) -> float | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _fmt(seconds: float | None) -> str:
    return "none" if seconds is None else f"{seconds:.3f}s"

"""
Fluent request builder.

RequestBuilder collects everything needed to send one logical request,
then sends it, with retries, when expect() is awaited:

    resp = await (
        e.post("/users/{id}/jobs", 42)
        .with_name("create job")
        .with_json({"kind": "nightly"})
        .with_max_retries(3)
        .with_retry_policy(RetryPredicate.SERVER_ERRORS)
        .with_timeout(5.0)
        .expect()
    )

Misuse (e.g. setting the body twice) is reported as a USAGE failure on
the request chain. Once the chain has failed, the remaining setters are
no-ops and expect() returns a Response that skips every assertion.
"""

from __future__ import annotations

import base64
import json
import logging
import re
import time
from typing import TYPE_CHECKING, Any, Callable, Mapping
from urllib.parse import quote, urlencode

from .assertions.chain import Chain
from .assertions.models import AssertionType, Failure
from .printer import Printer
from .response import Response
from .retry.cancellation import CancelToken
from .retry.exceptions import RetryError
from .retry.executor import RetryExecutor
from .retry.policy import RetryPolicy, RetryPredicate
from .transport.body import BodyReplay, ReleaseHook
from .transport.models import BodyError, HTTPRequest, HTTPResponse, RedirectPolicy

if TYPE_CHECKING:
    from .expect import Config

logger = logging.getLogger(__name__)

Matcher = Callable[[Response], Any]

_PATH_PARAM = re.compile(r"\{([^{}]*)\}")


class RequestBuilder:
    """Configure, send and retry one HTTP request."""

    def __init__(self, config: Config, chain: Chain, method: str, path: str, *args: Any):
        self._config = config
        self._chain = chain
        self._method = method.upper()
        self._name = ""
        self._headers: dict[str, str] = dict(config.headers)
        self._query: list[tuple[str, str]] = []
        self._cookies: dict[str, str] = {}
        self._redirect_policy = RedirectPolicy.FOLLOW_ALL
        self._max_redirects: int | None = None
        self._body: BodyReplay | None = None
        self._body_source = ""
        self._timeout: float | None = config.timeout
        self._deadline: float | None = config.deadline
        self._token: CancelToken | None = config.token
        self._printers: list[Printer] = list(config.printers)
        self._matchers: list[Matcher] = []
        self._expected = False

        base = config.retry_policy
        self._predicate = base.predicate
        self._max_attempts = base.max_attempts
        self._min_delay = base.min_delay
        self._max_delay = base.max_delay
        self._multiplier = base.multiplier

        chain.set_request(self)
        self._path = self._fill_path(path, args)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def chain(self) -> Chain:
        return self._chain

    @property
    def method(self) -> str:
        return self._method

    @property
    def path(self) -> str:
        return self._path

    @property
    def name(self) -> str:
        return self._name

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def query(self) -> list[tuple[str, str]]:
        return list(self._query)

    @property
    def cookies(self) -> dict[str, str]:
        return dict(self._cookies)

    @property
    def body(self) -> BodyReplay | None:
        return self._body

    def retry_policy(self) -> RetryPolicy:
        """Policy expect() will use, built from the current settings."""
        return RetryPolicy(
            max_attempts=self._max_attempts,
            predicate=self._predicate,
            min_delay=self._min_delay,
            max_delay=self._max_delay,
            multiplier=self._multiplier,
            attempt_timeout=self._timeout,
        )

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def with_name(self, name: str) -> RequestBuilder:
        """Name shown in failure messages."""
        if self._chain.failed():
            return self

        with self._chain.step("with_name()"):
            self._name = name
            self._chain.set_request_name(name)

        return self

    def with_header(self, name: str, value: str) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step(f"with_header({name!r})"):
            self._headers[name] = str(value)

        return self

    def with_headers(self, headers: Mapping[str, str]) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_headers()"):
            for name, value in headers.items():
                self._headers[name] = str(value)

        return self

    def with_query(self, key: str, value: Any) -> RequestBuilder:
        """Add a query parameter. Repeated keys are kept in order."""
        if self._chain.failed():
            return self

        with self._chain.step(f"with_query({key!r})"):
            self._query.append((key, _query_value(value)))

        return self

    def with_basic_auth(self, username: str, password: str) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_basic_auth()"):
            credentials = base64.b64encode(
                f"{username}:{password}".encode()
            ).decode("ascii")
            self._headers["Authorization"] = f"Basic {credentials}"

        return self

    def with_bearer_token(self, token: str) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_bearer_token()"):
            self._headers["Authorization"] = f"Bearer {token}"

        return self

    def with_cookie(self, name: str, value: str) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step(f"with_cookie({name!r})"):
            self._cookies[name] = str(value)

        return self

    def with_cookies(self, cookies: Mapping[str, str]) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_cookies()"):
            for name, value in cookies.items():
                self._cookies[name] = str(value)

        return self

    def with_redirect_policy(self, policy: RedirectPolicy | str) -> RequestBuilder:
        """Which redirects the transport follows (FOLLOW_ALL by default)."""
        if self._chain.failed():
            return self

        with self._chain.step("with_redirect_policy()"):
            try:
                self._redirect_policy = RedirectPolicy(policy)
            except ValueError:
                self._fail_usage(f"unknown redirect policy {policy!r}")

        return self

    def with_max_redirects(self, max_redirects: int) -> RequestBuilder:
        """Fail the attempt once more than max_redirects redirects are followed."""
        if self._chain.failed():
            return self

        with self._chain.step("with_max_redirects()"):
            if max_redirects < 0:
                self._fail_usage("max redirects must be non-negative")
            else:
                self._max_redirects = max_redirects

        return self

    def with_bytes(self, data: bytes, content_type: str | None = None) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_bytes()"):
            self._set_body("with_bytes()", BodyReplay.from_bytes(bytes(data)), content_type)

        return self

    def with_text(self, text: str) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_text()"):
            self._set_body(
                "with_text()",
                BodyReplay.from_bytes(text.encode("utf-8")),
                "text/plain; charset=utf-8",
            )

        return self

    def with_json(self, obj: Any) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_json()"):
            try:
                data = json.dumps(obj).encode("utf-8")
            except (TypeError, ValueError) as e:
                self._chain.fail(Failure(
                    type=AssertionType.USAGE,
                    causes=[ValueError(f"failed to encode json: {e}")],
                ))
            else:
                self._set_body(
                    "with_json()",
                    BodyReplay.from_bytes(data),
                    "application/json; charset=utf-8",
                )

        return self

    def with_form(self, fields: Mapping[str, Any]) -> RequestBuilder:
        """URL-encoded form body. List values become repeated fields."""
        if self._chain.failed():
            return self

        with self._chain.step("with_form()"):
            data = urlencode(
                [(k, _query_value(v)) for k, v in _flatten(fields)]
            ).encode("ascii")
            self._set_body(
                "with_form()",
                BodyReplay.from_bytes(data),
                "application/x-www-form-urlencoded",
            )

        return self

    def with_body(self, stream: Any, release: ReleaseHook | None = None) -> RequestBuilder:
        """
        Body read from a forward-only stream.

        The stream is read at most once; retries replay the buffered
        bytes. release is called once the stream has been closed.
        """
        if self._chain.failed():
            return self

        with self._chain.step("with_body()"):
            self._set_body("with_body()", BodyReplay(stream, release), None)

        return self

    def with_timeout(self, seconds: float) -> RequestBuilder:
        """Timeout of each attempt."""
        if self._chain.failed():
            return self

        with self._chain.step("with_timeout()"):
            if seconds <= 0:
                self._fail_usage("timeout must be positive")
            else:
                self._timeout = seconds

        return self

    def with_deadline(self, seconds: float) -> RequestBuilder:
        """Deadline for all attempts and backoff sleeps together."""
        if self._chain.failed():
            return self

        with self._chain.step("with_deadline()"):
            if seconds <= 0:
                self._fail_usage("deadline must be positive")
            else:
                self._deadline = seconds

        return self

    def with_token(self, token: CancelToken) -> RequestBuilder:
        """External cancellation signal."""
        if self._chain.failed():
            return self

        with self._chain.step("with_token()"):
            self._token = token

        return self

    def with_retry_policy(self, predicate: RetryPredicate | str | Callable) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_retry_policy()"):
            if isinstance(predicate, str) and not isinstance(predicate, RetryPredicate):
                try:
                    predicate = RetryPredicate(predicate)
                except ValueError:
                    self._fail_usage(f"unknown retry policy {predicate!r}")
                    return self
            self._predicate = predicate

        return self

    def with_max_retries(self, retries: int) -> RequestBuilder:
        """Allow up to retries extra attempts."""
        if self._chain.failed():
            return self

        with self._chain.step("with_max_retries()"):
            if retries < 0:
                self._fail_usage("max retries must be non-negative")
            else:
                self._max_attempts = retries + 1

        return self

    def with_retry_delay(self, min_delay: float, max_delay: float) -> RequestBuilder:
        """Backoff range in seconds; delays double from min_delay up to max_delay."""
        if self._chain.failed():
            return self

        with self._chain.step("with_retry_delay()"):
            if min_delay < 0 or max_delay < 0:
                self._fail_usage("retry delays must be non-negative")
            elif min_delay > max_delay:
                self._fail_usage("min delay must not exceed max delay")
            else:
                self._min_delay = min_delay
                self._max_delay = max_delay

        return self

    def with_printer(self, printer: Printer) -> RequestBuilder:
        if self._chain.failed():
            return self

        with self._chain.step("with_printer()"):
            self._printers.append(printer)

        return self

    def with_matcher(self, matcher: Matcher) -> RequestBuilder:
        """Callable run on the Response before expect() returns it."""
        if self._chain.failed():
            return self

        with self._chain.step("with_matcher()"):
            self._matchers.append(matcher)

        return self

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    async def expect(self) -> Response:
        """
        Send the request, retrying as configured, and return the Response.

        Terminal send errors (cancellation, deadline, exhausted retries,
        non-retryable errors) are reported as OPERATION failures on the
        request chain.
        """
        if self._expected:
            self._fail_usage("expect() already called")
            return Response(self._chain.clone())
        self._expected = True

        if self._chain.failed():
            return Response(self._chain.clone())

        with self._chain.step("expect()"):
            response = await self._send()

        return response

    async def _send(self) -> Response:
        config = self._config
        transport = config.transport
        if not transport.is_connected:
            await transport.connect()

        policy = self.retry_policy()
        parent = self._token if self._token is not None else CancelToken()
        token = parent.child(self._deadline)

        request = HTTPRequest(
            method=self._method,
            url=self._path,
            headers=dict(self._headers),
            query=list(self._query),
            cookies=dict(self._cookies),
            redirect_policy=self._redirect_policy,
            max_redirects=self._max_redirects,
        )
        rtts: list[float] = []

        async def send(data: bytes | None, timeout: float | None) -> HTTPResponse:
            for printer in self._printers:
                printer.request(request, data)
            started = time.monotonic()
            http_response = await transport.send(request, data, timeout)
            rtt = time.monotonic() - started
            rtts.append(rtt)
            for printer in self._printers:
                printer.response(http_response, rtt)
            return http_response

        def on_terminal(error: RetryError) -> None:
            self._chain.fail(Failure(
                type=AssertionType.OPERATION,
                causes=[error],
            ))

        # An assertion failure anywhere on this chain stops pending attempts
        self._chain.fail_callback = lambda failure: token.cancel(
            f"assertion failed: {failure.type.value}"
        )
        executor = RetryExecutor(policy, token=token, on_terminal=on_terminal)

        logger.debug(
            f"Sending {self._method} {self._path} "
            f"(attempts={policy.attempts}, predicate={_describe(policy.predicate)})"
        )

        try:
            outcome = await executor.execute(send, self._body)
        except RetryError as e:
            # Already reported through on_terminal
            return Response(self._chain.clone(), attempts=e.attempts)
        finally:
            self._chain.fail_callback = None
            if self._body is not None and self._body.error is None:
                try:
                    self._body.close()
                except BodyError as e:
                    logger.warning(f"Request body close failed: {e}")

        response = Response(
            self._chain.clone(),
            outcome.response,
            rtt=rtts[-1] if rtts else None,
            attempts=outcome.attempts,
        )
        for matcher in self._matchers:
            matcher(response)
        return response

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_body(self, source: str, body: BodyReplay, content_type: str | None) -> None:
        if self._body is not None:
            body.close()
            self._chain.fail(Failure(
                type=AssertionType.USAGE,
                causes=[ValueError(
                    f"ambiguous request body contents: set by {self._body_source}, "
                    f"overwritten by {source}"
                )],
            ))
            return

        self._body = body
        self._body_source = source
        if content_type is not None and not _has_header(self._headers, "Content-Type"):
            self._headers["Content-Type"] = content_type

    def _fill_path(self, path: str, args: tuple[Any, ...]) -> str:
        """Substitute {name} placeholders with positional args, in order."""
        remaining = list(args)
        missing: list[str] = []

        def substitute(match: re.Match) -> str:
            if not remaining:
                missing.append(match.group(1))
                return match.group(0)
            return quote(str(remaining.pop(0)), safe="")

        filled = _PATH_PARAM.sub(substitute, path)

        if missing:
            self._fail_usage(f"missing argument for path parameter {{{missing[0]}}}")
        elif remaining:
            self._fail_usage(f"unexpected path argument {remaining[0]!r}")

        return filled

    def _fail_usage(self, message: str) -> None:
        self._chain.fail(Failure(
            type=AssertionType.USAGE,
            causes=[ValueError(message)],
        ))

    def __repr__(self) -> str:
        return f"RequestBuilder({self._method} {self._path})"


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    return any(key.lower() == name.lower() for key in headers)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(fields: Mapping[str, Any]) -> list[tuple[str, Any]]:
    pairs: list[tuple[str, Any]] = []
    for key, value in fields.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((key, item) for item in value)
        else:
            pairs.append((key, value))
    return pairs


def _describe(predicate: Any) -> str:
    if isinstance(predicate, RetryPredicate):
        return predicate.value
    return getattr(predicate, "__name__", "custom")

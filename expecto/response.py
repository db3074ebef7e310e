"""
Fluent response assertions.

Response wraps the HTTPResponse accepted by the retry executor, together
with its round-trip time and the number of attempts it took.

Example:
    resp = await e.get("/users/{id}", 42).expect()
    resp.status(200).content_type("application/json")
    resp.json().path("$.name").equal("alice")
    resp.header("X-Request-Id").not_empty()
"""

from __future__ import annotations

import json
from enum import IntEnum
from http import HTTPStatus
from typing import Any

from .assertions.chain import Chain
from .assertions.models import AssertionList, AssertionType, Failure
from .assertions.value import Value
from .transport.models import HTTPResponse


class StatusRange(IntEnum):
    """HTTP status code classes."""
    INFORMATIONAL = 100  # 1xx
    SUCCESS = 200        # 2xx
    REDIRECTION = 300    # 3xx
    CLIENT_ERROR = 400   # 4xx
    SERVER_ERROR = 500   # 5xx

    @property
    def label(self) -> str:
        return f"{self.value // 100}xx"

    def __contains__(self, status: int) -> bool:
        return self.value <= status < self.value + 100


def status_text(status: int) -> str:
    """Format a status code as e.g. "404 Not Found"."""
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)


class Response:
    """
    Chainable assertions on an HTTP response.

    A Response created for a request that could not be sent wraps no
    HTTPResponse; its chain has already failed, so every assertion on it
    is a no-op.
    """

    def __init__(
        self,
        chain: Chain,
        http_response: HTTPResponse | None = None,
        rtt: float | None = None,
        attempts: int = 0,
    ):
        self._chain = chain
        self._http = http_response
        self._rtt = rtt
        self._attempts = attempts
        chain.set_response(self, rtt)

    @property
    def chain(self) -> Chain:
        return self._chain

    @property
    def raw(self) -> HTTPResponse | None:
        """Underlying HTTPResponse, None if the request was not sent."""
        return self._http

    @property
    def rtt(self) -> float | None:
        """Round-trip time of the last attempt, in seconds."""
        return self._rtt

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def body(self) -> bytes:
        return self._http.body if self._http is not None else b""

    @property
    def status_code(self) -> int | None:
        return self._http.status if self._http is not None else None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, code: int) -> Response:
        """Check the status code equals code."""
        if self._chain.failed():
            return self

        with self._chain.step("status()"):
            if self._http.status != code:
                self._chain.fail(Failure(
                    type=AssertionType.EQUAL,
                    causes=[AssertionError("unexpected http status")],
                    actual=status_text(self._http.status),
                    expected=status_text(code),
                ))

        return self

    def status_range(self, status_range: StatusRange) -> Response:
        """Check the status code belongs to a class (e.g. StatusRange.SUCCESS)."""
        if self._chain.failed():
            return self

        with self._chain.step("status_range()"):
            if self._http.status not in status_range:
                self._chain.fail(Failure(
                    type=AssertionType.BELONGS,
                    causes=[AssertionError("expected http status to belong to given range")],
                    actual=status_text(self._http.status),
                    expected=AssertionList((status_range.label,)),
                ))

        return self

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def headers(self) -> Value:
        """Return all headers as a dict Value."""
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step("headers()"):
            child = Value(self._chain.clone(), dict(self._http.headers))

        return child

    def header(self, name: str) -> Value:
        """Return the value of a header (case-insensitive)."""
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step(f"header({name!r})"):
            value = self._http.header(name)
            if value is None:
                self._chain.fail(Failure(
                    type=AssertionType.CONTAINS_KEY,
                    causes=[AssertionError(f"expected response to have header {name!r}")],
                    actual=dict(self._http.headers),
                    expected=name,
                ))
            child = Value(self._chain.clone(), value)

        return child

    def header_values(self, name: str) -> Value:
        """Return every value of a repeated header (e.g. Set-Cookie) as a list Value."""
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step(f"header_values({name!r})"):
            child = Value(self._chain.clone(), self._http.header_values(name))

        return child

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def cookies(self) -> Value:
        """
        Return the names of the cookies this response sets, as a list Value.

        Cookies kept in the session jar from earlier responses are not
        included.
        """
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step("cookies()"):
            child = Value(self._chain.clone(), list(self._http.cookies))

        return child

    def cookie(self, name: str) -> Value:
        """Return the value of a cookie this response sets."""
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step(f"cookie({name!r})"):
            value = self._http.cookies.get(name)
            if value is None:
                self._chain.fail(Failure(
                    type=AssertionType.CONTAINS_ELEMENT,
                    causes=[AssertionError(f"expected response to set cookie {name!r}")],
                    actual=list(self._http.cookies),
                    expected=name,
                ))
            child = Value(self._chain.clone(), value)

        return child

    # ------------------------------------------------------------------
    # Content type
    # ------------------------------------------------------------------

    def content_type(self, media_type: str, charset: str | None = None) -> Response:
        """
        Check the Content-Type media type and, optionally, its charset.

        Comparison is case-insensitive.
        """
        if self._chain.failed():
            return self

        with self._chain.step("content_type()"):
            self._check_content_type(media_type, charset)

        return self

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def text(self, media_type: str | None = None) -> Value:
        """
        Return the body decoded as text.

        If media_type is given, the Content-Type is checked first.
        """
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step("text()"):
            value: Any = None
            if media_type is None or self._check_content_type(media_type, None):
                value = self._http.text()
            child = Value(self._chain.clone(), value)

        return child

    def json(self, media_type: str | None = "application/json") -> Value:
        """
        Return the body decoded as JSON.

        The Content-Type is checked against media_type unless it is None.
        """
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step("json()"):
            value: Any = None
            if media_type is None or self._check_content_type(media_type, None):
                try:
                    value = self._http.json()
                except json.JSONDecodeError as e:
                    self._chain.fail(Failure(
                        type=AssertionType.VALID,
                        causes=[ValueError(f"failed to decode json: {e}")],
                        actual=self._http.text(),
                    ))
            child = Value(self._chain.clone(), value)

        return child

    def _check_content_type(self, media_type: str, charset: str | None) -> bool:
        actual = self._http.content_type
        if actual != media_type.lower():
            self._chain.fail(Failure(
                type=AssertionType.EQUAL,
                causes=[AssertionError("unexpected content-type")],
                actual=actual,
                expected=media_type.lower(),
            ))
            return False

        if charset is not None:
            actual_charset = (self._http.charset or "").lower()
            if actual_charset != charset.lower():
                self._chain.fail(Failure(
                    type=AssertionType.EQUAL,
                    causes=[AssertionError("unexpected charset")],
                    actual=actual_charset,
                    expected=charset.lower(),
                ))
                return False

        return True

    def __repr__(self) -> str:
        if self._http is None:
            return "Response(<not sent>)"
        return f"Response({status_text(self._http.status)}, attempts={self._attempts})"

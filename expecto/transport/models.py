"""
Transport layer models for HTTP communication.

This module defines the data structures for HTTP requests and responses,
and the error family raised by transports and request bodies.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class TransportError(Exception):
    """
    Base class for errors raised while sending a request.

    Attributes:
        message: Human-readable description
        data: Extra details (URL, method, ...)
    """

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": type(self).__name__,
            "message": self.message,
        }
        if self.data:
            result["data"] = self.data
        return result


class ConnectError(TransportError):
    """The connection could not be established or was dropped."""


class AttemptTimeoutError(TransportError):
    """A single attempt exceeded its own timeout."""


class BodyError(TransportError):
    """The request body stream failed while being read or closed."""


class RedirectPolicy(str, Enum):
    """Which redirect responses the transport follows."""
    DONT_FOLLOW = "dont_follow"
    FOLLOW_ALL = "follow_all"
    # Follow only when no request body would have to be sent again
    FOLLOW_WITHOUT_BODY = "follow_without_body"


@dataclass
class HTTPRequest:
    """
    A logical HTTP request, resent unchanged on every attempt.

    Attributes:
        cookies: Sent on top of the cookies the session jar holds
        max_redirects: Redirects allowed before the attempt fails,
            None for the transport default
    """
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    query: list[tuple[str, str]] = field(default_factory=list)
    cookies: dict[str, str] = field(default_factory=dict)
    redirect_policy: RedirectPolicy = RedirectPolicy.FOLLOW_ALL
    max_redirects: int | None = None

    def follows_redirects(self, has_body: bool) -> bool:
        if self.redirect_policy == RedirectPolicy.FOLLOW_WITHOUT_BODY:
            return not has_body
        return self.redirect_policy == RedirectPolicy.FOLLOW_ALL

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "query": [list(pair) for pair in self.query],
            "cookies": dict(self.cookies),
            "redirect_policy": self.redirect_policy.value,
            "max_redirects": self.max_redirects,
        }


def merge_headers(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Fold header lines into a dict, joining repeated names with ", "."""
    merged: dict[str, str] = {}
    for name, value in pairs:
        merged[name] = f"{merged[name]}, {value}" if name in merged else value
    return merged


@dataclass
class HTTPResponse:
    """
    A fully read HTTP response.

    Attributes:
        headers: One entry per header name, repeated lines joined by ", "
        header_lines: Every header line in order, repeats kept
        cookies: Cookies set by this response, name to value
    """
    status: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""
    header_lines: list[tuple[str, str]] = field(default_factory=list)
    cookies: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        """Every value of a header, one per header line (case-insensitive)."""
        lowered = name.lower()
        if self.header_lines:
            return [value for key, value in self.header_lines if key.lower() == lowered]
        value = self.header(name)
        return [] if value is None else [value]

    @property
    def content_type(self) -> str:
        """Media type without parameters, lowercased."""
        value = self.header("Content-Type") or ""
        return value.split(";", 1)[0].strip().lower()

    @property
    def charset(self) -> str | None:
        value = self.header("Content-Type") or ""
        for param in value.split(";")[1:]:
            key, _, val = param.strip().partition("=")
            if key.lower() == "charset" and val:
                return val.strip('"')
        return None

    def text(self) -> str:
        """Decode the body with its declared charset, utf-8 if none or unknown."""
        try:
            return self.body.decode(self.charset or "utf-8", errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON
        """
        return json.loads(self.text())

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "status": self.status,
            "reason": self.reason,
            "headers": dict(self.headers),
            "cookies": dict(self.cookies),
            "body": self.text()[:500],
        }

"""
Request and response printers.

A printer is called once per attempt, before the request is sent and
after its response arrives. Printers write to a logging.Logger, so their
output follows whatever logging configuration the caller set up.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .transport.models import HTTPRequest, HTTPResponse

logger = logging.getLogger(__name__)


class Printer(ABC):
    """Hook called around every attempt."""

    @abstractmethod
    def request(self, request: HTTPRequest, body: bytes | None) -> None:
        pass

    @abstractmethod
    def response(self, response: HTTPResponse, rtt: float) -> None:
        pass


class CompactPrinter(Printer):
    """Log the method and URL of every request."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO):
        self.logger = log if log is not None else logger
        self.level = level

    def request(self, request: HTTPRequest, body: bytes | None) -> None:
        self.logger.log(self.level, f"{request.method} {request.url}")

    def response(self, response: HTTPResponse, rtt: float) -> None:
        pass


class DebugPrinter(Printer):
    """
    Dump requests and responses: start line, headers and, optionally, body.

    Bodies longer than max_body bytes are truncated.
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        body: bool = True,
        max_body: int = 4096,
        level: int = logging.DEBUG,
    ):
        self.logger = log if log is not None else logger
        self.body = body
        self.max_body = max_body
        self.level = level

    def request(self, request: HTTPRequest, body: bytes | None) -> None:
        lines = [f"{request.method} {request.url}"]
        if request.query:
            lines[0] += "?" + "&".join(f"{k}={v}" for k, v in request.query)
        lines.extend(f"{name}: {value}" for name, value in request.headers.items())
        if self.body and body:
            lines.append("")
            lines.append(self._format_body(body))
        self.logger.log(self.level, "\n".join(lines))

    def response(self, response: HTTPResponse, rtt: float) -> None:
        lines = [f"{response.status} {response.reason} {rtt * 1000:.1f}ms"]
        lines.extend(f"{name}: {value}" for name, value in response.headers.items())
        if self.body and response.body:
            lines.append("")
            lines.append(self._format_body(response.body))
        self.logger.log(self.level, "\n".join(lines))

    def _format_body(self, data: bytes) -> str:
        text = data[: self.max_body].decode("utf-8", errors="replace")
        if len(data) > self.max_body:
            text += f"... ({len(data) - self.max_body} more bytes)"
        return text

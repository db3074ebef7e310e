"""
Root entry point.

Expect holds the shared Config and the root assertion chain, and creates
a RequestBuilder for every request:

    async with Expect(base_url="http://localhost:8000") as e:
        resp = await e.get("/users/{id}", 42).expect()
        resp.status(200).json().path("$.name").equal("alice")

By default every fatal failure raises AssertionFailedError, which pytest
reports as a test failure. Pass a CollectingReporter to keep going and
inspect the messages afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .assertions.chain import Chain
from .assertions.handler import AssertionHandler, DefaultAssertionHandler, Reporter
from .assertions.models import Severity
from .assertions.value import Value
from .environment import Environment
from .printer import Printer
from .request import RequestBuilder
from .retry.cancellation import CancelToken
from .retry.policy import RetryPolicy
from .transport.base import BaseTransport
from .transport.http import HTTPTransport

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """
    Settings shared by every request made through one Expect.

    Attributes:
        base_url: Prefix for relative request paths
        headers: Default headers of every request
        transport: Transport to send with (HTTPTransport on base_url if None)
        handler: Assertion sink (DefaultAssertionHandler if None)
        reporter: Reporter for the default handler (raising if None)
        test_name: Shown in failure messages
        severity: Severity of failures on the root chain
        retry_policy: Default attempts, predicate and backoff
        timeout: Default per-attempt timeout, in seconds
        deadline: Default overall deadline per request, in seconds
        token: Cancellation signal shared by every request
        printers: Called around every attempt
        validate: Check every failure record against its kind
        environment: Store shared by the requests of this Expect
    """
    base_url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    transport: BaseTransport | None = None
    handler: AssertionHandler | None = None
    reporter: Reporter | None = None
    test_name: str = ""
    severity: Severity = Severity.FATAL
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    timeout: float | None = None
    deadline: float | None = None
    token: CancelToken | None = None
    printers: list[Printer] = field(default_factory=list)
    validate: bool = False
    environment: Environment = field(default_factory=Environment)

    def with_defaults(self) -> Config:
        """Fill in the transport and handler if they are missing."""
        if self.transport is None:
            self.transport = HTTPTransport(base_url=self.base_url)
        if self.handler is None:
            self.handler = DefaultAssertionHandler(reporter=self.reporter)
        return self


class Expect:
    """Factory of requests sharing one Config and one root chain."""

    def __init__(self, config: Config | None = None, **kwargs: Any):
        """
        Args:
            config: Full configuration
            **kwargs: Config fields, used when config is None
        """
        if config is not None and kwargs:
            raise TypeError("pass either config or keyword arguments, not both")

        self.config = (config if config is not None else Config(**kwargs)).with_defaults()
        self._chain = Chain(
            self.config.handler,
            test_name=self.config.test_name,
            severity=self.config.severity,
            validate=self.config.validate,
        )

    @property
    def chain(self) -> Chain:
        return self._chain

    @property
    def transport(self) -> BaseTransport:
        return self.config.transport

    @property
    def env(self) -> Environment:
        return self.config.environment

    async def connect(self) -> None:
        await self.config.transport.connect()

    async def close(self) -> None:
        await self.config.transport.disconnect()

    async def __aenter__(self) -> Expect:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, *args: Any) -> RequestBuilder:
        """
        Create a request.

        Args:
            method: HTTP method
            path: Path relative to base_url; {name} placeholders are
                filled from args, in order, and URL-escaped
        """
        with self._chain.step(f"Request({method.upper()!r})"):
            builder = RequestBuilder(self.config, self._chain.clone(), method, path, *args)

        return builder

    def get(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("GET", path, *args)

    def head(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("HEAD", path, *args)

    def post(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("POST", path, *args)

    def put(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("PUT", path, *args)

    def patch(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("PATCH", path, *args)

    def delete(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("DELETE", path, *args)

    def options(self, path: str, *args: Any) -> RequestBuilder:
        return self.request("OPTIONS", path, *args)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def value(self, value: Any) -> Value:
        """Wrap an arbitrary value for assertions."""
        with self._chain.step("Value()"):
            child = Value(self._chain.clone(), value)

        return child

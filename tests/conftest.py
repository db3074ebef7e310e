"""Shared test fixtures and configuration for all tests.

Requests never touch the network: FakeTransport replays a script of
responses, errors and coroutines, one entry per attempt.
"""

import asyncio
import json
from typing import Any

import pytest

from expecto import (
    CollectingReporter,
    Config,
    DefaultAssertionHandler,
    Expect,
    HTTPResponse,
    RetryPolicy,
)
from expecto.assertions import AssertionContext, AssertionHandler, Chain, Failure
from expecto.transport import BaseTransport, HTTPRequest


def json_response(status: int, data: Any, headers: dict | None = None) -> HTTPResponse:
    """Build an HTTPResponse with a JSON body."""
    all_headers = {"Content-Type": "application/json; charset=utf-8"}
    all_headers.update(headers or {})
    return HTTPResponse(
        status=status,
        headers=all_headers,
        body=json.dumps(data).encode("utf-8"),
    )


class FakeTransport(BaseTransport):
    """
    Transport that plays back a script, one entry per send().

    Entries can be an HTTPResponse (returned), an exception (raised) or
    a zero-argument coroutine function (awaited, its result returned).
    The last entry repeats once the script runs out.
    """

    def __init__(self, *script: Any):
        self.script = list(script)
        self.sent: list[tuple[HTTPRequest, bytes | None, float | None]] = []
        self.connected = False
        self.connect_count = 0

    async def connect(self) -> None:
        self.connected = True
        self.connect_count += 1

    async def disconnect(self) -> None:
        self.connected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def send(
        self,
        request: HTTPRequest,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        index = min(len(self.sent), len(self.script) - 1)
        self.sent.append((request, body, timeout))
        entry = self.script[index]

        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return await entry()
        return entry

    @property
    def attempts(self) -> int:
        return len(self.sent)


class RecordingAssertionHandler(AssertionHandler):
    """Keeps every event for inspection."""

    def __init__(self):
        self.successes: list[AssertionContext] = []
        self.failures: list[tuple[AssertionContext, Failure]] = []

    def success(self, context: AssertionContext) -> None:
        self.successes.append(context)

    def failure(self, context: AssertionContext, failure: Failure) -> None:
        self.failures.append((context, failure))


async def hang() -> HTTPResponse:
    """Script entry for an attempt that never finishes on its own."""
    await asyncio.sleep(3600)
    raise AssertionError("unreachable")


@pytest.fixture
def handler() -> RecordingAssertionHandler:
    return RecordingAssertionHandler()


@pytest.fixture
def chain(handler: RecordingAssertionHandler) -> Chain:
    """Strict root chain reporting to the recording handler."""
    return Chain(handler, name="root", test_name="test", validate=True)


@pytest.fixture
def collecting_reporter() -> CollectingReporter:
    return CollectingReporter()


@pytest.fixture
def make_expect(collecting_reporter: CollectingReporter):
    """Build an Expect over a FakeTransport that collects failures."""

    def _make(transport: FakeTransport, **kwargs: Any) -> Expect:
        kwargs.setdefault("retry_policy", RetryPolicy(min_delay=0.001, max_delay=0.01))
        return Expect(Config(
            transport=transport,
            handler=DefaultAssertionHandler(reporter=collecting_reporter),
            validate=True,
            **kwargs,
        ))

    return _make

"""
Unit tests for Expect and RequestBuilder.
"""

import asyncio
import base64
import io
import json

import pytest

from expecto import (
    AssertionFailedError,
    AssertionType,
    CancelToken,
    CompactPrinter,
    Config,
    ConnectError,
    Environment,
    Expect,
    HTTPResponse,
    RedirectPolicy,
    RetryPredicate,
    Severity,
)
from expecto.printer import Printer
from tests.conftest import FakeTransport, RecordingAssertionHandler, hang, json_response


class ListPrinter(Printer):
    def __init__(self):
        self.events = []

    def request(self, request, body):
        self.events.append(("request", request.method, request.url, body))

    def response(self, response, rtt):
        self.events.append(("response", response.status, rtt))


# ============================================================================
# Building Requests
# ============================================================================


@pytest.mark.asyncio
async def test_path_args_are_escaped(make_expect):
    """Test {name} placeholders are filled in order and URL-escaped."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    await e.get("/users/{id}/files/{name}", 42, "a b/c").expect()

    request, _, _ = transport.sent[0]
    assert request.url == "/users/42/files/a%20b%2Fc"


@pytest.mark.asyncio
async def test_missing_path_arg_is_usage_failure(make_expect, collecting_reporter):
    """Test a placeholder without argument fails and nothing is sent."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    resp = await e.get("/users/{id}").expect()

    assert transport.sent == []
    assert resp.raw is None
    assert "missing argument for path parameter {id}" in collecting_reporter.messages[0]


def test_extra_path_arg_is_usage_failure(make_expect, collecting_reporter):
    """Test an unused argument is a usage failure."""
    make_expect(FakeTransport(json_response(200, {}))).get("/users", 1)

    assert "unexpected path argument 1" in collecting_reporter.messages[0]


@pytest.mark.asyncio
async def test_headers_query_and_auth(make_expect):
    """Test headers, query parameters and auth reach the transport."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport, headers={"X-Client": "expecto"})

    await (
        e.get("/search")
        .with_header("X-Trace", "1")
        .with_query("tag", "a")
        .with_query("tag", "b")
        .with_query("exact", True)
        .with_basic_auth("user", "pass")
        .expect()
    )

    request, _, _ = transport.sent[0]
    assert request.headers["X-Client"] == "expecto"
    assert request.headers["X-Trace"] == "1"
    assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"user:pass").decode()
    assert request.query == [("tag", "a"), ("tag", "b"), ("exact", "true")]


@pytest.mark.asyncio
async def test_cookies_and_redirect_settings(make_expect):
    """Test cookies and redirect settings reach the transport."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    await (
        e.get("/profile")
        .with_cookie("session", "s3cret")
        .with_cookies({"lang": "en", "theme": "dark"})
        .with_redirect_policy("dont_follow")
        .with_max_redirects(0)
        .expect()
    )

    request, _, _ = transport.sent[0]
    assert request.cookies == {"session": "s3cret", "lang": "en", "theme": "dark"}
    assert request.redirect_policy == RedirectPolicy.DONT_FOLLOW
    assert request.max_redirects == 0


@pytest.mark.asyncio
async def test_redirects_followed_by_default(make_expect):
    """Test requests follow every redirect unless told otherwise."""
    transport = FakeTransport(json_response(200, {}))

    await make_expect(transport).post("/jobs").with_json({}).expect()

    request, _, _ = transport.sent[0]
    assert request.redirect_policy == RedirectPolicy.FOLLOW_ALL
    assert request.max_redirects is None
    assert request.follows_redirects(has_body=True)


@pytest.mark.asyncio
async def test_json_body_sets_content_type(make_expect):
    """Test with_json() encodes the body and sets Content-Type."""
    transport = FakeTransport(json_response(201, {}))
    e = make_expect(transport)

    await e.post("/users").with_json({"name": "alice"}).expect()

    request, body, _ = transport.sent[0]
    assert json.loads(body) == {"name": "alice"}
    assert request.headers["Content-Type"] == "application/json; charset=utf-8"


@pytest.mark.asyncio
async def test_explicit_content_type_kept(make_expect):
    """Test a Content-Type set by the caller is not overwritten."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    await (
        e.post("/upload")
        .with_header("content-type", "application/vnd.api+json")
        .with_json({"a": 1})
        .expect()
    )

    request, _, _ = transport.sent[0]
    assert "Content-Type" not in request.headers
    assert request.headers["content-type"] == "application/vnd.api+json"


@pytest.mark.asyncio
async def test_form_body(make_expect):
    """Test with_form() url-encodes fields, repeating list values."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    await e.post("/form").with_form({"a": "1 2", "b": ["x", "y"]}).expect()

    request, body, _ = transport.sent[0]
    assert body == b"a=1+2&b=x&b=y"
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_body_set_twice_is_usage_failure(make_expect, collecting_reporter):
    """Test setting the body twice fails with both setters named."""
    builder = make_expect(FakeTransport(json_response(200, {}))).post("/x")

    builder.with_text("a").with_json({"b": 1})

    assert builder.chain.failed()
    message = collecting_reporter.messages[0]
    assert "USAGE" in message
    assert "set by with_text(), overwritten by with_json()" in message


def test_second_body_stream_is_closed(make_expect):
    """Test the rejected body stream is released."""
    released = []
    builder = make_expect(FakeTransport(json_response(200, {}))).post("/x")

    builder.with_bytes(b"first")
    builder.with_body(io.BytesIO(b"second"), release=lambda: released.append(True))

    assert released == [True]


@pytest.mark.parametrize(
    "call",
    [
        lambda b: b.with_timeout(0),
        lambda b: b.with_deadline(-1),
        lambda b: b.with_max_retries(-1),
        lambda b: b.with_retry_delay(2, 1),
        lambda b: b.with_retry_policy("sometimes"),
        lambda b: b.with_redirect_policy("sometimes"),
        lambda b: b.with_max_redirects(-1),
    ],
)
def test_invalid_settings_are_usage_failures(make_expect, collecting_reporter, call):
    """Test invalid builder settings fail the request chain."""
    builder = make_expect(FakeTransport(json_response(200, {}))).get("/x")

    call(builder)

    assert builder.chain.failed()
    assert "USAGE" in collecting_reporter.messages[0]


def test_retry_policy_reflects_settings(make_expect):
    """Test retry_policy() is built from the builder settings."""
    builder = (
        make_expect(FakeTransport(json_response(200, {})))
        .get("/x")
        .with_max_retries(2)
        .with_retry_policy(RetryPredicate.ALL_ERRORS)
        .with_retry_delay(0.1, 0.3)
        .with_timeout(1.5)
    )

    policy = builder.retry_policy()

    assert policy.max_attempts == 3
    assert policy.predicate == RetryPredicate.ALL_ERRORS
    assert (policy.min_delay, policy.max_delay) == (0.1, 0.3)
    assert policy.attempt_timeout == 1.5


# ============================================================================
# Sending
# ============================================================================


@pytest.mark.asyncio
async def test_expect_connects_transport(make_expect):
    """Test expect() connects a transport that isn't connected yet."""
    transport = FakeTransport(json_response(200, {}))

    await make_expect(transport).get("/").expect()

    assert transport.connect_count == 1


@pytest.mark.asyncio
async def test_retries_and_attempts(make_expect):
    """Test retried attempts are counted on the response."""
    transport = FakeTransport(json_response(503, {}), json_response(503, {}), json_response(200, {}))
    e = make_expect(transport)

    resp = await e.get("/flaky").with_max_retries(3).expect()

    assert resp.attempts == 3
    assert resp.status_code == 200
    assert resp.rtt is not None


@pytest.mark.asyncio
async def test_body_replayed_across_retries(make_expect):
    """Test a stream body is sent whole on every attempt."""
    transport = FakeTransport(ConnectError("refused"), json_response(200, {}))
    released = []
    e = make_expect(transport)

    await (
        e.put("/blob")
        .with_body(io.BytesIO(b"payload"), release=lambda: released.append(True))
        .with_max_retries(1)
        .expect()
    )

    assert [body for _, body, _ in transport.sent] == [b"payload", b"payload"]
    assert released == [True]


@pytest.mark.asyncio
async def test_terminal_error_is_operation_failure(make_expect, collecting_reporter):
    """Test a request that can't be sent fails with OPERATION."""
    transport = FakeTransport(ConnectError("refused"))
    e = make_expect(transport)

    resp = await e.get("/down").with_max_retries(1).expect()

    assert resp.raw is None
    assert resp.attempts == 2
    assert resp.chain.failed()
    assert "OPERATION" in collecting_reporter.messages[0]
    assert "giving up after 2 attempts" in collecting_reporter.messages[0]

    # Assertions on the empty response are no-ops
    resp.status(200).json().path("$.a").equal(1)
    assert len(collecting_reporter.messages) == 1


@pytest.mark.asyncio
async def test_terminal_error_raises_with_default_reporter():
    """Test the default reporter turns a send failure into AssertionFailedError."""
    e = Expect(transport=FakeTransport(ConnectError("refused")))

    with pytest.raises(AssertionFailedError, match="OPERATION"):
        await e.get("/down").expect()


@pytest.mark.asyncio
async def test_expect_twice_is_usage_failure(make_expect, collecting_reporter):
    """Test a builder can only be sent once."""
    transport = FakeTransport(json_response(200, {}))
    builder = make_expect(transport).get("/")

    await builder.expect()
    second = await builder.expect()

    assert len(transport.sent) == 1
    assert second.raw is None
    assert "expect() already called" in collecting_reporter.messages[0]


@pytest.mark.asyncio
async def test_deadline_stops_hanging_request(make_expect, collecting_reporter):
    """Test with_deadline() bounds a request that never answers."""
    transport = FakeTransport(hang)
    e = make_expect(transport)

    resp = await e.get("/slow").with_deadline(0.05).with_max_retries(5).expect()

    assert resp.raw is None
    assert len(transport.sent) == 1
    assert "deadline exceeded" in collecting_reporter.messages[0]


@pytest.mark.asyncio
async def test_external_token_cancels_request(make_expect, collecting_reporter):
    """Test cancelling the caller's token aborts the request."""
    token = CancelToken()
    transport = FakeTransport(hang)
    e = make_expect(transport)
    asyncio.get_running_loop().call_later(0.02, token.cancel, "shutdown")

    resp = await e.get("/slow").with_token(token).expect()

    assert resp.raw is None
    assert "shutdown" in collecting_reporter.messages[0]


class FailingClose(io.BytesIO):
    def close(self):
        raise OSError("close failed")


@pytest.mark.asyncio
async def test_body_close_error_does_not_mask_cancellation(make_expect, collecting_reporter, caplog):
    """Test a body that fails to close is logged, leaving the cancel failure in place."""
    token = CancelToken()
    token.cancel("shutdown")
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    resp = await e.put("/blob").with_body(FailingClose(b"data")).with_token(token).expect()

    assert resp.raw is None
    assert transport.sent == []
    assert "shutdown" in collecting_reporter.messages[0]
    assert "Request body close failed" in caplog.text


@pytest.mark.asyncio
async def test_matchers_and_printers_called(make_expect):
    """Test matchers see the response and printers see every attempt."""
    transport = FakeTransport(json_response(500, {}), json_response(200, {"ok": True}))
    printer = ListPrinter()
    matched = []
    e = make_expect(transport)

    await (
        e.get("/health")
        .with_printer(printer)
        .with_matcher(matched.append)
        .with_max_retries(1)
        .expect()
    )

    assert [event[0] for event in printer.events] == ["request", "response"] * 2
    assert matched[0].status_code == 200


@pytest.mark.asyncio
async def test_compact_printer_logs_method_and_url(make_expect, caplog):
    """Test CompactPrinter logs one line per attempt."""
    transport = FakeTransport(json_response(200, {}))
    e = make_expect(transport)

    with caplog.at_level("INFO", logger="expecto.printer"):
        await e.get("/users").with_printer(CompactPrinter()).expect()

    assert "GET /users" in caplog.text


@pytest.mark.asyncio
async def test_log_severity_does_not_report(make_expect, collecting_reporter, caplog):
    """Test LOG severity only logs the failure."""
    transport = FakeTransport(json_response(404, {}))
    e = make_expect(transport, severity=Severity.LOG)

    resp = await e.get("/missing").expect()
    resp.status(200)

    assert collecting_reporter.messages == []
    assert "unexpected http status" in caplog.text


def test_value_wraps_arbitrary_data(make_expect, collecting_reporter):
    """Test Expect.value() asserts on plain data."""
    e = make_expect(FakeTransport(HTTPResponse(status=200)))

    e.value({"items": [1, 2]}).path("$.items").length_eq(3)

    assert "expected length exactly 3, got 2" in collecting_reporter.messages[0]
    assert e.chain.tree_failed()
    assert not e.chain.failed()


def test_environment_shared_between_expects():
    """Test one Environment passed to two Configs is shared."""
    env = Environment()
    first = Expect(transport=FakeTransport(HTTPResponse(status=200)), environment=env)
    second = Expect(transport=FakeTransport(HTTPResponse(status=200)), environment=env)

    first.env.put("user_id", 7)

    assert second.env.get_int("user_id") == 7
    assert Expect(transport=FakeTransport(HTTPResponse(status=200))).env.keys() == []


def test_config_and_kwargs_are_exclusive():
    """Test Expect rejects a Config together with keyword arguments."""
    with pytest.raises(TypeError):
        Expect(Config(), base_url="http://x")


def test_failure_types_are_usage():
    """Test the body conflict is recorded as a USAGE failure."""
    handler = RecordingAssertionHandler()
    e = Expect(Config(transport=FakeTransport(HTTPResponse(status=200)), handler=handler))

    e.post("/x").with_text("a").with_text("b")

    assert [f.type for _, f in handler.failures] == [AssertionType.USAGE]

"""
Unit tests for Response assertions.
"""

import pytest

from expecto import AssertionType, Failure, HTTPResponse, Response, StatusRange
from expecto.response import status_text
from tests.conftest import json_response


def failure_types(handler) -> list[AssertionType]:
    return [failure.type for _, failure in handler.failures]


def test_status_text():
    """Test status codes are rendered with their reason phrase."""
    assert status_text(404) == "404 Not Found"
    assert status_text(599) == "599"


def test_status_mismatch(chain, handler):
    """Test status() reports both codes with reason phrases."""
    resp = Response(chain, HTTPResponse(status=404))

    resp.status(200)

    _, failure = handler.failures[0]
    assert failure.type == AssertionType.EQUAL
    assert failure.actual == "404 Not Found"
    assert failure.expected == "200 OK"


@pytest.mark.parametrize(
    "status, status_range, ok",
    [
        (204, StatusRange.SUCCESS, True),
        (302, StatusRange.REDIRECTION, True),
        (404, StatusRange.SUCCESS, False),
        (500, StatusRange.SERVER_ERROR, True),
        (499, StatusRange.CLIENT_ERROR, True),
    ],
)
def test_status_range(chain, handler, status, status_range, ok):
    """Test status_range() checks the status class."""
    Response(chain, HTTPResponse(status=status)).status_range(status_range)

    assert (handler.failures == []) is ok


def test_status_range_failure_payload(chain, handler):
    """Test a range failure lists the expected class."""
    Response(chain, HTTPResponse(status=503)).status_range(StatusRange.SUCCESS)

    _, failure = handler.failures[0]
    assert failure.type == AssertionType.BELONGS
    assert failure.expected.items == ("2xx",)


def test_header(chain, handler):
    """Test header() looks up case-insensitively and fails when missing."""
    resp = Response(chain, HTTPResponse(status=200, headers={"X-Request-Id": "abc"}))

    resp.header("x-request-id").equal("abc")
    assert handler.failures == []

    resp.header("X-Missing")
    assert failure_types(handler) == [AssertionType.CONTAINS_KEY]
    assert resp.chain.failed()


def test_headers_value(chain, handler):
    """Test headers() returns a dict Value."""
    resp = Response(chain, HTTPResponse(status=200, headers={"ETag": "v1"}))

    resp.headers().contains("ETag")

    assert handler.failures == []


def test_header_values_keeps_repeats(chain, handler):
    """Test header_values() lists every line of a repeated header."""
    lines = [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")]
    resp = Response(chain, HTTPResponse(status=200, header_lines=lines))

    resp.header_values("set-cookie").equal(["a=1", "b=2"])
    resp.header_values("X-Missing").is_empty()

    assert handler.failures == []


def test_cookies(chain, handler):
    """Test cookies() lists names and cookie() returns a value."""
    resp = Response(chain, HTTPResponse(status=200, cookies={"session": "s3cret", "theme": "dark"}))

    resp.cookies().equal(["session", "theme"])
    resp.cookie("session").equal("s3cret")
    assert handler.failures == []

    resp.cookie("missing").equal("x")
    _, failure = handler.failures[0]
    assert failure.type == AssertionType.CONTAINS_ELEMENT
    assert failure.actual == ["session", "theme"]
    assert failure.expected == "missing"
    assert len(handler.failures) == 1


def test_content_type(chain, handler):
    """Test content_type() checks media type and charset."""
    resp = Response(chain.clone(), json_response(200, {}))
    resp.content_type("application/json", charset="UTF-8")
    assert handler.failures == []

    Response(chain.clone(), json_response(200, {})).content_type("text/html")
    assert failure_types(handler) == [AssertionType.EQUAL]


def test_json_body(chain, handler):
    """Test json() decodes the body for further assertions."""
    resp = Response(chain, json_response(200, {"items": [{"id": 1}, {"id": 2}]}))

    resp.json().path("$.items").length_eq(2)
    resp.json().path("$.items[*].id").equal([1, 2])

    assert handler.failures == []


def test_json_wrong_content_type(chain, handler):
    """Test json() checks Content-Type unless media_type is None."""
    resp = Response(chain.clone(), HTTPResponse(status=200, headers={"Content-Type": "text/plain"},
                                                body=b'{"a": 1}'))
    resp.json()
    assert failure_types(handler) == [AssertionType.EQUAL]

    other = Response(chain.clone(), HTTPResponse(status=200, body=b'{"a": 1}'))
    other.json(media_type=None).path("$.a").equal(1)
    assert len(handler.failures) == 1


def test_json_decode_error(chain, handler):
    """Test an invalid JSON body fails with VALID."""
    resp = Response(chain, HTTPResponse(status=200, headers={"Content-Type": "application/json"},
                                        body=b"not json"))

    resp.json().path("$.a").equal(1)

    _, failure = handler.failures[0]
    assert failure.type == AssertionType.VALID
    assert failure.actual == "not json"
    assert len(handler.failures) == 1


def test_text_body(chain, handler):
    """Test text() decodes using the declared charset."""
    resp = Response(chain, HTTPResponse(
        status=200,
        headers={"Content-Type": "text/plain; charset=latin-1"},
        body="café".encode("latin-1"),
    ))

    resp.text("text/plain").equal("café")

    assert handler.failures == []


def test_unknown_charset_falls_back_to_utf8(chain, handler):
    """Test an unknown charset in Content-Type decodes as utf-8."""
    resp = Response(chain, HTTPResponse(
        status=200,
        headers={"Content-Type": "application/json; charset=bogus"},
        body='{"name": "café"}'.encode("utf-8"),
    ))

    resp.text().contains("café")
    resp.json().path("$.name").equal("café")

    assert handler.failures == []


def test_context_carries_response(chain, handler):
    """Test failures on a response know the response and its rtt."""
    resp = Response(chain, HTTPResponse(status=500), rtt=0.25, attempts=2)

    resp.status(200)

    context, _ = handler.failures[0]
    assert context.response is resp
    assert context.rtt == 0.25
    assert resp.attempts == 2


def test_unsent_response_is_inert(chain, handler):
    """Test a response without HTTPResponse on a failed chain is a no-op."""
    chain.fail(Failure(
        type=AssertionType.USAGE, causes=[ValueError("not sent")],
    ))
    resp = Response(chain.clone())

    resp.status(200).status_range(StatusRange.SUCCESS)
    resp.json().path("$.a").equal(1)
    resp.header("X").equal("y")

    assert len(handler.failures) == 1
    assert resp.status_code is None
    assert resp.body == b""

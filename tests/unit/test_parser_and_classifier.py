# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from fleetclient.config import StatusPolicy
from fleetclient.errors import (
    BadRequest,
    ClientError,
    Conflict,
    DecodeError,
    Forbidden,
    HttpStatusError,
    NotFound,
    ServerError,
)
from fleetclient.http.adapters import make_raw_response
from fleetclient.http.classifier import ErrorClassifier
from fleetclient.http.codec import RawCodec
from fleetclient.http.models import RawResponse
from fleetclient.http.parser import ResponseParser


def test_parser_splits_at_header_size():
    raw = make_raw_response(200, '{"status":"OK"}', {"Content-Type": "application/json", "X-Id": "7"})
    parsed = ResponseParser().parse(raw)
    assert parsed.status_code == 200
    assert parsed.body == '{"status":"OK"}'
    assert parsed.parsed_body == {"status": "OK"}
    assert parsed.headers == ["HTTP/1.1 200 OK", "Content-Type: application/json", "X-Id: 7"]
    assert parsed.raw_response is raw
    assert parsed.transfer_info["header_size"] == len(raw.header_block)


def test_parser_keeps_redirect_header_blocks():
    header_block = b"HTTP/1.1 302 Found\r\nLocation: /next\r\n\r\nHTTP/1.1 200 OK\r\nX: 1\r\n\r\n"
    raw = RawResponse(200, header_block, b"done", {"header_size": len(header_block)})
    parsed = ResponseParser(RawCodec()).parse(raw)
    assert parsed.headers == ["HTTP/1.1 302 Found", "Location: /next", "", "HTTP/1.1 200 OK", "X: 1"]
    assert parsed.parsed_body == "done"


def test_parser_trusts_reported_offset():
    raw = make_raw_response(200, "abcdef")
    raw.transfer_info["header_size"] = len(raw.header_block) + 2
    parsed = ResponseParser(RawCodec()).parse(raw)
    assert parsed.body == "cdef"


def test_decode_error_keeps_raw_response():
    raw = make_raw_response(200, "<html>oops</html>")
    with pytest.raises(DecodeError) as excinfo:
        ResponseParser().parse(raw)
    assert excinfo.value.raw_response is raw
    assert raw.body_block == b"<html>oops</html>"


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (400, BadRequest),
        (403, Forbidden),
        (404, NotFound),
        (409, Conflict),
        (422, ClientError),
        (503, ServerError),
        (302, HttpStatusError),
        (101, HttpStatusError),
    ],
)
def test_strict_policy_raises_specific_types(status, expected):
    classifier = ErrorClassifier(StatusPolicy.STRICT)
    with pytest.raises(expected) as excinfo:
        classifier.check(make_raw_response(status), "GET", "https://api.example.com/x")
    assert type(excinfo.value) is expected
    assert excinfo.value.status == status


@pytest.mark.parametrize("status", [200, 201, 204, 299])
def test_strict_policy_accepts_2xx(status):
    ErrorClassifier(StatusPolicy.STRICT).check(make_raw_response(status), "GET", "https://x")


def test_lenient_policy_accepts_3xx_and_raises_generic_errors():
    classifier = ErrorClassifier(StatusPolicy.LENIENT)
    classifier.check(make_raw_response(304), "GET", "https://x")
    assert classifier.is_success(399)
    assert not classifier.is_success(199)
    with pytest.raises(HttpStatusError) as excinfo:
        classifier.check(make_raw_response(404), "DELETE", "https://x/items/1")
    assert type(excinfo.value) is HttpStatusError
    assert excinfo.value.method == "DELETE"


def test_classifier_accepts_policy_strings():
    assert ErrorClassifier("lenient").policy is StatusPolicy.LENIENT

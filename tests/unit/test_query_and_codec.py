# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from fleetclient.http.codec import JsonCodec, RawCodec
from fleetclient.http.query import append_query, build_query_string, flatten_params


def test_empty_query_parameters_add_no_question_mark():
    assert build_query_string({}) == ""
    assert build_query_string(None) == ""
    assert append_query("https://api.example.com/items", {}) == "https://api.example.com/items"


def test_query_string_is_ordered_and_form_encoded():
    url = append_query("https://api.example.com/search", {"q": "a b&c", "limit": 5, "lang": "zażółć"})
    assert url.count("?") == 1
    assert url == "https://api.example.com/search?q=a+b%26c&limit=5&lang=za%C5%BC%C3%B3%C5%82%C4%87"


def test_nested_parameters_use_bracket_notation():
    pairs = flatten_params({"filter": {"tags": ["a", "b"], "active": True}, "skip": None})
    assert pairs == [
        ("filter[tags][0]", "a"),
        ("filter[tags][1]", "b"),
        ("filter[active]", "1"),
    ]
    assert build_query_string({"ids": [1, 2]}) == "ids%5B0%5D=1&ids%5B1%5D=2"


def test_false_is_sent_as_zero():
    assert build_query_string({"flag": False}) == "flag=0"


@pytest.mark.parametrize("value", [{"a": 1, "nested": {"b": [1, 2]}}, [1, "two", None], "plain text"])
def test_json_codec_round_trip(value):
    codec = JsonCodec()
    assert codec.decode(codec.encode(value).decode("utf-8")) == value


def test_json_codec_empty_body_decodes_to_none():
    assert JsonCodec().decode("") is None
    assert JsonCodec().decode("  \n") is None


def test_json_codec_rejects_invalid_body():
    with pytest.raises(ValueError):
        JsonCodec().decode("<html>")


def test_raw_codec_passthrough_and_form_encoding():
    codec = RawCodec()
    assert codec.content_type is None
    assert codec.encode(b"\x00\x01") == b"\x00\x01"
    assert codec.encode("text") == b"text"
    assert codec.encode({"a": "1", "b": ["x"]}) == b"a=1&b%5B0%5D=x"
    assert codec.encode(None) == b""
    assert codec.decode("body") == "body"
    with pytest.raises(TypeError):
        codec.encode(3.14)

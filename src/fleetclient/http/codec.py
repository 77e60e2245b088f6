# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Payload codecs used to encode request bodies and decode response bodies."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Protocol

from .query import build_query_string


class PayloadCodec(Protocol):
    """Minimal protocol for request/response payload (de)serialization."""

    content_type: str | None

    def encode(self, value: Any) -> bytes: ...

    def decode(self, body: str) -> Any: ...


class JsonCodec:
    """JSON payloads; decodes objects into plain dicts and lists."""

    content_type: str | None = "application/json"

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def decode(self, body: str) -> Any:
        # An empty body (e.g. 204 No Content) decodes to None rather than failing.
        if not body.strip():
            return None
        return json.loads(body)


class RawCodec:
    """
    Pass-through codec.

    Bytes and text are sent as-is, mappings are form-encoded; responses are
    returned as the decoded text body.
    """

    content_type: str | None = None

    def encode(self, value: Any) -> bytes:
        if value is None:
            return b""
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, Mapping):
            return build_query_string(value).encode("ascii")
        raise TypeError(f"RawCodec cannot encode {type(value).__name__}")

    def decode(self, body: str) -> Any:
        return body


__all__ = ["JsonCodec", "PayloadCodec", "RawCodec"]

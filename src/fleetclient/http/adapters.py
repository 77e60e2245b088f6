# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Test doubles implementing the TransportExecutor protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus

from ..errors import TransportError, TransportErrorCode
from .models import RawResponse, TransferOptions


def make_raw_response(
    status_code: int = 200,
    body: bytes | str = b"",
    headers: Mapping[str, str] | None = None,
    *,
    http_version: str = "HTTP/1.1",
) -> RawResponse:
    """Build a RawResponse with a well-formed header block and matching header_size."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    try:
        reason = HTTPStatus(status_code).phrase
    except ValueError:
        reason = ""
    lines = [f"{http_version} {status_code} {reason}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in (headers or {}).items())
    header_block = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
    return RawResponse(
        status_code=status_code,
        header_block=header_block,
        body_block=body,
        transfer_info={
            "http_code": status_code,
            "header_size": len(header_block),
            "size_download": len(body),
        },
    )


@dataclass
class RecordedCall:
    url: str
    options: TransferOptions


class StubTransport:
    """Deterministic, programmable TransportExecutor for tests."""

    def __init__(self, responses: dict[str, RawResponse | Exception] | None = None):
        self._responses = responses or {}
        self.calls: list[RecordedCall] = []
        self.closed = False

    def add(self, url: str, response: RawResponse | Exception) -> None:
        self._responses[url] = response

    def execute(self, url: str, options: TransferOptions) -> RawResponse:
        self.calls.append(RecordedCall(url=url, options=options))
        response = self._responses.get(url)
        if response is None:
            raise TransportError(TransportErrorCode.COULDNT_CONNECT, "No stubbed response configured", url=url)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


__all__ = ["RecordedCall", "StubTransport", "make_raw_response"]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Split raw responses into status, header lines and decoded body."""

from __future__ import annotations

from ..errors import DecodeError
from .codec import JsonCodec, PayloadCodec
from .models import ParsedResponse, RawResponse


class ResponseParser:
    """
    Parse a RawResponse using the transport-reported `header_size` offset.

    The split is byte-exact: everything before the offset is the header block,
    everything from the offset on is the body. The offset is trusted as reported.
    """

    def __init__(self, codec: PayloadCodec | None = None):
        self.codec = codec or JsonCodec()

    def split(self, raw: RawResponse) -> tuple[bytes, bytes]:
        content = raw.content
        offset = raw.header_size
        return content[:offset], content[offset:]

    @staticmethod
    def header_lines(header_block: bytes) -> list[str]:
        text = header_block.decode("latin-1").strip()
        if not text:
            return []
        return text.split("\r\n")

    def parse(self, raw: RawResponse) -> ParsedResponse:
        header_block, body_block = self.split(raw)
        body = body_block.decode("utf-8", errors="replace")
        try:
            parsed_body = self.codec.decode(body)
        except Exception as exc:
            raise DecodeError(f"Unable to decode response body: {exc}", raw_response=raw) from exc
        return ParsedResponse(
            raw_response=raw,
            body=body,
            parsed_body=parsed_body,
            headers=self.header_lines(header_block),
            status_code=raw.status_code,
            transfer_info=dict(raw.transfer_info),
        )


__all__ = ["ResponseParser"]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across fleetclient."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidRequest


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: str | HttpMethod) -> HttpMethod:
        """Return the matching method; lookup is case-sensitive."""
        if isinstance(value, HttpMethod):
            return value
        try:
            return cls(value)
        except ValueError:
            available = ", ".join(member.value for member in cls)
            raise InvalidRequest(f'Provided method "{value}" is invalid. Available methods: {available}') from None


PAYLOAD_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE})


@dataclass
class RequestSpec:
    """Normalized description of one call, before transport options are derived."""

    path: str
    method: HttpMethod = HttpMethod.GET
    query_params: Mapping[str, Any] = field(default_factory=dict)
    headers: list[str] = field(default_factory=list)
    payload: bytes | None = None

    def __post_init__(self) -> None:
        self.method = HttpMethod.parse(self.method)
        if self.payload is not None and self.method not in PAYLOAD_METHODS:
            raise InvalidRequest(f"{self.method.value} requests cannot carry a payload")


@dataclass(frozen=True)
class TransferOptions:
    """
    Complete set of options handed to a transport executor for one call.

    Instances are immutable; middleware returns a new instance (usually via
    `replace()`) instead of patching the one it received.
    """

    method: HttpMethod = HttpMethod.GET
    follow_redirects: bool = True
    max_redirects: int = 5
    operation_timeout: float = 120.0
    connect_timeout: float | None = None
    verify_ssl: bool = True
    trust_env: bool = True
    user_agent: str | None = None
    post: bool = False
    custom_request: str | None = None
    body: bytes | None = None
    headers: tuple[str, ...] = ()
    resolve: tuple[str, ...] = ()

    def replace(self, **changes: Any) -> TransferOptions:
        if "headers" in changes:
            changes["headers"] = tuple(changes["headers"])
        if "resolve" in changes:
            changes["resolve"] = tuple(changes["resolve"])
        return replace(self, **changes)


DEFAULT_TRANSFER_OPTIONS = TransferOptions()


@dataclass
class RawResponse:
    """Unparsed transport result: header bytes, body bytes and transfer diagnostics."""

    status_code: int
    header_block: bytes = b""
    body_block: bytes = b""
    transfer_info: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> bytes:
        """Full raw response (headers included)."""
        return self.header_block + self.body_block

    @property
    def header_size(self) -> int:
        return int(self.transfer_info.get("header_size", len(self.header_block)))


@dataclass
class ParsedResponse:
    """Client-visible result of a completed call."""

    raw_response: RawResponse
    body: str = ""
    parsed_body: Any = None
    headers: list[str] = field(default_factory=list)
    status_code: int | None = None
    transfer_info: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "DEFAULT_TRANSFER_OPTIONS",
    "HttpMethod",
    "PAYLOAD_METHODS",
    "ParsedResponse",
    "RawResponse",
    "RequestSpec",
    "TransferOptions",
]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import IntEnum
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .http.models import ParsedResponse, RawResponse


class TransportErrorCode(IntEnum):
    """Transfer-level result codes (numbering follows libcurl's CURLcode)."""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    FAILED = 2
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56


class HandleErrorCode(IntEnum):
    """Handle-level result codes reported by the multi-handle executor."""

    OK = 0
    BAD_HANDLE = 1
    INTERNAL_ERROR = 4
    POOL_EXHAUSTED = 100


class HttpClientError(Exception):
    """Base class for every error raised by fleetclient."""


class InvalidRequest(HttpClientError, ValueError):
    """Caller misuse detected before any network I/O."""


class MiddlewareError(HttpClientError):
    """A registered middleware failed or returned something other than options."""

    def __init__(self, message: str, *, middleware: object | None = None):
        super().__init__(message)
        self.middleware = middleware


class TransportError(HttpClientError):
    """Network or protocol level failure reported by the transport."""

    def __init__(self, code: int, message: str, *, handle_level: bool = False, url: str | None = None):
        self.code = int(code)
        self.message = message
        self.handle_level = handle_level
        self.url = url
        super().__init__(f"Transport error: [{self.code}] {message}")

    @property
    def reason(self) -> str:
        if self.handle_level:
            return handle_code_to_reason(self.code)
        return transport_code_to_reason(self.code)


class DecodeError(HttpClientError):
    """Response body could not be decoded with the configured codec."""

    def __init__(self, message: str, *, raw_response: RawResponse | None = None):
        super().__init__(message)
        self.raw_response = raw_response


class HttpStatusError(HttpClientError):
    """Response status code is outside the accepted range."""

    def __init__(
        self,
        status: int,
        method: str,
        url: str,
        raw_response: bytes = b"",
        *,
        response: ParsedResponse | None = None,
    ):
        self.status = status
        self.method = method
        self.url = url
        self.raw_response = raw_response
        self.response = response
        text = raw_response.decode("utf-8", errors="replace")
        super().__init__(f"HttpError | {status} {method} {url} \n {text}")

    @property
    def body(self) -> str:
        if self.response is not None:
            return self.response.body
        return ""


class ClientError(HttpStatusError):
    """Generic 4xx response."""


class ServerError(HttpStatusError):
    """Generic 5xx response."""


class BadRequest(ClientError):
    """400 Bad Request."""


class Forbidden(ClientError):
    """403 Forbidden."""


class NotFound(ClientError):
    """404 Not Found."""


class Conflict(ClientError):
    """409 Conflict."""


def _exception_chain(exc: BaseException, limit: int = 8) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and len(chain) < limit:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def classify_transport_exception(exc: BaseException) -> TransportErrorCode:
    """
    Map httpx/Python exceptions to a transfer-level result code.

    Order matters: httpx timeouts subclass TransportError and TLS failures
    surface as ConnectError wrapping an SSLError.
    """
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorCode.OPERATION_TIMEDOUT

    if isinstance(exc, TimeoutError):
        return TransportErrorCode.OPERATION_TIMEDOUT

    if isinstance(exc, httpx.TooManyRedirects):
        return TransportErrorCode.TOO_MANY_REDIRECTS

    if isinstance(exc, httpx.UnsupportedProtocol):
        return TransportErrorCode.UNSUPPORTED_PROTOCOL

    if isinstance(exc, (httpx.InvalidURL, httpx.LocalProtocolError)):
        return TransportErrorCode.URL_MALFORMAT

    chain = _exception_chain(exc)
    if any(isinstance(item, (ssl_module.SSLError, ssl_module.CertificateError)) for item in chain):
        return TransportErrorCode.SSL_CONNECT_ERROR

    if any(isinstance(item, socket.gaierror) for item in chain):
        return TransportErrorCode.COULDNT_RESOLVE_HOST

    if isinstance(exc, httpx.ConnectError):
        return TransportErrorCode.COULDNT_CONNECT

    if isinstance(exc, httpx.RemoteProtocolError):
        return TransportErrorCode.GOT_NOTHING

    if isinstance(exc, httpx.WriteError):
        return TransportErrorCode.SEND_ERROR

    if isinstance(exc, (httpx.ReadError, httpx.NetworkError)):
        return TransportErrorCode.RECV_ERROR

    if isinstance(exc, (ConnectionRefusedError, ConnectionResetError, ConnectionError)):
        return TransportErrorCode.COULDNT_CONNECT

    return TransportErrorCode.FAILED


def transport_code_to_reason(code: int | None) -> str:
    """User-facing reason string."""
    mapping = {
        TransportErrorCode.OK: "",
        TransportErrorCode.UNSUPPORTED_PROTOCOL: "Unsupported protocol",
        TransportErrorCode.FAILED: "Transfer failed",
        TransportErrorCode.URL_MALFORMAT: "Malformed URL or request",
        TransportErrorCode.COULDNT_RESOLVE_HOST: "DNS resolution failure",
        TransportErrorCode.COULDNT_CONNECT: "Could not connect to host",
        TransportErrorCode.OPERATION_TIMEDOUT: "Operation timed out",
        TransportErrorCode.SSL_CONNECT_ERROR: "TLS/certificate issue",
        TransportErrorCode.TOO_MANY_REDIRECTS: "Too many redirects",
        TransportErrorCode.GOT_NOTHING: "Server closed the connection without a valid reply",
        TransportErrorCode.SEND_ERROR: "Failed sending data",
        TransportErrorCode.RECV_ERROR: "Failed receiving data",
        None: "",
    }
    return mapping.get(code, "Transfer failed")


def handle_code_to_reason(code: int | None) -> str:
    mapping = {
        HandleErrorCode.OK: "",
        HandleErrorCode.BAD_HANDLE: "Transport handle is closed or invalid",
        HandleErrorCode.INTERNAL_ERROR: "Transport handle internal error",
        HandleErrorCode.POOL_EXHAUSTED: "No connection available on the transport handle",
        None: "",
    }
    return mapping.get(code, "Transport handle error")


__all__ = [
    "BadRequest",
    "ClientError",
    "Conflict",
    "DecodeError",
    "Forbidden",
    "HandleErrorCode",
    "HttpClientError",
    "HttpStatusError",
    "InvalidRequest",
    "MiddlewareError",
    "NotFound",
    "ServerError",
    "TransportError",
    "TransportErrorCode",
    "classify_transport_exception",
    "handle_code_to_reason",
    "transport_code_to_reason",
]

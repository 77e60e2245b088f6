# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
fleetclient package entrypoint.

Outbound HTTP client for services that call other HTTP/REST APIs, typically a
small fixed fleet of backend addresses. Wire-level work is delegated to httpx;
this package governs request assembly, middleware, address pinning, connection
reuse and the mapping of failures to typed errors.
"""

from .config import ClientSettings, StatusPolicy, load_client_settings
from .errors import (
    BadRequest,
    ClientError,
    Conflict,
    DecodeError,
    Forbidden,
    HttpClientError,
    HttpStatusError,
    InvalidRequest,
    MiddlewareError,
    NotFound,
    ServerError,
    TransportError,
    TransportErrorCode,
)
from .http import (
    BasicTransport,
    HttpClient,
    HttpMethod,
    JsonCodec,
    MultiTransport,
    ParsedResponse,
    RawCodec,
    RawResponse,
    TransferOptions,
    create_basic_client,
    create_rest_client,
)
from .log import install_null_handler, setup_logging
from .version import __version__

install_null_handler()

__all__ = [
    "BadRequest",
    "BasicTransport",
    "ClientError",
    "ClientSettings",
    "Conflict",
    "DecodeError",
    "Forbidden",
    "HttpClient",
    "HttpClientError",
    "HttpMethod",
    "HttpStatusError",
    "InvalidRequest",
    "JsonCodec",
    "MiddlewareError",
    "MultiTransport",
    "NotFound",
    "ParsedResponse",
    "RawCodec",
    "RawResponse",
    "ServerError",
    "StatusPolicy",
    "TransferOptions",
    "TransportError",
    "TransportErrorCode",
    "create_basic_client",
    "create_rest_client",
    "load_client_settings",
    "setup_logging",
    "__version__",
]

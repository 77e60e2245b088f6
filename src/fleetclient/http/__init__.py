# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import StubTransport, make_raw_response
from .addresses import AddressPool, AddressSelector, ResolverCache, build_resolve_overrides
from .classifier import ErrorClassifier
from .client import HttpClient, create_basic_client, create_rest_client
from .codec import JsonCodec, PayloadCodec, RawCodec
from .headers import header_lines_from_mapping, header_value
from .middleware import Middleware, MiddlewareChain, inject_trace_headers, tracing_middleware
from .models import HttpMethod, ParsedResponse, RawResponse, RequestSpec, TransferOptions
from .parser import ResponseParser
from .query import build_query_string
from .transport import BasicTransport, MultiTransport, TransportExecutor, TransportHandle

__all__ = [
    "AddressPool",
    "AddressSelector",
    "BasicTransport",
    "ErrorClassifier",
    "HttpClient",
    "HttpMethod",
    "JsonCodec",
    "Middleware",
    "MiddlewareChain",
    "MultiTransport",
    "ParsedResponse",
    "PayloadCodec",
    "RawCodec",
    "RawResponse",
    "RequestSpec",
    "ResolverCache",
    "ResponseParser",
    "StubTransport",
    "TransferOptions",
    "TransportExecutor",
    "TransportHandle",
    "build_query_string",
    "build_resolve_overrides",
    "create_basic_client",
    "create_rest_client",
    "header_lines_from_mapping",
    "header_value",
    "inject_trace_headers",
    "make_raw_response",
    "tracing_middleware",
]

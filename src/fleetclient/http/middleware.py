# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Ordered transformations of outgoing transfer options.

A middleware is any callable `(url, options) -> options`. The chain calls them
in registration order and hands each one the options returned by the previous
one; the returned value replaces the options wholesale.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence

from opentelemetry import context as otel_context
from opentelemetry import propagate, trace

from ..errors import MiddlewareError
from .headers import header_lines_from_mapping, merge_header_lines
from .models import TransferOptions

logger = logging.getLogger(__name__)

Middleware = Callable[[str, TransferOptions], TransferOptions]


def inject_trace_headers(ctx: otel_context.Context | None, headers: Sequence[str]) -> list[str]:
    """
    Return `headers` with propagation headers for `ctx` merged in.

    Without a valid span in `ctx` the headers are returned unchanged.
    """
    span_context = trace.get_current_span(ctx).get_span_context()
    if not span_context.is_valid:
        return list(headers)
    carrier: dict[str, str] = {}
    propagate.inject(carrier, context=ctx)
    if not carrier:
        return list(headers)
    return merge_header_lines(headers, header_lines_from_mapping(carrier))


def tracing_middleware(url: str, options: TransferOptions) -> TransferOptions:  # noqa: ARG001
    """Default middleware: propagate the ambient OpenTelemetry trace context."""
    headers = inject_trace_headers(otel_context.get_current(), options.headers)
    if tuple(headers) == options.headers:
        return options
    return options.replace(headers=headers)


class MiddlewareChain:
    """Registration-ordered list of middleware applied strictly in sequence."""

    def __init__(self, middlewares: Sequence[Middleware] = ()):
        self._middlewares: list[Middleware] = list(middlewares)

    def add(self, middleware: Middleware) -> MiddlewareChain:
        if not callable(middleware):
            raise TypeError("middleware must be callable")
        self._middlewares.append(middleware)
        return self

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(list(self._middlewares))

    def apply(self, url: str, options: TransferOptions) -> TransferOptions:
        current = options
        for middleware in self._middlewares:
            name = getattr(middleware, "__qualname__", repr(middleware))
            try:
                result = middleware(url, current)
            except Exception as exc:
                raise MiddlewareError(f"Middleware {name} failed: {exc}", middleware=middleware) from exc
            if not isinstance(result, TransferOptions):
                raise MiddlewareError(
                    f"Middleware {name} returned {type(result).__name__}, expected TransferOptions",
                    middleware=middleware,
                )
            current = result
        logger.debug("Applied %d middleware to %s", len(self._middlewares), url)
        return current


__all__ = ["Middleware", "MiddlewareChain", "inject_trace_headers", "tracing_middleware"]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HttpClient facade and factories."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx

from ..config import ClientSettings, load_client_settings
from ..errors import DecodeError, InvalidRequest
from .addresses import AddressPool, AddressSelector, build_resolve_overrides
from .classifier import ErrorClassifier
from .codec import JsonCodec, PayloadCodec, RawCodec
from .headers import has_header
from .middleware import Middleware, MiddlewareChain, tracing_middleware
from .models import (
    DEFAULT_TRANSFER_OPTIONS,
    PAYLOAD_METHODS,
    HttpMethod,
    ParsedResponse,
    RawResponse,
    RequestSpec,
    TransferOptions,
)
from .parser import ResponseParser
from .query import append_query
from .transport import BasicTransport, MultiTransport, TransportExecutor
from .url import is_valid_url, join_url, url_host

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Outbound HTTP client bound to one base URL.

    Each call runs: validate -> build RequestSpec -> pick address -> build
    TransferOptions -> middleware -> executor -> parse -> classify. The last
    successful response is kept on the instance and replaced by the next one;
    failed calls leave it untouched. Instances are not thread-safe.
    """

    def __init__(
        self,
        base_url: str,
        addresses: Sequence[str] = (),
        *,
        executor: TransportExecutor | None = None,
        codec: PayloadCodec | None = None,
        settings: ClientSettings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if not is_valid_url(base_url):
            raise InvalidRequest(f"Invalid API base url specified [{base_url}]")

        self.base_url = base_url
        self.settings = settings or load_client_settings()
        self.address_pool = AddressPool(url_host(base_url), tuple(addresses))
        self.codec = codec or JsonCodec()
        self.parser = ResponseParser(self.codec)
        self.classifier = ErrorClassifier(self.settings.status_policy)
        self.executor: TransportExecutor = executor or BasicTransport()
        self.middleware = MiddlewareChain([tracing_middleware])
        self._selector = AddressSelector(self.address_pool.candidates, clock=clock)
        self._last_response: ParsedResponse | None = None

    # -- configuration -----------------------------------------------------------------

    def add_middleware(self, middleware: Middleware) -> HttpClient:
        self.middleware.add(middleware)
        return self

    def set_connection_timeout(self, seconds: float) -> HttpClient:
        self.settings = self.settings.with_timeouts(connect_timeout=seconds)
        return self

    def set_operation_timeout(self, seconds: float) -> HttpClient:
        self.settings = self.settings.with_timeouts(operation_timeout=seconds)
        return self

    # -- request assembly --------------------------------------------------------------

    def build_request_spec(self, path: str, method: str | HttpMethod, options: Mapping[str, Any]) -> RequestSpec:
        http_method = HttpMethod.parse(method)

        payload: bytes | None = None
        if http_method in PAYLOAD_METHODS:
            value = options.get("post_parameters")
            if value is None:
                value = options.get("payload")
            try:
                payload = self.codec.encode({} if value is None else value)
            except (TypeError, ValueError) as exc:
                raise InvalidRequest(f"Unable to encode request payload: {exc}") from exc

        headers = [str(line) for line in (options.get("headers") or [])]
        for line in headers:
            if not line.isascii():
                raise InvalidRequest(f"Header line must be ASCII [{line}]")
        content_type = getattr(self.codec, "content_type", None)
        if content_type and not has_header(headers, "Content-Type"):
            headers.append(f"Content-Type: {content_type}")

        return RequestSpec(
            path=path,
            method=http_method,
            query_params=dict(options.get("query_parameters") or {}),
            headers=headers,
            payload=payload,
        )

    def build_transfer_options(self, spec: RequestSpec) -> TransferOptions:
        """Merge defaults < settings < method-forced options < caller headers."""
        settings = self.settings
        options = DEFAULT_TRANSFER_OPTIONS.replace(
            operation_timeout=settings.operation_timeout,
            connect_timeout=settings.connect_timeout,
            follow_redirects=settings.follow_redirects,
            max_redirects=settings.max_redirects,
            verify_ssl=settings.verify_ssl,
            trust_env=settings.trust_env,
            user_agent=settings.user_agent,
        )

        options = options.replace(
            method=spec.method,
            custom_request=spec.method.value,
            post=spec.method is HttpMethod.POST,
            body=spec.payload,
        )

        selected = self._selector.next()
        if selected is not None:
            options = options.replace(
                resolve=build_resolve_overrides(self.address_pool.base_host, self.address_pool.candidates, selected)
            )

        if spec.headers:
            options = options.replace(headers=spec.headers)
        return options

    # -- execution ---------------------------------------------------------------------

    def request(
        self,
        path: str,
        method: str | HttpMethod = HttpMethod.GET,
        options: Mapping[str, Any] | None = None,
    ) -> ParsedResponse:
        options = options or {}
        url = join_url(self.base_url, path)
        if not is_valid_url(url):
            raise InvalidRequest(f'Provided URL "{url}" is invalid')

        spec = self.build_request_spec(path, method, options)
        url = append_query(url, spec.query_params)
        transfer_options = self.middleware.apply(url, self.build_transfer_options(spec))

        logger.debug("%s %s", spec.method.value, url)
        raw = self.executor.execute(url, transfer_options)
        response = self._parse(raw, spec.method.value, url)
        self.classifier.check(raw, spec.method.value, url, response=response)

        logger.debug("%s %s -> %s", spec.method.value, url, raw.status_code)
        self._last_response = response
        return response

    def _parse(self, raw: RawResponse, method: str, url: str) -> ParsedResponse:
        try:
            return self.parser.parse(raw)
        except DecodeError:
            if self.classifier.is_success(raw.status_code):
                raise
            # Error pages are often not in the payload format; report the status instead.
            header_block, body_block = self.parser.split(raw)
            fallback = ParsedResponse(
                raw_response=raw,
                body=body_block.decode("utf-8", errors="replace"),
                headers=self.parser.header_lines(header_block),
                status_code=raw.status_code,
                transfer_info=dict(raw.transfer_info),
            )
            self.classifier.check(raw, method, url, response=fallback)
            raise

    def get(
        self,
        path: str,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Sequence[str] | None = None,
    ) -> ParsedResponse:
        return self.request(path, HttpMethod.GET, {"query_parameters": query_parameters, "headers": headers})

    def post(
        self,
        path: str,
        post_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Sequence[str] | None = None,
    ) -> ParsedResponse:
        return self.request(
            path,
            HttpMethod.POST,
            {"post_parameters": post_parameters, "query_parameters": query_parameters, "headers": headers},
        )

    def put(
        self,
        path: str,
        post_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Sequence[str] | None = None,
    ) -> ParsedResponse:
        return self.request(
            path,
            HttpMethod.PUT,
            {"post_parameters": post_parameters, "query_parameters": query_parameters, "headers": headers},
        )

    def patch(
        self,
        path: str,
        post_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Sequence[str] | None = None,
    ) -> ParsedResponse:
        return self.request(
            path,
            HttpMethod.PATCH,
            {"post_parameters": post_parameters, "query_parameters": query_parameters, "headers": headers},
        )

    def delete(
        self,
        path: str,
        post_parameters: Any = None,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Sequence[str] | None = None,
    ) -> ParsedResponse:
        return self.request(
            path,
            HttpMethod.DELETE,
            {"post_parameters": post_parameters, "query_parameters": query_parameters, "headers": headers},
        )

    # -- last response -----------------------------------------------------------------

    @property
    def last_response(self) -> ParsedResponse | None:
        return self._last_response

    @property
    def raw_response(self) -> bytes | None:
        """Full raw bytes (headers included) of the last successful call."""
        if self._last_response is None:
            return None
        return self._last_response.raw_response.content

    @property
    def body(self) -> str | None:
        return None if self._last_response is None else self._last_response.body

    @property
    def parsed_body(self) -> Any:
        return None if self._last_response is None else self._last_response.parsed_body

    @property
    def headers(self) -> list[str]:
        return [] if self._last_response is None else list(self._last_response.headers)

    @property
    def status_code(self) -> int | None:
        return None if self._last_response is None else self._last_response.status_code

    @property
    def transfer_info(self) -> dict[str, Any]:
        return {} if self._last_response is None else dict(self._last_response.transfer_info)

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


def _build_executor(base_url: str, multi: bool, transport: httpx.BaseTransport | None) -> TransportExecutor:
    if multi:
        return MultiTransport(url_host(base_url), transport=transport)
    return BasicTransport(transport=transport)


def create_rest_client(
    base_url: str,
    addresses: Sequence[str] = (),
    *,
    multi: bool = False,
    settings: ClientSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> HttpClient:
    """Factory for a JSON client; `multi=True` reuses connections per backend address."""
    return HttpClient(
        base_url,
        addresses,
        executor=_build_executor(base_url, multi, transport),
        codec=JsonCodec(),
        settings=settings,
    )


def create_basic_client(
    base_url: str,
    addresses: Sequence[str] = (),
    *,
    multi: bool = False,
    settings: ClientSettings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> HttpClient:
    """Factory for a pass-through client (raw text bodies, form-encoded payloads)."""
    return HttpClient(
        base_url,
        addresses,
        executor=_build_executor(base_url, multi, transport),
        codec=RawCodec(),
        settings=settings,
    )


__all__ = ["HttpClient", "create_basic_client", "create_rest_client"]

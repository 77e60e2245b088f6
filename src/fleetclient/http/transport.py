# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
httpx-backed transport executors.

Two strategies share the same `Transfer` state machine:

- `BasicTransport` opens a fresh httpx.Client for every call and closes it
  afterwards.
- `MultiTransport` keeps one long-lived `TransportHandle` (an httpx.Client plus
  its resolver pins) per destination and routes every call through it, so
  keep-alive connections are reused across calls to the same backend.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from ..errors import HandleErrorCode, TransportError, TransportErrorCode, classify_transport_exception
from .addresses import ResolverCache, parse_resolve_entry
from .headers import has_header, header_pairs
from .models import RawResponse, TransferOptions

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443}
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class TransportExecutor(Protocol):
    """Executes one call and returns the raw response or raises TransportError."""

    def execute(self, url: str, options: TransferOptions) -> RawResponse: ...

    def close(self) -> None:  # pragma: no cover - optional for executors without resources
        ...


def build_timeout(options: TransferOptions) -> httpx.Timeout:
    connect = options.connect_timeout if options.connect_timeout is not None else options.operation_timeout
    return httpx.Timeout(options.operation_timeout, connect=connect)


def build_client(options: TransferOptions, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Create an httpx.Client configured from the transfer options."""
    return httpx.Client(
        follow_redirects=options.follow_redirects,
        max_redirects=options.max_redirects,
        timeout=build_timeout(options),
        verify=options.verify_ssl,
        trust_env=options.trust_env,
        transport=transport,
    )


def _bracket(address: str) -> str:
    return f"[{address}]" if ":" in address else address


def _format_header_block(response: httpx.Response) -> bytes:
    reason = response.reason_phrase or ""
    lines = [f"{response.http_version} {response.status_code} {reason}".rstrip()]
    for name, value in response.headers.raw:
        lines.append(f"{name.decode('latin-1')}: {value.decode('latin-1')}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


class TransferState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"


@dataclass
class TransferResult:
    """Outcome of one transfer; handle-level and transfer-level codes are independent."""

    handle_code: int = HandleErrorCode.OK
    transfer_code: int = TransportErrorCode.OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.handle_code == HandleErrorCode.OK and self.transfer_code == TransportErrorCode.OK

    def raise_for_error(self, url: str) -> None:
        if self.handle_code != HandleErrorCode.OK:
            raise TransportError(self.handle_code, self.message, handle_level=True, url=url)
        if self.transfer_code != TransportErrorCode.OK:
            raise TransportError(self.transfer_code, self.message, url=url)


class _TransferPump:
    """
    Runs `client.send()` and the body iteration on a daemon thread.

    Results come back through a queue as ("response" | "chunk" | "end" |
    "error", value) events, so the owning transfer can stop waiting once its
    deadline passes even while a socket read is still blocked.
    """

    def __init__(self, client: httpx.Client, request: httpx.Request, *, follow_redirects: bool):
        self._events: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._abandoned = threading.Event()
        self._response: httpx.Response | None = None
        self._thread = threading.Thread(
            target=self._run,
            args=(client, request, follow_redirects),
            name="fleetclient-transfer",
            daemon=True,
        )
        self._thread.start()

    def _run(self, client: httpx.Client, request: httpx.Request, follow_redirects: bool) -> None:
        try:
            response = client.send(request, stream=True, follow_redirects=follow_redirects)
            self._response = response
            self._events.put(("response", response))
            for chunk in response.iter_bytes():
                if self._abandoned.is_set():
                    break
                self._events.put(("chunk", chunk))
            self._events.put(("end", None))
        except Exception as exc:
            if self._response is not None:
                self._response.close()
            self._events.put(("error", exc))
        finally:
            if self._abandoned.is_set() and self._response is not None:
                self._response.close()
                logger.debug("Closed abandoned transfer to %s", request.url)

    def next_event(self, timeout: float) -> tuple[str, Any]:
        """Wait up to `timeout` seconds for the next event; worker errors are re-raised here."""
        try:
            kind, value = self._events.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            raise TimeoutError(f"Operation timed out after waiting {timeout:.3f} seconds") from None
        if kind == "error":
            raise value
        return kind, value

    def abandon(self) -> None:
        self._abandoned.set()


class Transfer:
    """
    One in-flight call driven step by step.

    The first `step()` sends the request and waits for the response headers;
    every further step takes one body chunk. Network I/O runs on a worker
    thread and every wait is bounded by what is left of `operation_timeout`,
    so the limit covers the whole call (headers included). The transfer is
    complete once the body is exhausted or an error has been recorded.
    """

    def __init__(
        self,
        url: str,
        options: TransferOptions,
        *,
        resolver: ResolverCache | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.options = options
        self.resolver = resolver if resolver is not None else ResolverCache()
        self.state = TransferState.PENDING
        self.result = TransferResult()
        self.raw_response: RawResponse | None = None
        self._clock = clock
        self._started_at = 0.0
        self._pump: _TransferPump | None = None
        self._response: httpx.Response | None = None
        self._body = bytearray()
        self._primary_ip: str | None = None

    @property
    def done(self) -> bool:
        return self.state is TransferState.DONE

    @property
    def method(self) -> str:
        if self.options.custom_request:
            return self.options.custom_request
        if self.options.post:
            return "POST"
        return self.options.method.value

    def build_request(self, client: httpx.Client) -> httpx.Request:
        url = httpx.URL(self.url)
        headers = header_pairs(self.options.headers)
        extensions: dict[str, Any] = {}

        self.resolver.apply(self.options.resolve)
        port = url.port or _DEFAULT_PORTS.get(url.scheme)
        pinned = self.resolver.lookup(url.host, port) if port is not None else None
        if pinned is not None:
            self._primary_ip = pinned
            if not has_header(self.options.headers, "Host"):
                headers.append(("Host", url.netloc.decode("ascii")))
            if url.scheme == "https":
                extensions["sni_hostname"] = url.host
            url = url.copy_with(host=_bracket(pinned))

        if self.options.user_agent and not has_header(self.options.headers, "User-Agent"):
            headers.append(("User-Agent", self.options.user_agent))
        if self.options.post and self.options.body and not has_header(self.options.headers, "Content-Type"):
            headers.append(("Content-Type", _FORM_CONTENT_TYPE))

        return client.build_request(
            self.method,
            url,
            headers=headers,
            content=self.options.body,
            timeout=build_timeout(self.options),
            extensions=extensions or None,
        )

    def step(self, client: httpx.Client) -> None:
        if self.done:
            return
        try:
            if self.state is TransferState.PENDING:
                self._start(client)
            else:
                self._receive()
        except httpx.PoolTimeout as exc:
            self.fail(HandleErrorCode.POOL_EXHAUSTED, TransportErrorCode.OK, str(exc) or "pool timeout")
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            self.fail(HandleErrorCode.OK, classify_transport_exception(exc), str(exc) or type(exc).__name__)
        except RuntimeError as exc:
            # httpx raises RuntimeError when sending through a closed client; stream errors are transfer-level.
            if client.is_closed:
                self.fail(HandleErrorCode.BAD_HANDLE, TransportErrorCode.OK, str(exc))
            else:
                self.fail(HandleErrorCode.OK, classify_transport_exception(exc), str(exc) or type(exc).__name__)

    def _start(self, client: httpx.Client) -> None:
        self._started_at = self._clock()
        try:
            request = self.build_request(client)
        except ValueError as exc:
            # Header values httpx cannot encode surface as UnicodeEncodeError.
            self.fail(HandleErrorCode.OK, TransportErrorCode.URL_MALFORMAT, f"Invalid request: {exc}")
            return
        client.max_redirects = self.options.max_redirects
        self._pump = _TransferPump(client, request, follow_redirects=self.options.follow_redirects)
        self.state = TransferState.RUNNING
        _, self._response = self._pump.next_event(self._remaining())

    def _remaining(self) -> float:
        elapsed = self._clock() - self._started_at
        if elapsed > self.options.operation_timeout:
            raise TimeoutError(f"Operation timed out after {elapsed:.3f} seconds")
        return self.options.operation_timeout - elapsed

    def _receive(self) -> None:
        assert self._pump is not None
        kind, chunk = self._pump.next_event(self._remaining())
        if kind == "end":
            self._finish()
            return
        self._body.extend(chunk)

    def _finish(self) -> None:
        response = self._response
        assert response is not None
        response.close()
        header_block = b"".join(_format_header_block(item) for item in (*response.history, response))
        body = bytes(self._body)
        self.raw_response = RawResponse(
            status_code=response.status_code,
            header_block=header_block,
            body_block=body,
            transfer_info=self._transfer_info(response, len(header_block), len(body)),
        )
        self.state = TransferState.DONE

    def fail(self, handle_code: int, transfer_code: int, message: str) -> None:
        if self._pump is not None:
            self._pump.abandon()
        self.result = TransferResult(handle_code=handle_code, transfer_code=transfer_code, message=message)
        self.state = TransferState.DONE

    def _transfer_info(self, response: httpx.Response, header_size: int, size_download: int) -> dict[str, Any]:
        return {
            "url": self.url,
            "effective_url": str(response.url),
            "http_code": response.status_code,
            "http_version": response.http_version,
            "header_size": header_size,
            "size_download": size_download,
            "content_type": response.headers.get("content-type"),
            "redirect_count": len(response.history),
            "primary_ip": self._primary_ip,
            "total_time": max(0.0, self._clock() - self._started_at),
        }


class BasicTransport:
    """Single-shot executor: one httpx.Client per call, closed unconditionally."""

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        client_factory: Callable[[TransferOptions], httpx.Client] | None = None,
    ):
        self._client_factory = client_factory or (lambda options: build_client(options, transport))

    def execute(self, url: str, options: TransferOptions) -> RawResponse:
        client = self._client_factory(options)
        transfer = Transfer(url, options)
        try:
            while not transfer.done:
                transfer.step(client)
        finally:
            client.close()

        transfer.result.raise_for_error(url)
        assert transfer.raw_response is not None
        return transfer.raw_response

    def close(self) -> None:
        return None


class TransportHandle:
    """
    Long-lived, connection-reusing transport context for one destination.

    Transfers are attached, driven with `perform()` until they report
    completion, read back with `info_read()` and detached.
    """

    def __init__(self, key: str, client: httpx.Client):
        self.key = key
        self.client = client
        self.resolver = ResolverCache()
        self.transfer_count = 0
        self._attached: list[Transfer] = []

    def attach(self, transfer: Transfer) -> None:
        transfer.resolver = self.resolver
        self._attached.append(transfer)
        self.transfer_count += 1

    def detach(self, transfer: Transfer) -> None:
        if transfer in self._attached:
            self._attached.remove(transfer)

    def perform(self) -> int:
        """Advance every attached transfer one step; return how many are still running."""
        for transfer in self._attached:
            if transfer.done:
                continue
            if self.client.is_closed:
                transfer.fail(HandleErrorCode.BAD_HANDLE, TransportErrorCode.OK, "Transport handle is closed")
                continue
            transfer.step(self.client)
        return sum(1 for transfer in self._attached if not transfer.done)

    def info_read(self, transfer: Transfer) -> TransferResult:
        """Return the result recorded by `transfer` itself (not the latest handle event)."""
        return transfer.result

    def close(self) -> None:
        self.client.close()


def handle_key_for(options: TransferOptions, base_host: str) -> str:
    """Target address of the last resolve entry, else the base host."""
    if options.resolve:
        return parse_resolve_entry(options.resolve[-1]).address
    return base_host


class MultiTransport:
    """
    Multi-handle executor.

    Handles are created lazily, one per handle key, and live until `close()`;
    there is no eviction, so the number of distinct destinations should stay
    small (a fixed backend fleet).
    """

    def __init__(
        self,
        base_host: str,
        *,
        transport: httpx.BaseTransport | None = None,
        client_factory: Callable[[TransferOptions], httpx.Client] | None = None,
        dispose: Callable[[TransportHandle], None] | None = None,
    ):
        self.base_host = base_host
        self._client_factory = client_factory or (lambda options: build_client(options, transport))
        self._dispose = dispose or TransportHandle.close
        self._handles: dict[str, TransportHandle] = {}

    @property
    def handles(self) -> dict[str, TransportHandle]:
        return dict(self._handles)

    def handle_for(self, options: TransferOptions) -> TransportHandle:
        key = handle_key_for(options, self.base_host)
        handle = self._handles.get(key)
        if handle is None:
            handle = TransportHandle(key, self._client_factory(options))
            self._handles[key] = handle
            logger.debug("Created transport handle for %s", key)
        return handle

    def execute(self, url: str, options: TransferOptions) -> RawResponse:
        handle = self.handle_for(options)
        transfer = Transfer(url, options)
        handle.attach(transfer)
        try:
            while not transfer.done:
                handle.perform()
            result = handle.info_read(transfer)
        finally:
            handle.detach(transfer)

        result.raise_for_error(url)
        assert transfer.raw_response is not None
        return transfer.raw_response

    def close(self) -> None:
        handles, self._handles = self._handles, {}
        for key, handle in handles.items():
            logger.debug("Disposing transport handle for %s", key)
            self._dispose(handle)


__all__ = [
    "BasicTransport",
    "MultiTransport",
    "Transfer",
    "TransferResult",
    "TransferState",
    "TransportExecutor",
    "TransportHandle",
    "build_client",
    "build_timeout",
    "handle_key_for",
]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import io
import logging
import socket
import ssl

import httpx

from fleetclient import config
from fleetclient.config import DEFAULT_USER_AGENT, ClientSettings, StatusPolicy
from fleetclient.errors import (
    HandleErrorCode,
    HttpStatusError,
    NotFound,
    TransportError,
    TransportErrorCode,
    classify_transport_exception,
)
from fleetclient.log import resolve_level, setup_logging


def test_client_settings_defaults():
    settings = ClientSettings()
    assert settings.operation_timeout == 120.0
    assert settings.connect_timeout is None
    assert settings.follow_redirects is True
    assert settings.max_redirects == 5
    assert settings.status_policy is StatusPolicy.STRICT
    assert settings.user_agent == DEFAULT_USER_AGENT


def test_client_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("FLEETCLIENT_HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("FLEETCLIENT_HTTP_CONNECT_TIMEOUT", "2")
    monkeypatch.setenv("FLEETCLIENT_HTTP_REDIRECTS", "false")
    monkeypatch.setenv("FLEETCLIENT_HTTP_MAX_REDIRECTS", "2")
    monkeypatch.setenv("FLEETCLIENT_HTTP_VERIFY_SSL", "0")
    monkeypatch.setenv("FLEETCLIENT_HTTP_TRUST_ENV", "no")
    monkeypatch.setenv("FLEETCLIENT_USER_AGENT", "CustomAgent/1.0")
    monkeypatch.setenv("FLEETCLIENT_STATUS_POLICY", "LENIENT")

    settings = config.load_client_settings()

    assert settings.operation_timeout == 5.5
    assert settings.connect_timeout == 2.0
    assert settings.follow_redirects is False
    assert settings.max_redirects == 2
    assert settings.verify_ssl is False
    assert settings.trust_env is False
    assert settings.user_agent == "CustomAgent/1.0"
    assert settings.status_policy is StatusPolicy.LENIENT


def test_client_settings_invalid_env_fall_back(monkeypatch):
    monkeypatch.setenv("FLEETCLIENT_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("FLEETCLIENT_HTTP_CONNECT_TIMEOUT", "-")
    monkeypatch.setenv("FLEETCLIENT_HTTP_MAX_REDIRECTS", "-3")
    monkeypatch.setenv("FLEETCLIENT_STATUS_POLICY", "whatever")

    settings = config.load_client_settings()

    assert settings.operation_timeout == ClientSettings.operation_timeout
    assert settings.connect_timeout is None
    assert settings.max_redirects == ClientSettings.max_redirects
    assert settings.status_policy is StatusPolicy.STRICT


def test_non_positive_connect_timeout_means_unset(monkeypatch):
    monkeypatch.setenv("FLEETCLIENT_HTTP_CONNECT_TIMEOUT", "0")
    assert config.load_client_settings().connect_timeout is None


def test_load_client_settings_reads_env_at_call_time(monkeypatch):
    monkeypatch.setenv("FLEETCLIENT_HTTP_TIMEOUT", "7.7")
    assert config.load_client_settings().operation_timeout == 7.7
    monkeypatch.setenv("FLEETCLIENT_HTTP_TIMEOUT", "8.8")
    assert config.load_client_settings().operation_timeout == 8.8


def test_with_timeouts_returns_copy():
    settings = ClientSettings()
    updated = settings.with_timeouts(connect_timeout=3, operation_timeout=9)
    assert updated.connect_timeout == 3.0
    assert updated.operation_timeout == 9.0
    assert settings.connect_timeout is None
    assert settings.operation_timeout == 120.0
    assert settings.with_timeouts() is settings


def test_setup_logging_attaches_single_package_handler():
    stream = io.StringIO()
    logger = setup_logging("debug", stream=stream)
    try:
        assert logger.name == "fleetclient"
        assert logger.level == logging.DEBUG
        setup_logging("info", stream=stream)
        named = [handler for handler in logger.handlers if handler.get_name() == "fleetclient"]
        assert len(named) == 1
        assert logger.level == logging.INFO
        logging.getLogger("fleetclient.http.transport").info("handle created")
        assert "INFO fleetclient.http.transport: handle created" in stream.getvalue()
    finally:
        for handler in [item for item in logger.handlers if item.get_name() == "fleetclient"]:
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)


def test_resolve_level_reads_env_and_falls_back(monkeypatch):
    monkeypatch.setenv("FLEETCLIENT_LOG_LEVEL", "error")
    assert resolve_level() == logging.ERROR
    assert resolve_level("nonsense") == logging.WARNING
    assert resolve_level(logging.DEBUG) == logging.DEBUG


def test_package_import_installs_null_handler():
    handlers = logging.getLogger("fleetclient").handlers
    assert any(isinstance(handler, logging.NullHandler) for handler in handlers)


def test_classify_transport_exception_mappings():
    request = httpx.Request("GET", "http://example")
    assert classify_transport_exception(httpx.ConnectTimeout("t", request=request)) == TransportErrorCode.OPERATION_TIMEDOUT
    assert classify_transport_exception(httpx.ReadTimeout("t", request=request)) == TransportErrorCode.OPERATION_TIMEDOUT
    assert classify_transport_exception(TimeoutError("slow")) == TransportErrorCode.OPERATION_TIMEDOUT
    assert classify_transport_exception(httpx.ConnectError("refused", request=request)) == TransportErrorCode.COULDNT_CONNECT
    assert classify_transport_exception(httpx.TooManyRedirects("loop", request=request)) == TransportErrorCode.TOO_MANY_REDIRECTS
    assert classify_transport_exception(httpx.UnsupportedProtocol("ftp")) == TransportErrorCode.UNSUPPORTED_PROTOCOL
    assert classify_transport_exception(httpx.RemoteProtocolError("eof", request=request)) == TransportErrorCode.GOT_NOTHING
    assert classify_transport_exception(httpx.ReadError("reset", request=request)) == TransportErrorCode.RECV_ERROR
    assert classify_transport_exception(httpx.WriteError("pipe", request=request)) == TransportErrorCode.SEND_ERROR
    assert classify_transport_exception(ValueError("other")) == TransportErrorCode.FAILED


def test_classify_transport_exception_follows_cause_chain():
    request = httpx.Request("GET", "https://example")
    try:
        try:
            raise socket.gaierror(-2, "Name or service not known")
        except socket.gaierror as inner:
            raise httpx.ConnectError("dns", request=request) from inner
    except httpx.ConnectError as exc:
        assert classify_transport_exception(exc) == TransportErrorCode.COULDNT_RESOLVE_HOST

    try:
        try:
            raise ssl.SSLError("certificate verify failed")
        except ssl.SSLError as inner:
            raise httpx.ConnectError("tls", request=request) from inner
    except httpx.ConnectError as exc:
        assert classify_transport_exception(exc) == TransportErrorCode.SSL_CONNECT_ERROR


def test_transport_error_message_and_reason():
    err = TransportError(TransportErrorCode.OPERATION_TIMEDOUT, "read timed out", url="http://x")
    assert err.code == 28
    assert str(err) == "Transport error: [28] read timed out"
    assert err.reason == "Operation timed out"

    handle_err = TransportError(HandleErrorCode.BAD_HANDLE, "closed", handle_level=True)
    assert handle_err.reason == "Transport handle is closed or invalid"


def test_http_status_error_carries_details():
    err = NotFound(404, "GET", "https://api.example.com/items", b"HTTP/1.1 404 Not Found\r\n\r\n{}")
    assert isinstance(err, HttpStatusError)
    assert err.status == 404
    assert err.method == "GET"
    assert err.url == "https://api.example.com/items"
    assert str(err).startswith("HttpError | 404 GET https://api.example.com/items")
    assert err.body == ""

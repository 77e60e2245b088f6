# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for fleetclient."""

import os
from dataclasses import dataclass, replace
from enum import Enum

from .version import __version__

DEFAULT_USER_AGENT = f"fleetclient/{__version__}"


class StatusPolicy(str, Enum):
    """Which HTTP status codes count as a successful call."""

    STRICT = "strict"
    LENIENT = "lenient"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _optional_float_env(name: str, default: float | None) -> float | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = float(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _policy_env(name: str, default: StatusPolicy) -> StatusPolicy:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return StatusPolicy(value.strip().lower())
    except ValueError:
        return default


@dataclass(frozen=True)
class ClientSettings:
    """
    Per-client transport defaults.

    `operation_timeout` bounds the whole call; `connect_timeout` bounds connection
    establishment only and falls back to `operation_timeout` when unset.
    """

    operation_timeout: float = 120.0
    connect_timeout: float | None = None
    follow_redirects: bool = True
    max_redirects: int = 5
    verify_ssl: bool = True
    trust_env: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    status_policy: StatusPolicy = StatusPolicy.STRICT

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_redirects = _int_env("FLEETCLIENT_HTTP_MAX_REDIRECTS", cls.max_redirects)
        if max_redirects < 0:
            max_redirects = cls.max_redirects
        return cls(
            operation_timeout=_float_env("FLEETCLIENT_HTTP_TIMEOUT", cls.operation_timeout),
            connect_timeout=_optional_float_env("FLEETCLIENT_HTTP_CONNECT_TIMEOUT", cls.connect_timeout),
            follow_redirects=_bool_env("FLEETCLIENT_HTTP_REDIRECTS", cls.follow_redirects),
            max_redirects=max_redirects,
            verify_ssl=_bool_env("FLEETCLIENT_HTTP_VERIFY_SSL", cls.verify_ssl),
            trust_env=_bool_env("FLEETCLIENT_HTTP_TRUST_ENV", cls.trust_env),
            user_agent=os.getenv("FLEETCLIENT_USER_AGENT", cls.user_agent),
            status_policy=_policy_env("FLEETCLIENT_STATUS_POLICY", cls.status_policy),
        )

    def with_timeouts(
        self,
        *,
        connect_timeout: float | None = None,
        operation_timeout: float | None = None,
    ) -> "ClientSettings":
        """Return a copy with the given timeouts replaced (None keeps the current value)."""
        overrides: dict[str, float] = {}
        if connect_timeout is not None:
            overrides["connect_timeout"] = float(connect_timeout)
        if operation_timeout is not None:
            overrides["operation_timeout"] = float(operation_timeout)
        return replace(self, **overrides) if overrides else self


def load_client_settings() -> ClientSettings:
    """Load client settings from environment with sensible defaults."""
    return ClientSettings.from_env()


__all__ = ["DEFAULT_USER_AGENT", "ClientSettings", "StatusPolicy", "load_client_settings"]

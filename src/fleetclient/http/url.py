# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared by the client facade."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")


def is_valid_url(url: str) -> bool:
    """
    Return True for absolute URLs with a scheme and a host.

    Whitespace, control characters and unparsable ports are rejected.
    """
    raw = str(url or "")
    if not raw or any(ch.isspace() or ord(ch) < 0x20 for ch in raw):
        return False
    try:
        parts = urlsplit(raw)
        _ = parts.port  # raises ValueError for out-of-range ports
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    return bool(parts.netloc and parts.hostname)


def join_url(base_url: str, path: str) -> str:
    """
    Concatenate the base URL and a request path.

    This is plain concatenation: the caller controls slashes, so
    `join_url("https://api.example.com", "/items")` is `https://api.example.com/items`.
    """
    return f"{base_url}{path or ''}"


def url_host(url: str) -> str:
    """Return the lowercase host of an absolute URL (without brackets or port)."""
    return (urlsplit(str(url or "")).hostname or "").lower()


__all__ = ["is_valid_url", "join_url", "url_host"]

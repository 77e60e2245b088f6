# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Query string helpers.

Nested mappings and sequences are flattened with bracket notation before
form-encoding, so `{"filter": {"tags": ["a", "b"]}}` becomes
`filter%5Btags%5D%5B0%5D=a&filter%5Btags%5D%5B1%5D=b`. Key order follows the
input mapping; None values are dropped and booleans are sent as 1/0.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlencode


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def flatten_params(params: Mapping[str, Any], prefix: str | None = None) -> list[tuple[str, str]]:
    """Flatten a (possibly nested) parameter mapping into ordered key/value pairs."""
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        name = str(key) if prefix is None else f"{prefix}[{key}]"
        if value is None:
            continue
        if isinstance(value, Mapping):
            pairs.extend(flatten_params(value, name))
        elif _is_sequence(value):
            pairs.extend(flatten_params({str(index): item for index, item in enumerate(value)}, name))
        else:
            pairs.append((name, _scalar(value)))
    return pairs


def build_query_string(params: Mapping[str, Any] | None) -> str:
    """Return the form-encoded query string (without the leading `?`)."""
    if not params:
        return ""
    return urlencode(flatten_params(params))


def append_query(url: str, params: Mapping[str, Any] | None) -> str:
    """Append `?query` to a URL only when the encoded query is non-empty."""
    query = build_query_string(params)
    if not query:
        return url
    return f"{url}?{query}"


__all__ = ["append_query", "build_query_string", "flatten_params"]

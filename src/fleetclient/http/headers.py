# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Header line utilities.

Outgoing headers travel through middleware as ordered raw "Name: Value" lines
(the same shape response headers are exposed in). These helpers convert
between that form and mappings, matching names case-insensitively (RFC 9110).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any


def _coerce_headers_mapping(headers: Any) -> Mapping[object, object] | None:
    """
    Best-effort coercion of "dict-like" header containers into a Mapping.

    Accepts plain dicts, httpx.Headers, objects exposing `.items()` and
    iterables of pairs.
    """
    if not headers:
        return None
    if isinstance(headers, Mapping):
        return headers

    items = getattr(headers, "items", None)
    if callable(items):
        return dict(items())

    return dict(headers)


def split_header_line(line: str) -> tuple[str, str] | None:
    """Split "Name: Value" into a (name, value) pair; None for lines without a name."""
    name, sep, value = str(line).partition(":")
    name = name.strip()
    if not sep or not name:
        return None
    return name, value.strip()


def header_lines_from_mapping(headers: Any) -> list[str]:
    """Normalize a header mapping into ordered "Name: Value" lines."""
    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return []
    lines: list[str] = []
    for key, value in coerced.items():
        if key is None:
            continue
        name = str(key).strip()
        if not name:
            continue
        lines.append(f"{name}: {'' if value is None else value}")
    return lines


def header_pairs(lines: Iterable[str]) -> list[tuple[str, str]]:
    """Return (name, value) pairs for every well-formed line, keeping order and duplicates."""
    pairs: list[tuple[str, str]] = []
    for line in lines:
        pair = split_header_line(line)
        if pair is not None:
            pairs.append(pair)
    return pairs


def has_header(lines: Iterable[str], name: str) -> bool:
    lower = name.lower()
    return any(key.lower() == lower for key, _ in header_pairs(lines))


def header_value(lines: Iterable[str], name: str, default: str = "") -> str:
    """Return the last value for `name` using case-insensitive matching."""
    lower = name.lower()
    found = default
    for key, value in header_pairs(lines):
        if key.lower() == lower:
            found = value
    return found


def merge_header_lines(base: Iterable[str], extra: Iterable[str]) -> list[str]:
    """
    Merge two line lists; a name present in `extra` replaces every `base` line
    with the same name.
    """
    extra_lines = list(extra)
    replaced = {key.lower() for key, _ in header_pairs(extra_lines)}
    merged = [line for line in base if (split_header_line(line) or ("", ""))[0].lower() not in replaced]
    merged.extend(extra_lines)
    return merged


__all__ = [
    "has_header",
    "header_lines_from_mapping",
    "header_pairs",
    "header_value",
    "merge_header_lines",
    "split_header_line",
]

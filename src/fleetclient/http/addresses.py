# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Manual load distribution across a fixed set of backend addresses.

With a non-empty pool every call pins host resolution to one candidate chosen
round-robin. The pin travels in `TransferOptions.resolve` as resolve entries:

    "api.example.com:443:10.0.0.2"     force api.example.com:443 -> 10.0.0.2
    "-api.example.com:443:10.0.0.1"    drop a previously forced entry

IPv6 addresses are written in brackets ("host:443:[::1]").
"""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..errors import InvalidRequest

DEFAULT_OVERRIDE_PORTS = (80, 443)


def validate_ip(value: str) -> str:
    """Return the address unchanged when it is a literal IPv4/IPv6 address."""
    try:
        ipaddress.ip_address(str(value))
    except ValueError:
        raise InvalidRequest(f"Invalid IP address specified [{value}]") from None
    return str(value)


@dataclass(frozen=True)
class AddressPool:
    base_host: str
    candidates: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for candidate in self.candidates:
            validate_ip(candidate)

    def __len__(self) -> int:
        return len(self.candidates)

    def __bool__(self) -> bool:
        return bool(self.candidates)


class AddressSelector:
    """
    Round-robin cursor over a fixed candidate list.

    The first call starts at `clock() mod N` so that independently started
    processes spread their first requests. Not thread-safe: the cursor is a
    plain attribute mutated on every call.
    """

    def __init__(self, candidates: Sequence[str], *, clock: Callable[[], float] = time.time):
        self._candidates = tuple(candidates)
        self._clock = clock
        self._cursor: int | None = None

    @property
    def candidates(self) -> tuple[str, ...]:
        return self._candidates

    def next(self) -> str | None:
        """Return the next candidate, or None for an empty pool."""
        if not self._candidates:
            return None
        count = len(self._candidates)
        if self._cursor is None:
            self._cursor = int(self._clock()) % count
        address = self._candidates[self._cursor]
        self._cursor = (self._cursor + 1) % count
        return address


@dataclass(frozen=True)
class ResolveEntry:
    host: str
    port: int
    address: str
    remove: bool = False

    def __str__(self) -> str:
        prefix = "-" if self.remove else ""
        return f"{prefix}{self.host}:{self.port}:{_format_address(self.address)}"


def _format_address(address: str) -> str:
    return f"[{address}]" if ":" in address else address


def parse_resolve_entry(entry: str) -> ResolveEntry:
    """Parse "[-]host:port:address"."""
    raw = str(entry).strip()
    remove = raw.startswith("-")
    if remove:
        raw = raw[1:]
    host, sep, rest = raw.partition(":")
    port_text, sep2, address = rest.partition(":")
    if not sep or not sep2 or not host or not address:
        raise InvalidRequest(f"Malformed resolve entry [{entry}]")
    try:
        port = int(port_text)
    except ValueError:
        raise InvalidRequest(f"Malformed resolve entry [{entry}]") from None
    if address.startswith("[") and address.endswith("]"):
        address = address[1:-1]
    return ResolveEntry(host=host, port=port, address=address, remove=remove)


def build_resolve_overrides(
    host: str,
    candidates: Sequence[str],
    selected: str,
    ports: Sequence[int] = DEFAULT_OVERRIDE_PORTS,
) -> list[str]:
    """
    Build the resolve entry list pinning `host` to `selected`.

    Removal entries for every other candidate come first so cached pins from
    earlier calls are dropped; the positive entries for `selected` come last.
    """
    entries: list[ResolveEntry] = []
    for candidate in candidates:
        if candidate == selected:
            continue
        entries.extend(ResolveEntry(host, port, candidate, remove=True) for port in ports)
    entries.extend(ResolveEntry(host, port, selected) for port in ports)
    return [str(entry) for entry in entries]


class ResolverCache:
    """
    Host/port -> address pins accumulated from resolve entries.

    Mirrors a resolver cache that outlives a single call: positive entries add
    a pin, removal entries drop the pin only when it points at that address.
    """

    def __init__(self) -> None:
        self._pins: dict[tuple[str, int], str] = {}

    def apply(self, entries: Sequence[str]) -> None:
        for raw in entries:
            entry = parse_resolve_entry(raw)
            key = (entry.host.lower(), entry.port)
            if entry.remove:
                if self._pins.get(key) == entry.address:
                    del self._pins[key]
            else:
                self._pins[key] = entry.address

    def lookup(self, host: str, port: int) -> str | None:
        return self._pins.get((host.lower(), port))

    def __len__(self) -> int:
        return len(self._pins)


__all__ = [
    "AddressPool",
    "AddressSelector",
    "DEFAULT_OVERRIDE_PORTS",
    "ResolveEntry",
    "ResolverCache",
    "build_resolve_overrides",
    "parse_resolve_entry",
    "validate_ip",
]

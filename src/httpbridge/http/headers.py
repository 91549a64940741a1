# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header normalization utilities.

HTTP header field names are case-insensitive (RFC 9110). Requests keep their
headers as an ordered tuple of `(name, value)` pairs; the helpers here read
and rewrite such pair lists without caring about the casing callers used.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

HeaderPairs = tuple[tuple[str, str], ...]


def header_values(value: Any) -> list[str]:
    """Coerce a header value (scalar or sequence) into a list of strings."""
    if value is None:
        return [""]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def to_pairs(headers: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> HeaderPairs:
    """Build header pairs from a mapping or an iterable of `(name, value)` tuples."""
    if not headers:
        return ()
    items = headers.items() if isinstance(headers, Mapping) else headers
    pairs: list[tuple[str, str]] = []
    for name, value in items:
        if name is None:
            continue
        key = str(name).strip()
        if not key:
            continue
        pairs.extend((key, item) for item in header_values(value))
    return tuple(pairs)


def find_values(pairs: HeaderPairs, name: str) -> list[str]:
    lower = name.lower()
    return [value for key, value in pairs if key.lower() == lower]


def remove_pairs(pairs: HeaderPairs, name: str) -> HeaderPairs:
    lower = name.lower()
    return tuple((key, value) for key, value in pairs if key.lower() != lower)


def replace_pairs(pairs: HeaderPairs, name: str, values: list[str]) -> HeaderPairs:
    """Replace every `name` entry (any casing) with `values`, keeping the first entry's position."""
    lower = name.lower()
    out: list[tuple[str, str]] = []
    inserted = False
    for key, value in pairs:
        if key.lower() != lower:
            out.append((key, value))
        elif not inserted:
            out.extend((name, item) for item in values)
            inserted = True
    if not inserted:
        out.extend((name, item) for item in values)
    return tuple(out)


def group_pairs(pairs: HeaderPairs) -> dict[str, list[str]]:
    """Group pairs by case-insensitive name, keeping the first-seen casing."""
    grouped: dict[str, list[str]] = {}
    names: dict[str, str] = {}
    for key, value in pairs:
        canonical = names.setdefault(key.lower(), key)
        grouped.setdefault(canonical, []).append(value)
    return grouped


def header_value(headers: Mapping[str, Any] | None, name: str, default: str = "") -> str:
    """
    Return a header value from a mapping using case-insensitive key matching.

    List values (as found in response header maps) are joined with ", ".
    """
    if not headers or not name:
        return default
    lower = name.lower()
    for key, value in headers.items():
        if key is None or str(key).lower() != lower:
            continue
        if value is None:
            return default
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value)
        return str(value)
    return default


__all__ = [
    "HeaderPairs",
    "find_values",
    "group_pairs",
    "header_value",
    "header_values",
    "remove_pairs",
    "replace_pairs",
    "to_pairs",
]

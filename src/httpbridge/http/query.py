# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Flattening and serialization of structured query/form payloads."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote, quote_plus


def _is_pair_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(item, tuple) and len(item) == 2 for item in value) and bool(value)


def _top_level_items(data: Any) -> list[tuple[Any, Any]]:
    if isinstance(data, Mapping):
        return list(data.items())
    if _is_pair_sequence(data):
        return list(data)
    if isinstance(data, (list, tuple)):
        return list(enumerate(data))
    raise TypeError(f"Cannot flatten {type(data).__name__} into key/value pairs")


def _default_leaf(value: Any) -> bool:
    return not isinstance(value, (Mapping, list, tuple))


def flatten(data: Any, *, is_leaf: Callable[[Any], bool] = _default_leaf) -> list[tuple[str, Any]]:
    """
    Flatten nested mappings/sequences into bracketed `(name, value)` pairs.

    `{"a": {"b": 1}, "c": [2, 3]}` -> `[("a[b]", 1), ("c[0]", 2), ("c[1]", 3)]`.
    `None` values are dropped.
    """
    pairs: list[tuple[str, Any]] = []

    def walk(name: str, value: Any) -> None:
        if value is None:
            return
        if is_leaf(value):
            pairs.append((name, value))
            return
        items = value.items() if isinstance(value, Mapping) else enumerate(value)
        for key, item in items:
            walk(f"{name}[{key}]", item)

    for key, value in _top_level_items(data):
        walk(str(key), value)
    return pairs


def scalar_to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def build_query(data: Any, *, quote_via: Callable[..., str] = quote) -> str:
    """Serialize structured data as an `&`-separated query (RFC 3986 encoding by default)."""
    return "&".join(
        f"{quote_via(name, safe='')}={quote_via(scalar_to_str(value), safe='')}" for name, value in flatten(data)
    )


def build_form(data: Any) -> str:
    """Serialize structured data as an `application/x-www-form-urlencoded` body."""
    return build_query(data, quote_via=quote_plus)


__all__ = ["build_form", "build_query", "flatten", "scalar_to_str"]

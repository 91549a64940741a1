# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Ordered cookie store with cookie-header-safe escaping.

Names are restricted to RFC 2616 token characters and values to RFC 6265
cookie-octets. Any other byte (after UTF-8 encoding) is percent-encoded on
insertion, so the serialized `name=value; ...` pairs can be placed in a
`Cookie` header verbatim.
"""

from __future__ import annotations

import string
from collections.abc import Iterable, Iterator, Mapping, MutableMapping

RFC2616_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")

RFC6265_COOKIE_OCTETS = frozenset(
    chr(code)
    for code in (
        0x21,
        *range(0x23, 0x2C),
        *range(0x2D, 0x3B),
        *range(0x3C, 0x5C),
        *range(0x5D, 0x7F),
    )
)


def _escape(text: str, allowed: frozenset[str]) -> str:
    return "".join(chr(byte) if chr(byte) in allowed else f"%{byte:02X}" for byte in str(text).encode("utf-8"))


def escape_cookie_name(name: str) -> str:
    return _escape(name, RFC2616_TOKEN_CHARS)


def escape_cookie_value(value: str) -> str:
    return _escape(value, RFC6265_COOKIE_OCTETS)


class CookieJar(MutableMapping[str, str]):
    """Insertion-ordered name -> value map of request cookies."""

    def __init__(self, cookies: Mapping[str, str] | Iterable[tuple[str, str]] | None = None) -> None:
        self._cookies: dict[str, str] = {}
        if cookies is None:
            return
        items = cookies.items() if isinstance(cookies, Mapping) else cookies
        for name, value in items:
            self.set(name, value)

    def set(self, name: str, value: str) -> CookieJar:
        self._cookies[escape_cookie_name(name)] = escape_cookie_value(value)
        return self

    def has(self, name: str) -> bool:
        return escape_cookie_name(name) in self._cookies

    def remove(self, name: str) -> None:
        self._cookies.pop(escape_cookie_name(name), None)

    def copy(self) -> CookieJar:
        clone = CookieJar()
        clone._cookies = dict(self._cookies)
        return clone

    def to_dict(self) -> dict[str, str]:
        return dict(self._cookies)

    def header_value(self) -> str:
        """Serialize as a single `Cookie` header value."""
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def __getitem__(self, name: str) -> str:
        return self._cookies[escape_cookie_name(name)]

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        del self._cookies[escape_cookie_name(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __repr__(self) -> str:
        return f"CookieJar({self._cookies!r})"


__all__ = ["CookieJar", "RFC2616_TOKEN_CHARS", "RFC6265_COOKIE_OCTETS", "escape_cookie_name", "escape_cookie_value"]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared by the materialization and transfer stages."""

from __future__ import annotations

from urllib.parse import SplitResult, urldefrag, urlsplit, urlunsplit

import httpx

from ..errors import InvalidConfiguration


def _userinfo(parts: SplitResult) -> str:
    netloc = parts.netloc
    if "@" not in netloc:
        return ""
    return netloc.rsplit("@", 1)[0]


def _port(parts: SplitResult, source: str) -> int | None:
    try:
        return parts.port
    except ValueError as exc:
        raise InvalidConfiguration(f"Invalid port in URL: {source}") from exc


def _netloc(host: str, port: int | None, userinfo: str) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    netloc = host
    if port is not None:
        netloc = f"{netloc}:{port}"
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    return netloc


def rebase_uri(uri: httpx.URL | str, base_url: str) -> httpx.URL:
    """
    Rebuild `uri` against a base URL.

    Host and fragment always come from the base URL. Path, port, query, scheme
    and user-info come from the base URL only when it supplies a non-empty value.

      rebase_uri("http://127.0.0.1:80/a?x=1", "http://127.0.0.1:3000")
        -> http://127.0.0.1:3000/a?x=1
    """
    base = urlsplit(str(base_url))
    current = urlsplit(str(uri))

    host = base.hostname or ""
    port = _port(base, str(base_url)) or _port(current, str(uri))
    userinfo = _userinfo(base) or _userinfo(current)
    scheme = base.scheme or current.scheme
    path = base.path or current.path
    query = base.query or current.query

    rebuilt = urlunsplit((scheme, _netloc(host, port, userinfo), path, query, base.fragment))
    try:
        return httpx.URL(rebuilt)
    except httpx.InvalidURL as exc:
        raise InvalidConfiguration(f"Cannot rebase {uri} on {base_url}: {exc}") from exc


def with_query(uri: httpx.URL, query: str) -> httpx.URL:
    """Replace the query component of `uri`."""
    parts = urlsplit(str(uri))
    return httpx.URL(urlunsplit(parts._replace(query=query)))


def strip_fragment(uri: httpx.URL | str) -> str:
    return urldefrag(str(uri)).url


__all__ = ["rebase_uri", "strip_fragment", "with_query"]

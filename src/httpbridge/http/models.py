# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across httpbridge."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from .headers import HeaderPairs, find_values, group_pairs, header_value, header_values, remove_pairs, replace_pairs, to_pairs
from .streams import BufferStream, Stream, to_stream


@dataclass(frozen=True)
class HttpRequest:
    """Immutable outbound request; every `with_*` method returns a new instance."""

    method: str = "GET"
    uri: httpx.URL = field(default_factory=lambda: httpx.URL(""))
    headers: HeaderPairs = ()
    body: Stream = field(default_factory=BufferStream)
    protocol_version: str = "1.1"

    @classmethod
    def create(
        cls,
        method: str = "GET",
        uri: httpx.URL | str = "",
        headers: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        body: Stream | bytes | str | None = None,
        protocol_version: str = "1.1",
    ) -> HttpRequest:
        return cls(
            method=method.upper(),
            uri=uri if isinstance(uri, httpx.URL) else httpx.URL(uri),
            headers=to_pairs(headers),
            body=to_stream(body),
            protocol_version=protocol_version,
        )

    def has_header(self, name: str) -> bool:
        return bool(find_values(self.headers, name))

    def get_header(self, name: str) -> list[str]:
        return find_values(self.headers, name)

    def get_header_line(self, name: str) -> str:
        return ", ".join(self.get_header(name))

    def header_map(self) -> dict[str, list[str]]:
        return group_pairs(self.headers)

    def with_method(self, method: str) -> HttpRequest:
        return replace(self, method=method.upper())

    def with_uri(self, uri: httpx.URL | str) -> HttpRequest:
        return replace(self, uri=uri if isinstance(uri, httpx.URL) else httpx.URL(uri))

    def with_header(self, name: str, value: Any) -> HttpRequest:
        return replace(self, headers=replace_pairs(self.headers, name, header_values(value)))

    def with_added_header(self, name: str, value: Any) -> HttpRequest:
        return replace(self, headers=self.headers + tuple((name, item) for item in header_values(value)))

    def without_header(self, name: str) -> HttpRequest:
        return replace(self, headers=remove_pairs(self.headers, name))

    def with_body(self, body: Stream | bytes | str | None) -> HttpRequest:
        return replace(self, body=to_stream(body))


@dataclass
class HttpResponse:
    """Normalized HTTP response; `body` is the sink the engine wrote into."""

    status_code: int
    headers: dict[str, list[str]] = field(default_factory=dict)
    body: Stream = field(default_factory=BufferStream)
    protocol_version: str = "1.1"
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def content(self) -> bytes:
        return self.body.getvalue()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.content)

    def get_header_line(self, name: str) -> str:
        return header_value(self.headers, name)

    def close(self) -> None:
        self.body.close()


__all__ = ["HttpRequest", "HttpResponse"]

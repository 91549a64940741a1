# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Lazy body encoders for structured request payloads."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any

from urllib3 import encode_multipart_formdata
from urllib3.filepost import choose_boundary

from .query import build_form, flatten, scalar_to_str
from .streams import BufferStream, LazyStream

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


def json_stream(body: Any) -> LazyStream:
    """Compact JSON body, encoded on first read."""
    return LazyStream(lambda: BufferStream(json.dumps(body, separators=(",", ":")).encode("utf-8")))


def urlencoded_stream(body: Any) -> LazyStream:
    """Form-urlencoded body, encoded on first read. Strings are sent as-is."""
    if isinstance(body, (str, bytes)):
        return LazyStream(lambda: BufferStream(body))
    return LazyStream(lambda: BufferStream(build_form(body)))


def _is_multipart_leaf(value: Any) -> bool:
    return isinstance(value, tuple) or hasattr(value, "read") or not isinstance(value, (Mapping, list))


def _multipart_field(value: Any) -> Any:
    if isinstance(value, tuple):
        return value
    if hasattr(value, "read"):
        filename = os.path.basename(str(getattr(value, "name", "") or "file"))
        return (filename, value.read())
    if isinstance(value, bytes):
        return value
    return scalar_to_str(value)


def multipart_fields(body: Any) -> list[tuple[str, Any]]:
    """
    Flatten a structured body into urllib3 multipart fields.

    Tuples `(filename, data[, mime])` and file-like objects become file parts;
    nested mappings and lists flatten to bracketed names (`post[tags][0]`).
    """
    return [(name, _multipart_field(value)) for name, value in flatten(body, is_leaf=_is_multipart_leaf)]


def multipart_stream(body: Any) -> tuple[LazyStream, str]:
    """Multipart body and its boundary; the boundary is fixed now, the payload built on first read."""
    boundary = choose_boundary()

    def build() -> BufferStream:
        payload, _content_type = encode_multipart_formdata(multipart_fields(body), boundary=boundary)
        return BufferStream(payload)

    return LazyStream(build), boundary


__all__ = [
    "FORM_CONTENT_TYPE",
    "JSON_CONTENT_TYPE",
    "MULTIPART_CONTENT_TYPE",
    "json_stream",
    "multipart_fields",
    "multipart_stream",
    "urlencoded_stream",
]

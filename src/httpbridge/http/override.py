# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request materialization: merge a base request with client/request options."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from ..errors import InvalidConfiguration
from ..options import ClientOptions
from .encoders import FORM_CONTENT_TYPE, JSON_CONTENT_TYPE, MULTIPART_CONTENT_TYPE, json_stream, multipart_stream, urlencoded_stream
from .headers import header_values
from .models import HttpRequest
from .query import build_query
from .url import rebase_uri, with_query

logger = logging.getLogger(__name__)

# Prefix matches, checked in this order; parameters after the media type are ignored.
_MULTIPART_RE = re.compile(r"^multipart/form-data")
_JSON_RE = re.compile(r"^(application|text)/json", re.IGNORECASE)
_FORM_RE = re.compile(r"^application/x-www-form-urlencoded", re.IGNORECASE)


def _set_override(headers: dict[str, Any], name: str, value: Any) -> None:
    lower = name.lower()
    for key in [key for key in headers if key.lower() == lower]:
        del headers[key]
    headers[name] = value


def _serialize_query(query: Any) -> str:
    if isinstance(query, str):
        return query
    if isinstance(query, (Mapping, list, tuple)):
        return build_query(query)
    raise InvalidConfiguration(f"query must be a string or a mapping, got {type(query).__name__}")


class RequestOverrider:
    """
    Resolve a request against ClientOptions into the final outbound request.

    The request is returned unchanged when the options carry no RequestOptions,
    and every component (URI, each header, body) is only replaced when the
    resolved value differs from what the request already has.
    """

    def __init__(self, options: ClientOptions):
        self.options = options

    def __call__(self, request: HttpRequest) -> HttpRequest:
        return self.materialize(request)

    def materialize(self, request: HttpRequest) -> HttpRequest:
        request_options = self.options.request_options
        if request_options is None:
            return request

        uri = request.uri
        if self.options.base_url:
            uri = rebase_uri(uri, self.options.base_url)

        headers = request_options.headers
        if not isinstance(headers, Mapping):
            raise InvalidConfiguration("The headers must be a mapping of header names to values")
        overrides: dict[str, Any] = dict(headers)

        content_type = request.get_header_line("Content-Type")
        for name, value in headers.items():
            if name.lower() == "content-type":
                content_type = str(value)

        body = request.body
        if request_options.body and content_type:
            if _MULTIPART_RE.match(content_type):
                body, boundary = multipart_stream(request_options.body)
                _set_override(overrides, "Content-Type", f"{MULTIPART_CONTENT_TYPE}; boundary={boundary}")
            elif _JSON_RE.match(content_type):
                body = json_stream(request_options.body)
                _set_override(overrides, "Content-Type", JSON_CONTENT_TYPE)
            elif _FORM_RE.match(content_type):
                body = urlencoded_stream(request_options.body)
                _set_override(overrides, "Content-Type", FORM_CONTENT_TYPE)

        if request_options.query:
            uri = with_query(uri, _serialize_query(request_options.query))

        encoding = request_options.encoding
        if encoding and encoding is not True:
            _set_override(overrides, "Accept-Encoding", encoding)

        if str(uri) != str(request.uri):
            request = request.with_uri(uri)

        for name, value in overrides.items():
            if request.get_header(name) != header_values(value):
                request = request.with_header(name, value)

        if body is not request.body:
            request = request.with_body(body)

        logger.debug("Materialized %s %s", request.method, request.uri)
        return request


def materialize(request: HttpRequest, options: ClientOptions) -> HttpRequest:
    """Functional form of RequestOverrider."""
    return RequestOverrider(options).materialize(request)


__all__ = ["RequestOverrider", "materialize"]

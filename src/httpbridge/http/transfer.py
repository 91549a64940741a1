# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Translate a materialized request plus ClientOptions into a TransferConfig."""

from __future__ import annotations

import base64
import logging
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import TransferSettings, load_transfer_settings
from ..errors import InvalidConfiguration
from ..options import ClientOptions, ProgressCallback, RequestOptions
from .models import HttpRequest
from .streams import BufferStream, FileStream, Stream
from .url import strip_fragment

logger = logging.getLogger(__name__)

ALLOWED_PROTOCOLS = ("http", "https")


class HttpVersion(str, Enum):
    HTTP_1_0 = "1.0"
    HTTP_1_1 = "1.1"
    HTTP_2_0 = "2.0"


class IPResolve(str, Enum):
    WHATEVER = "whatever"
    V4 = "v4"
    V6 = "v6"


@dataclass
class TransferConfig:
    """Flat, per-call transfer configuration consumed by a TransferEngine.

    Rebuilt for every request and never persisted. Timeouts ending in `_ms`
    are milliseconds; `connect_timeout` is the engine default in seconds.
    """

    method: str
    url: str
    return_transfer: bool = False
    include_headers: bool = False
    connect_timeout: float = 150.0
    http_version: HttpVersion = HttpVersion.HTTP_1_0
    protocols: tuple[str, ...] = ALLOWED_PROTOCOLS
    http_headers: list[str] = field(default_factory=list)
    post_fields: bytes | None = None
    upload: bool = False
    in_file_size: int | None = None
    read_function: Callable[[int], bytes] | None = None
    write_function: Callable[[bytes], int | None] | None = None
    no_body: bool = False
    ssl_verify_peer: bool | None = None
    ssl_verify_host: int | None = None
    ca_info: str | None = None
    ca_path: str | None = None
    timeout_ms: int | None = None
    connect_timeout_ms: int | None = None
    no_signal: bool = False
    encoding: str | None = None
    cookie: str | None = None
    ip_resolve: IPResolve = IPResolve.WHATEVER
    proxy: str | None = None
    proxy_port: int | None = None
    proxy_userpwd: str | None = None
    ssl_cert: str | None = None
    ssl_cert_password: str | None = None
    ssl_cert_type: str | None = None
    ssl_key: str | None = None
    ssl_key_password: str | None = None
    no_progress: bool = True
    progress_function: Callable[..., Any] | None = None
    http_auth: str | None = None
    userpwd: str | None = None
    sink: Stream | None = None


@dataclass
class _BuildState:
    """Config under construction plus the headers still to be rendered into header lines."""

    config: TransferConfig
    pending_headers: dict[str, list[str]]
    body_sent: bool = False

    def remove_headers(self, *names: str) -> None:
        lowered = {name.lower() for name in names}
        for key in [key for key in self.pending_headers if key.lower() in lowered]:
            del self.pending_headers[key]

    def has_header(self, name: str) -> bool:
        lower = name.lower()
        return any(key.lower() == lower for key in self.pending_headers)


def _is_windows() -> bool:
    return sys.platform.startswith(("win", "cygwin"))


def _wrap_progress(callback: ProgressCallback) -> Callable[..., None]:
    """Adapt the engine's `(handle, dl_total, dl_now, ul_total, ul_now)` hook to a four-argument callback."""

    def progress(_handle: Any, download_total: int, downloaded: int, upload_total: int, uploaded: int) -> None:
        callback(download_total, downloaded, upload_total, uploaded)

    return progress


def _declared_length(request: HttpRequest) -> int | None:
    if not request.has_header("Content-Length"):
        return None
    try:
        return int(request.get_header_line("Content-Length").strip())
    except ValueError:
        return 0


class TransferOptionsBuilder:
    """
    Build the TransferConfig for one request.

    Steps run in a fixed order because later ones may drop headers that
    earlier ones queued. All file-system checks happen here, before any
    network I/O.
    """

    def __init__(self, options: ClientOptions, settings: TransferSettings | None = None):
        self.options = options
        self.settings = settings or load_transfer_settings()

    def build(self, request: HttpRequest) -> TransferConfig:
        state = self._defaults(request)
        request_options = self.options.request_options or RequestOptions()
        self._apply_auth(state, request, request_options)
        self._apply_body(state, request)
        self._apply_verify(state)
        no_signal = self._apply_timeouts(state, request_options)
        self._apply_encoding(state, request, request_options)
        self._apply_cookies(state)
        self._apply_sink(state)
        self._apply_ip_resolve(state)
        self._apply_proxy(state)
        self._apply_cert(state)
        self._apply_ssl_key(state)
        self._apply_progress(state)
        if no_signal and not _is_windows():
            state.config.no_signal = True
        self._apply_headers(state, request)
        return state.config

    def _defaults(self, request: HttpRequest) -> _BuildState:
        version = request.protocol_version
        if version == "1.1":
            http_version = HttpVersion.HTTP_1_1
        elif version in ("2", "2.0"):
            http_version = HttpVersion.HTTP_2_0
        else:
            http_version = HttpVersion.HTTP_1_0
        config = TransferConfig(
            method=request.method,
            url=strip_fragment(request.uri),
            connect_timeout=self.settings.connect_timeout,
            http_version=http_version,
        )
        return _BuildState(config=config, pending_headers=request.header_map())

    def _apply_auth(self, state: _BuildState, request: HttpRequest, request_options: RequestOptions) -> None:
        auth = request_options.auth
        if auth is None:
            return
        if auth.scheme == "basic":
            if not request.has_header("Authorization"):
                token = base64.b64encode(auth.credentials.encode("utf-8")).decode("ascii")
                state.pending_headers["Authorization"] = [f"Basic {token}"]
        else:
            state.config.http_auth = auth.scheme
            state.config.userpwd = auth.credentials

    def _apply_body(self, state: _BuildState, request: HttpRequest) -> None:
        config = state.config
        size = request.body.size
        if size is None or size > 0:
            self._attach_body(state, request)
            return
        if request.method in ("PUT", "POST"):
            # RFC 7230 section 3.3.2
            if not request.has_header("Content-Length"):
                config.http_headers.append("Content-Length: 0")
        elif request.method == "HEAD":
            config.no_body = True
            config.read_function = None
            config.write_function = None

    def _attach_body(self, state: _BuildState, request: HttpRequest) -> None:
        config = state.config
        body = request.body
        length = _declared_length(request)
        if length is not None and length < self.settings.buffer_ceiling:
            config.post_fields = body.getvalue()
            state.remove_headers("Content-Length", "Transfer-Encoding")
            logger.debug("Buffering %d byte request body", len(config.post_fields))
        else:
            config.upload = True
            if length is None:
                length = body.size
            if length is not None:
                config.in_file_size = length
                state.remove_headers("Content-Length")
            if body.seekable():
                body.rewind()
            config.read_function = body.read
            logger.debug("Streaming request body (size=%s)", length)
        state.body_sent = True

    def _apply_verify(self, state: _BuildState) -> None:
        verify = self.options.verify
        if verify is None:
            return
        config = state.config
        if verify is False:
            config.ca_info = None
            config.ssl_verify_host = 0
            config.ssl_verify_peer = False
            return
        config.ssl_verify_host = 2
        config.ssl_verify_peer = True
        if isinstance(verify, (str, os.PathLike)):
            path = os.fspath(verify)
            if not os.path.exists(path):
                raise InvalidConfiguration(f"SSL CA bundle not found: {path}")
            # isdir() follows symlinks, so a link to a directory is a CA directory too.
            if os.path.isdir(path):
                config.ca_path = path
            else:
                config.ca_info = path

    def _apply_timeouts(self, state: _BuildState, request_options: RequestOptions) -> bool:
        config = state.config
        no_signal = False
        if request_options.timeout:
            no_signal |= request_options.timeout < 1
            config.timeout_ms = int(request_options.timeout * 1000)
        if self.options.connect_timeout:
            no_signal |= self.options.connect_timeout < 1
            config.connect_timeout_ms = int(self.options.connect_timeout * 1000)
        return no_signal

    def _apply_encoding(self, state: _BuildState, request: HttpRequest, request_options: RequestOptions) -> None:
        if not request_options.encoding:
            return
        accept = request.get_header_line("Accept-Encoding")
        if accept:
            state.config.encoding = accept
        else:
            state.config.encoding = ""
            state.config.http_headers.append("Accept-Encoding:")

    def _apply_cookies(self, state: _BuildState) -> None:
        if self.options.cookies:
            state.config.cookie = self.options.cookies.header_value()

    def _apply_sink(self, state: _BuildState) -> None:
        sink = self.options.sink
        if sink is None:
            sink = BufferStream()
        elif isinstance(sink, str):
            directory = os.path.dirname(sink) or "."
            if not os.path.isdir(directory):
                raise InvalidConfiguration(f"Directory {directory} does not exist for sink value of {sink}")
            sink = FileStream(sink, "w+b")
        state.config.sink = sink
        state.config.write_function = sink.write

    def _apply_ip_resolve(self, state: _BuildState) -> None:
        if self.options.force_resolve_ip == "v4":
            state.config.ip_resolve = IPResolve.V4
        elif self.options.force_resolve_ip == "v6":
            state.config.ip_resolve = IPResolve.V6

    def _apply_proxy(self, state: _BuildState) -> None:
        proxy = self.options.proxy
        if proxy is None:
            return
        if not proxy.host:
            raise InvalidConfiguration("proxy host is required")
        state.config.proxy = proxy.host
        if proxy.port is not None:
            state.config.proxy_port = proxy.port
        if proxy.user is not None and proxy.password is not None:
            state.config.proxy_userpwd = f"{proxy.user}:{proxy.password}"

    def _apply_cert(self, state: _BuildState) -> None:
        cert = self.options.cert
        if cert is None:
            return
        if not os.path.exists(cert.path):
            raise InvalidConfiguration(f"SSL certificate not found: {cert.path}")
        if cert.password is not None:
            state.config.ssl_cert_password = cert.password
        extension = os.path.splitext(cert.path)[1].lstrip(".")
        if extension.lower() in ("der", "p12"):
            state.config.ssl_cert_type = extension.upper()
        state.config.ssl_cert = cert.path

    def _apply_ssl_key(self, state: _BuildState) -> None:
        ssl_key = self.options.ssl_key
        if ssl_key is None:
            return
        if not os.path.exists(ssl_key.path):
            raise InvalidConfiguration(f"SSL private key not found: {ssl_key.path}")
        if ssl_key.password is not None:
            state.config.ssl_key_password = ssl_key.password
        state.config.ssl_key = ssl_key.path

    def _apply_progress(self, state: _BuildState) -> None:
        progress = self.options.progress
        if progress is None:
            return
        if not callable(progress):
            raise InvalidConfiguration("progress client option must be callable")
        state.config.no_progress = False
        state.config.progress_function = _wrap_progress(progress)

    def _apply_headers(self, state: _BuildState, request: HttpRequest) -> None:
        lines = state.config.http_headers
        for name, values in state.pending_headers.items():
            for value in values:
                # An empty value needs the `Name;` form, `Name:` would remove the header.
                lines.append(f"{name};" if value == "" else f"{name}: {value}")
        if not request.has_header("Accept"):
            lines.append("Accept:")
        if state.body_sent:
            if not request.has_header("Expect"):
                lines.append("Expect:")
            if not request.has_header("Content-Type"):
                lines.append("Content-Type:")


def build_transfer_config(
    request: HttpRequest,
    options: ClientOptions,
    settings: TransferSettings | None = None,
) -> TransferConfig:
    """Functional form of TransferOptionsBuilder."""
    return TransferOptionsBuilder(options, settings).build(request)


__all__ = [
    "ALLOWED_PROTOCOLS",
    "HttpVersion",
    "IPResolve",
    "TransferConfig",
    "TransferOptionsBuilder",
    "build_transfer_config",
]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed TransferEngine implementation."""

from __future__ import annotations

import logging
import ssl
from collections.abc import Iterator
from dataclasses import dataclass

import httpx

from ..config import TransferSettings, load_transfer_settings
from ..errors import EngineError, categorize_exception
from .engine import TransferEngine
from .transfer import HttpVersion, IPResolve, TransferConfig

logger = logging.getLogger(__name__)

# Content codings httpx decodes without optional extras.
SUPPORTED_ENCODINGS = "gzip, deflate"

_LOCAL_ADDRESSES = {IPResolve.V4: "0.0.0.0", IPResolve.V6: "::"}


class _TransferAbort(Exception):
    def __init__(self, code: EngineError, message: str):
        super().__init__(message)
        self.code = code


@dataclass
class _Progress:
    engine: HttpxTransferEngine
    config: TransferConfig
    download_total: int = 0
    downloaded: int = 0
    upload_total: int = 0
    uploaded: int = 0

    def report(self) -> None:
        callback = self.config.progress_function
        if callback is None or self.config.no_progress:
            return
        try:
            callback(self.engine, self.download_total, self.downloaded, self.upload_total, self.uploaded)
        except Exception as exc:  # noqa: BLE001
            self.engine._soft_error(f"Progress callback failed: {exc}")


def parse_header_lines(lines: list[str]) -> tuple[list[tuple[str, str]], set[str]]:
    """
    Split header lines into headers to send and header names to suppress.

    `Name: value` sends a header, `Name;` sends it with an empty value and
    `Name:` (nothing after the colon) suppresses it.
    """
    headers: list[tuple[str, str]] = []
    suppressed: set[str] = set()
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            if line.endswith(";"):
                headers.append((line[:-1].strip(), ""))
            continue
        name, value = name.strip(), value.strip()
        if value:
            headers.append((name, value))
        else:
            suppressed.add(name.lower())
    headers = [(name, value) for name, value in headers if value or name.lower() not in suppressed]
    return headers, suppressed


class HttpxTransferEngine(TransferEngine):
    """
    Synchronous httpx engine.

    A fresh httpx.Client is built for every `execute()`, so nothing is pooled
    between transfers. An injected transport (tests) takes precedence over the
    proxy and ip-resolve settings.
    """

    def __init__(self, settings: TransferSettings | None = None, transport: httpx.BaseTransport | None = None):
        self.settings = settings or load_transfer_settings()
        self._transport = transport
        self._config: TransferConfig | None = None
        self._reset()

    def _reset(self) -> None:
        self._error = EngineError.OK
        self._error_message = ""
        self._status_code = 0
        self._headers: dict[str, list[str]] = {}
        self._protocol_version = "1.1"

    def set_options(self, config: TransferConfig) -> None:
        self._config = config

    def execute(self) -> None:
        config = self._config
        if config is None:
            raise RuntimeError("set_options() must be called before execute()")
        self._reset()
        progress = _Progress(self, config, upload_total=config.in_file_size or len(config.post_fields or b""))
        try:
            url = httpx.URL(config.url)
            if config.protocols and url.scheme not in config.protocols:
                raise _TransferAbort(EngineError.UNSUPPORTED_PROTOCOL, f'Protocol "{url.scheme}" not supported or disabled')
            with self._open_client(config) as client:
                request = self._build_request(config, url, progress)
                response = client.send(request, stream=True, auth=self._auth(config))
                try:
                    self._consume(config, response, progress)
                finally:
                    response.close()
        except _TransferAbort as exc:
            self._fail(exc.code, str(exc))
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, ssl.SSLError, OSError) as exc:
            self._fail(categorize_exception(exc), str(exc) or type(exc).__name__)
        else:
            logger.debug("Transfer %s %s completed with status %s", config.method, config.url, self._status_code)

    def _fail(self, code: EngineError, message: str) -> None:
        logger.debug("Transfer failed with engine error %s: %s", int(code), message)
        self._error = code
        self._error_message = message

    def _soft_error(self, message: str) -> None:
        logger.warning("%s", message)
        self._error_message = message

    def _ssl_context(self, config: TransferConfig) -> ssl.SSLContext | bool:
        if config.ssl_cert is None and config.ca_info is None and config.ca_path is None:
            return config.ssl_verify_peer is not False
        context = ssl.create_default_context(cafile=config.ca_info, capath=config.ca_path)
        if config.ssl_verify_peer is False:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        elif config.ssl_verify_host == 0:
            context.check_hostname = False
        if config.ssl_cert is not None:
            if config.ssl_cert_type in ("DER", "P12"):
                raise _TransferAbort(
                    EngineError.SSL_CERTPROBLEM,
                    f"{config.ssl_cert_type} client certificates are not supported, convert {config.ssl_cert} to PEM",
                )
            try:
                context.load_cert_chain(
                    config.ssl_cert,
                    keyfile=config.ssl_key,
                    password=config.ssl_key_password or config.ssl_cert_password,
                )
            except (ssl.SSLError, OSError) as exc:
                raise _TransferAbort(EngineError.SSL_CERTPROBLEM, f"Unable to use client certificate: {exc}") from exc
        return context

    def _proxy_url(self, config: TransferConfig) -> str | None:
        if not config.proxy:
            return None
        raw = config.proxy if "://" in config.proxy else f"http://{config.proxy}"
        url = httpx.URL(raw)
        if config.proxy_port is not None:
            url = url.copy_with(port=config.proxy_port)
        if config.proxy_userpwd:
            user, _, password = config.proxy_userpwd.partition(":")
            url = url.copy_with(username=user, password=password)
        return str(url)

    def _timeout(self, config: TransferConfig) -> httpx.Timeout:
        total = config.timeout_ms / 1000 if config.timeout_ms else None
        connect = config.connect_timeout_ms / 1000 if config.connect_timeout_ms else config.connect_timeout
        return httpx.Timeout(total, connect=connect)

    def _open_client(self, config: TransferConfig) -> httpx.Client:
        verify = self._ssl_context(config)
        http2 = config.http_version == HttpVersion.HTTP_2_0
        transport = self._transport
        proxy = None
        if transport is None:
            proxy = self._proxy_url(config)
            local_address = _LOCAL_ADDRESSES.get(config.ip_resolve)
            if local_address is not None:
                # A client-level proxy mounts its own transport, which would drop the local address.
                transport = httpx.HTTPTransport(verify=verify, http2=http2, local_address=local_address, proxy=proxy)
                proxy = None
        return httpx.Client(
            verify=verify,
            http2=http2,
            proxy=proxy,
            transport=transport,
            timeout=self._timeout(config),
            follow_redirects=False,
            trust_env=self.settings.trust_env,
        )

    def _auth(self, config: TransferConfig) -> httpx.Auth | None:
        if config.http_auth == "digest" and config.userpwd:
            user, _, password = config.userpwd.partition(":")
            return httpx.DigestAuth(user, password)
        return None

    def _build_request(self, config: TransferConfig, url: httpx.URL, progress: _Progress) -> httpx.Request:
        headers, _suppressed = parse_header_lines(config.http_headers)
        names = {name.lower() for name, _ in headers}
        if config.encoding is not None and "accept-encoding" not in names:
            headers.append(("Accept-Encoding", config.encoding or SUPPORTED_ENCODINGS))
        if config.cookie:
            headers.append(("Cookie", config.cookie))
        if config.upload and config.in_file_size is not None and "content-length" not in names:
            headers.append(("Content-Length", str(config.in_file_size)))

        content: bytes | Iterator[bytes] | None = None
        if config.post_fields is not None:
            content = config.post_fields
        elif config.upload and config.read_function is not None:
            content = self._upload(config, progress)
        return httpx.Request(config.method, url, headers=headers, content=content)

    def _upload(self, config: TransferConfig, progress: _Progress) -> Iterator[bytes]:
        read = config.read_function
        chunk_size = self.settings.read_chunk_size
        while True:
            try:
                chunk = read(chunk_size)
            except Exception as exc:  # noqa: BLE001
                raise _TransferAbort(EngineError.READ_ERROR, f"Failed reading request body: {exc}") from exc
            if not chunk:
                return
            progress.uploaded += len(chunk)
            progress.report()
            yield chunk

    def _consume(self, config: TransferConfig, response: httpx.Response, progress: _Progress) -> None:
        self._status_code = response.status_code
        self._protocol_version = response.http_version.removeprefix("HTTP/")
        headers: dict[str, list[str]] = {}
        for raw_name, raw_value in response.headers.raw:
            headers.setdefault(raw_name.decode("latin-1"), []).append(raw_value.decode("latin-1"))
        self._headers = headers

        if config.no_body:
            return
        length = response.headers.get("Content-Length", "")
        progress.download_total = int(length) if length.isdigit() else 0
        # Without a negotiated encoding the body is delivered exactly as received.
        # Responses built in memory (mock transports) are already read.
        if config.encoding is not None or response.is_stream_consumed:
            chunks = response.iter_bytes()
        else:
            chunks = response.iter_raw()
        for chunk in chunks:
            if config.write_function is not None:
                written = config.write_function(chunk)
                if written is not None and written != len(chunk):
                    raise _TransferAbort(EngineError.WRITE_ERROR, f"Failed writing body ({written} != {len(chunk)})")
            progress.downloaded += len(chunk)
            progress.report()

    def get_error(self) -> int:
        return int(self._error)

    def get_error_message(self) -> str:
        return self._error_message

    def get_status_code(self) -> int:
        return self._status_code

    def get_response_headers(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self._headers.items()}

    def get_protocol_version(self) -> str:
        return self._protocol_version

    def has_error(self) -> bool:
        return bool(self._error_message)

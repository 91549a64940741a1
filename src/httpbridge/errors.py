# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl
from enum import IntEnum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from .http.models import HttpRequest


class EngineError(IntEnum):
    """Transfer engine error codes (numbering follows libcurl's CURLcode)."""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    WEIRD_SERVER_REPLY = 8
    WRITE_ERROR = 23
    READ_ERROR = 26
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    ABORTED_BY_CALLBACK = 42
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    SSL_CERTPROBLEM = 58
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61


NETWORK_ERROR_CODES = frozenset(
    {
        EngineError.COULDNT_CONNECT,
        EngineError.COULDNT_RESOLVE_HOST,
        EngineError.COULDNT_RESOLVE_PROXY,
    }
)

_HTTP_STATUS_BY_ERROR = {
    EngineError.UNSUPPORTED_PROTOCOL: 400,
    EngineError.URL_MALFORMAT: 400,
    EngineError.COULDNT_RESOLVE_PROXY: 502,
    EngineError.COULDNT_RESOLVE_HOST: 503,
    EngineError.COULDNT_CONNECT: 503,
    EngineError.WEIRD_SERVER_REPLY: 502,
    EngineError.OPERATION_TIMEDOUT: 408,
    EngineError.SSL_CONNECT_ERROR: 502,
    EngineError.GOT_NOTHING: 502,
    EngineError.RECV_ERROR: 502,
    EngineError.PEER_FAILED_VERIFICATION: 502,
    EngineError.BAD_CONTENT_ENCODING: 502,
}

_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


class HttpBridgeError(Exception):
    """Base exception for all httpbridge failures."""


class InvalidConfiguration(HttpBridgeError, ValueError):
    """Raised when caller-supplied options are malformed; always before any network I/O."""


class TransferError(HttpBridgeError):
    """Raised when the transfer engine reports a non-zero error code."""

    def __init__(
        self,
        message: str,
        *,
        request: HttpRequest | None = None,
        status_code: int | None = None,
        error_code: int = EngineError.OK,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.status_code = status_code
        self.error_code = error_code

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.status_code is None:
            return str(self.args[0])
        return f"{self.status_code} (engine error {int(self.error_code)}): {self.args[0]}"


class NetworkError(TransferError):
    """Raised for connection-establishment failures: DNS, TCP connect, proxy resolution."""


class RequestError(TransferError):
    """Raised for every other transfer failure, including timeouts and protocol errors."""


def to_http_status_code(code: int) -> int:
    """Best-effort HTTP status approximation for an engine error code."""
    try:
        return _HTTP_STATUS_BY_ERROR.get(EngineError(code), 500)
    except ValueError:
        return 500


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _looks_like_dns_failure(chain: list[Any]) -> bool:
    for item in chain:
        if isinstance(item, (socket.gaierror, socket.herror)):
            return True
        message = str(item).lower()
        if any(marker in message for marker in _DNS_FAILURE_MARKERS):
            return True
    return False


def categorize_exception(exc: BaseException) -> EngineError:
    """
    Map httpx/ssl/socket exceptions to engine error codes.
    """
    chain = _exception_chain(exc)

    if isinstance(exc, httpx.ProxyError):
        return EngineError.COULDNT_RESOLVE_PROXY

    if isinstance(exc, httpx.TimeoutException):
        return EngineError.OPERATION_TIMEDOUT

    if isinstance(exc, httpx.UnsupportedProtocol):
        return EngineError.UNSUPPORTED_PROTOCOL

    if isinstance(exc, httpx.InvalidURL):
        return EngineError.URL_MALFORMAT

    if isinstance(exc, httpx.TooManyRedirects):
        return EngineError.TOO_MANY_REDIRECTS

    if isinstance(exc, httpx.DecodingError):
        return EngineError.BAD_CONTENT_ENCODING

    for item in chain:
        if isinstance(item, ssl.SSLCertVerificationError) or "certificate_verify_failed" in str(item).lower():
            return EngineError.PEER_FAILED_VERIFICATION
        if isinstance(item, ssl.SSLError):
            return EngineError.SSL_CONNECT_ERROR

    if isinstance(exc, (httpx.ConnectError, socket.gaierror, ConnectionError)):
        if _looks_like_dns_failure(chain):
            return EngineError.COULDNT_RESOLVE_HOST
        return EngineError.COULDNT_CONNECT

    if isinstance(exc, httpx.RemoteProtocolError):
        if "without sending" in str(exc).lower():
            return EngineError.GOT_NOTHING
        return EngineError.WEIRD_SERVER_REPLY

    if isinstance(exc, httpx.WriteError):
        return EngineError.SEND_ERROR

    if isinstance(exc, (httpx.ReadError, httpx.StreamError)):
        return EngineError.RECV_ERROR

    if isinstance(exc, OSError) and _looks_like_dns_failure(chain):
        return EngineError.COULDNT_RESOLVE_HOST

    return EngineError.RECV_ERROR


__all__ = [
    "EngineError",
    "HttpBridgeError",
    "InvalidConfiguration",
    "NETWORK_ERROR_CODES",
    "NetworkError",
    "RequestError",
    "TransferError",
    "categorize_exception",
    "to_http_status_code",
]

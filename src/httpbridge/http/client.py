# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client orchestration: materialize, build, execute, normalize."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from ..config import TransferSettings, load_transfer_settings
from ..errors import NETWORK_ERROR_CODES, NetworkError, RequestError, to_http_status_code
from ..options import ClientOptions, RequestOptions
from .encoders import JSON_CONTENT_TYPE, MULTIPART_CONTENT_TYPE
from .engine import TransferEngine, create_default_engine
from .models import HttpRequest, HttpResponse
from .override import RequestOverrider
from .streams import Stream
from .transfer import TransferConfig, TransferOptionsBuilder

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], TransferEngine]

MIN_STATUS_CODE = 100
MAX_STATUS_CODE = 511


def _coerce_options(options: ClientOptions | Mapping[str, Any] | None) -> ClientOptions:
    if options is None:
        return ClientOptions()
    if isinstance(options, ClientOptions):
        return options
    return ClientOptions.from_mapping(options)


@dataclass(frozen=True)
class Client:
    """
    Immutable HTTP client.

    Builder methods (`json()`, `basic_auth()`, `with_request_header()`, ...)
    return a new Client and leave the receiver untouched. `send_request()`
    works on a private copy, so the sink it resolves never leaks back into
    this instance.
    """

    options: ClientOptions = field(default_factory=ClientOptions)
    engine_factory: EngineFactory | None = None
    settings: TransferSettings = field(default_factory=load_transfer_settings)

    @classmethod
    def new(
        cls,
        base_url: str | None = None,
        options: ClientOptions | Mapping[str, Any] | None = None,
        *,
        engine_factory: EngineFactory | None = None,
        settings: TransferSettings | None = None,
    ) -> Client:
        client_options = _coerce_options(options)
        if base_url is not None:
            client_options = client_options.with_base_url(base_url)
            # Rebasing only happens during materialization, which needs request options.
            if client_options.request_options is None:
                client_options = client_options.with_request_options(RequestOptions())
        return cls(
            options=client_options,
            engine_factory=engine_factory,
            settings=settings or load_transfer_settings(),
        )

    def with_options(self, options: ClientOptions | Mapping[str, Any]) -> Client:
        return replace(self, options=_coerce_options(options))

    def _request_options(self) -> RequestOptions:
        return self.options.request_options or RequestOptions()

    def with_request_header(self, name: str, value: Any) -> Client:
        request_options = self._request_options().with_header(name, value)
        return self.with_options(self.options.with_request_options(request_options))

    def json(self) -> Client:
        return self.with_request_header("Content-Type", JSON_CONTENT_TYPE)

    def multipart(self) -> Client:
        return self.with_request_header("Content-Type", MULTIPART_CONTENT_TYPE)

    def basic_auth(self, user: str, password: str) -> Client:
        request_options = self._request_options().with_auth(user, password, "basic")
        return self.with_options(self.options.with_request_options(request_options))

    def digest_auth(self, user: str, password: str) -> Client:
        request_options = self._request_options().with_auth(user, password, "digest")
        return self.with_options(self.options.with_request_options(request_options))

    def override_request(self, request: HttpRequest) -> HttpRequest:
        return RequestOverrider(self.options).materialize(request)

    def build_transfer_config(self, request: HttpRequest) -> TransferConfig:
        return TransferOptionsBuilder(self.options, self.settings).build(request)

    def _create_engine(self) -> TransferEngine:
        if self.engine_factory is not None:
            return self.engine_factory()
        return create_default_engine(self.settings)

    def send_request(self, request: HttpRequest) -> HttpResponse:
        """
        Send `request` and return the normalized response.

        Raises InvalidConfiguration before any I/O for malformed options,
        NetworkError when the connection could not be established and
        RequestError for every other engine failure.
        """
        client = replace(self)
        request = client.override_request(request)
        config = client.build_transfer_config(request)
        client = client.with_options(client.options.with_sink(config.sink))

        engine = client._create_engine()
        logger.debug("Executing %s %s", config.method, config.url)
        engine.set_options(config)
        engine.execute()

        code = engine.get_error()
        if code:
            message = engine.get_error_message() or f"Transfer failed with engine error {code}"
            error_cls = NetworkError if code in NETWORK_ERROR_CODES else RequestError
            config.sink.close()
            logger.debug("%s for %s %s: %s", error_cls.__name__, config.method, config.url, message)
            raise error_cls(message, request=request, status_code=to_http_status_code(code), error_code=code)

        status_code = engine.get_status_code()
        if not MIN_STATUS_CODE <= status_code <= MAX_STATUS_CODE:
            status_code = to_http_status_code(code)
        reason = engine.get_error_message() if engine.has_error() else None
        if reason:
            logger.debug("Soft transfer error for %s %s: %s", config.method, config.url, reason)

        return HttpResponse(
            status_code=status_code,
            headers=engine.get_response_headers(),
            body=client.options.sink,
            protocol_version=engine.get_protocol_version(),
            reason=reason,
        )

    def send(
        self,
        method: str,
        url: httpx.URL | str,
        *,
        headers: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        body: Stream | bytes | str | None = None,
    ) -> HttpResponse:
        return self.send_request(HttpRequest.create(method, url, headers, body))


__all__ = ["Client", "EngineFactory"]

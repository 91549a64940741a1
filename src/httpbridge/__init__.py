# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpbridge: declarative HTTP requests executed through a pluggable transfer engine."""

from .config import TransferSettings, load_transfer_settings
from .cookies import CookieJar
from .errors import (
    EngineError,
    HttpBridgeError,
    InvalidConfiguration,
    NetworkError,
    RequestError,
    TransferError,
)
from .http import (
    Client,
    HttpRequest,
    HttpResponse,
    HttpxTransferEngine,
    RequestOverrider,
    StubTransferEngine,
    TransferConfig,
    TransferEngine,
    TransferOptionsBuilder,
    build_transfer_config,
    materialize,
)
from .log import setup_logging
from .options import Auth, ClientOptions, KeyFile, ProxyConfig, RequestOptions
from .version import __version__

__all__ = [
    "Auth",
    "Client",
    "ClientOptions",
    "CookieJar",
    "EngineError",
    "HttpBridgeError",
    "HttpRequest",
    "HttpResponse",
    "HttpxTransferEngine",
    "InvalidConfiguration",
    "KeyFile",
    "NetworkError",
    "ProxyConfig",
    "RequestError",
    "RequestOptions",
    "RequestOverrider",
    "StubTransferEngine",
    "TransferConfig",
    "TransferEngine",
    "TransferError",
    "TransferOptionsBuilder",
    "TransferSettings",
    "__version__",
    "build_transfer_config",
    "load_transfer_settings",
    "materialize",
    "setup_logging",
]

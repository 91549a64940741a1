# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP pipeline exports."""

from .adapters import StubTransferEngine
from .client import Client, EngineFactory
from .encoders import json_stream, multipart_stream, urlencoded_stream
from .engine import TransferEngine, create_default_engine
from .headers import header_value
from .httpx_engine import HttpxTransferEngine
from .models import HttpRequest, HttpResponse
from .override import RequestOverrider, materialize
from .query import build_query
from .streams import BufferStream, FileStream, IteratorStream, LazyStream, Stream
from .transfer import HttpVersion, IPResolve, TransferConfig, TransferOptionsBuilder, build_transfer_config

__all__ = [
    "BufferStream",
    "Client",
    "EngineFactory",
    "FileStream",
    "HttpRequest",
    "HttpResponse",
    "HttpVersion",
    "HttpxTransferEngine",
    "IPResolve",
    "IteratorStream",
    "LazyStream",
    "RequestOverrider",
    "Stream",
    "StubTransferEngine",
    "TransferConfig",
    "TransferEngine",
    "TransferOptionsBuilder",
    "build_query",
    "build_transfer_config",
    "create_default_engine",
    "header_value",
    "json_stream",
    "materialize",
    "multipart_stream",
    "urlencoded_stream",
]

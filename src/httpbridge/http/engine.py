# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transfer engine abstraction and factory."""

from typing import Protocol

from ..config import TransferSettings, load_transfer_settings
from .transfer import TransferConfig


class TransferEngine(Protocol):
    """Executor that performs the network I/O described by a TransferConfig."""

    def set_options(self, config: TransferConfig) -> None: ...

    def execute(self) -> None: ...

    def get_error(self) -> int: ...

    def get_error_message(self) -> str: ...

    def get_status_code(self) -> int: ...

    def get_response_headers(self) -> dict[str, list[str]]: ...

    def get_protocol_version(self) -> str: ...

    def has_error(self) -> bool: ...


def create_default_engine(settings: TransferSettings | None = None) -> TransferEngine:
    """Factory for the default httpx-backed engine."""
    from .httpx_engine import HttpxTransferEngine

    return HttpxTransferEngine(settings or load_transfer_settings())

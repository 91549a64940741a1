# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process engine for tests."""

from __future__ import annotations

from ..errors import EngineError
from .engine import TransferEngine
from .transfer import TransferConfig


class StubTransferEngine(TransferEngine):
    """
    Deterministic, programmable TransferEngine for tests.

    On `execute()` it drains the request body the way a real engine would,
    then feeds `body` to the config's write function. Every config it
    receives is kept in `configs`, and the uploaded bytes in `uploads`.
    """

    def __init__(
        self,
        *,
        status_code: int = 200,
        headers: dict[str, list[str]] | None = None,
        body: bytes = b"",
        error_code: int = EngineError.OK,
        error_message: str = "",
        protocol_version: str = "1.1",
    ):
        self.status_code = status_code
        self.headers = headers or {}
        self.body = body
        self.error_code = error_code
        self.error_message = error_message
        self.protocol_version = protocol_version
        self.configs: list[TransferConfig] = []
        self.uploads: list[bytes] = []
        self._config: TransferConfig | None = None

    def set_options(self, config: TransferConfig) -> None:
        self._config = config
        self.configs.append(config)

    def execute(self) -> None:
        config = self._config
        if config is None:
            raise RuntimeError("set_options() must be called before execute()")
        if config.post_fields is not None:
            self.uploads.append(config.post_fields)
        elif config.read_function is not None:
            chunks = []
            while chunk := config.read_function(8192):
                chunks.append(chunk)
            self.uploads.append(b"".join(chunks))
        if self.error_code != EngineError.OK:
            return
        if self.body and config.write_function is not None and not config.no_body:
            config.write_function(self.body)
        if config.progress_function is not None and not config.no_progress:
            uploaded = len(self.uploads[-1]) if self.uploads else 0
            config.progress_function(self, len(self.body), len(self.body), uploaded, uploaded)

    def get_error(self) -> int:
        return int(self.error_code)

    def get_error_message(self) -> str:
        return self.error_message

    def get_status_code(self) -> int:
        return self.status_code

    def get_response_headers(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self.headers.items()}

    def get_protocol_version(self) -> str:
        return self.protocol_version

    def has_error(self) -> bool:
        return bool(self.error_message)

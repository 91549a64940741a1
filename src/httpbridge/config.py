# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for httpbridge."""

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class TransferSettings:
    """Process-wide transfer defaults."""

    connect_timeout: float = 150.0
    buffer_ceiling: int = 1_000_000
    read_chunk_size: int = 64 * 1024
    trust_env: bool = False

    @classmethod
    def from_env(cls) -> "TransferSettings":
        """Create settings from environment variables (evaluated at call time)."""
        connect_timeout = _float_env("HTTPBRIDGE_CONNECT_TIMEOUT", cls.connect_timeout)
        if connect_timeout <= 0:
            connect_timeout = cls.connect_timeout
        buffer_ceiling = _int_env("HTTPBRIDGE_BUFFER_CEILING", cls.buffer_ceiling)
        if buffer_ceiling <= 0:
            buffer_ceiling = cls.buffer_ceiling
        read_chunk_size = _int_env("HTTPBRIDGE_READ_CHUNK_SIZE", cls.read_chunk_size)
        if read_chunk_size <= 0:
            read_chunk_size = cls.read_chunk_size
        return cls(
            connect_timeout=connect_timeout,
            buffer_ceiling=buffer_ceiling,
            read_chunk_size=read_chunk_size,
            trust_env=_bool_env("HTTPBRIDGE_TRUST_ENV", cls.trust_env),
        )


def load_transfer_settings() -> TransferSettings:
    """Load transfer settings from environment with sensible defaults."""
    return TransferSettings.from_env()

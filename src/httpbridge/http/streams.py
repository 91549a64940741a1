# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Byte streams used as request bodies and response sinks."""

from __future__ import annotations

import io
import os
from collections.abc import Callable, Iterable, Iterator
from typing import IO


class Stream:
    """Minimal binary stream contract shared by bodies and sinks.

    Concrete streams provide `_raw()`, the underlying binary file object.
    """

    def _raw(self) -> IO[bytes]:
        raise NotImplementedError

    def read(self, size: int = -1) -> bytes:
        return self._raw().read(size)

    def write(self, data: bytes) -> int:
        return self._raw().write(data)

    def seekable(self) -> bool:
        return True

    def rewind(self) -> None:
        self._raw().seek(0)

    def tell(self) -> int:
        return self._raw().tell()

    @property
    def size(self) -> int | None:
        raw = self._raw()
        position = raw.tell()
        end = raw.seek(0, io.SEEK_END)
        raw.seek(position)
        return end

    def getvalue(self) -> bytes:
        """Return the full content, reading from the start when the stream can seek."""
        if self.seekable():
            self.rewind()
        return self.read()

    def close(self) -> None:
        self._raw().close()

    def __enter__(self) -> Stream:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


class BufferStream(Stream):
    """In-memory stream."""

    def __init__(self, data: bytes | str = b"") -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer = io.BytesIO(data)

    def _raw(self) -> IO[bytes]:
        return self._buffer

    def __repr__(self) -> str:
        return f"BufferStream(size={self.size})"


class FileStream(Stream):
    """File-backed stream; the file is only opened on first access.

    The default mode reads an existing file, so a FileStream can be used as an
    upload body. Response sinks open with `"w+b"`.
    """

    def __init__(self, path: str | os.PathLike[str], mode: str = "rb") -> None:
        self.path = os.fspath(path)
        self.mode = mode
        self._file: IO[bytes] | None = None

    @property
    def opened(self) -> bool:
        return self._file is not None

    def _raw(self) -> IO[bytes]:
        if self._file is None:
            self._file = open(self.path, self.mode)  # noqa: SIM115
        return self._file

    def close(self) -> None:
        if self._file is not None:
            self._file.close()

    def __repr__(self) -> str:
        return f"FileStream(path={self.path!r}, mode={self.mode!r})"


class LazyStream(Stream):
    """Defers building the wrapped stream until it is first used."""

    def __init__(self, factory: Callable[[], Stream]) -> None:
        self._factory = factory
        self._stream: Stream | None = None

    @property
    def materialized(self) -> bool:
        return self._stream is not None

    @property
    def stream(self) -> Stream:
        if self._stream is None:
            self._stream = self._factory()
        return self._stream

    def _raw(self) -> IO[bytes]:
        return self.stream._raw()

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def write(self, data: bytes) -> int:
        return self.stream.write(data)

    def seekable(self) -> bool:
        return self.stream.seekable()

    def rewind(self) -> None:
        self.stream.rewind()

    def tell(self) -> int:
        return self.stream.tell()

    @property
    def size(self) -> int | None:
        return self.stream.size

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()


class IteratorStream(Stream):
    """Read-only, non-seekable stream of unknown size pulling from an iterable of chunks."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._pending = b""
        self._position = 0

    def read(self, size: int = -1) -> bytes:
        while size < 0 or len(self._pending) < size:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                break
            self._pending += chunk
        if size < 0:
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        self._position += len(data)
        return data

    def write(self, data: bytes) -> int:
        raise io.UnsupportedOperation("IteratorStream is read-only")

    def seekable(self) -> bool:
        return False

    def rewind(self) -> None:
        raise io.UnsupportedOperation("IteratorStream cannot seek")

    def tell(self) -> int:
        return self._position

    @property
    def size(self) -> int | None:
        return None

    def close(self) -> None:
        self._pending = b""
        self._chunks = iter(())


def to_stream(body: Stream | bytes | str | None) -> Stream:
    """Coerce a body value into a Stream."""
    if isinstance(body, Stream):
        return body
    if body is None:
        return BufferStream()
    if isinstance(body, (bytes, bytearray, memoryview)):
        return BufferStream(bytes(body))
    if isinstance(body, str):
        return BufferStream(body)
    return IteratorStream(body)


__all__ = ["BufferStream", "FileStream", "IteratorStream", "LazyStream", "Stream", "to_stream"]

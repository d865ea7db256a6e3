"""
Destinations for streamed media bodies.

A sink buffers writes and tells the writer when its buffer is full. The
writer then awaits ``drain()`` before sending more, which bounds memory to
roughly one high-water mark plus one chunk.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

import aiofiles

DEFAULT_HIGH_WATER_MARK = 1024 * 1024


class MediaSink(ABC):
    def __init__(self, high_water_mark: int = DEFAULT_HIGH_WATER_MARK):
        if high_water_mark <= 0:
            raise ValueError("high_water_mark must be positive")
        self.high_water_mark = high_water_mark
        self._buffer = bytearray()
        self.closed = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def write(self, data: bytes) -> bool:
        """Buffer ``data``.

        Returns:
            False once the buffer reached the high-water mark; the caller
            must await ``drain()`` before writing again.
        """
        if self.closed:
            raise ValueError("write to closed sink")
        self._buffer.extend(data)
        return len(self._buffer) < self.high_water_mark

    async def drain(self) -> None:
        """Flush the buffer; returns when the sink can accept more data."""
        if not self._buffer:
            return
        data = bytes(self._buffer)
        self._buffer.clear()
        await self._flush(data)

    async def close(self) -> None:
        """Flush remaining data and release the destination. Idempotent."""
        if self.closed:
            return
        try:
            await self.drain()
        finally:
            self.closed = True
            await self._release()

    @abstractmethod
    async def _flush(self, data: bytes) -> None: ...

    @abstractmethod
    async def _release(self) -> None: ...


class FileSink(MediaSink):
    """Writes to a local file opened lazily on the first flush."""

    def __init__(
        self,
        path: Union[str, Path],
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ):
        super().__init__(high_water_mark)
        self.path = Path(path)
        self._file = None

    async def _ensure_open(self):
        if self._file is None:
            self._file = await aiofiles.open(self.path, "wb")
        return self._file

    async def _flush(self, data: bytes) -> None:
        f = await self._ensure_open()
        await f.write(data)

    async def close(self) -> None:
        if not self.closed:
            # Empty bodies still produce a file
            await self._ensure_open()
        await super().close()

    async def _release(self) -> None:
        if self._file is None:
            return
        f, self._file = self._file, None
        await f.close()


class BytesSink(MediaSink):
    """Collects the body in memory."""

    def __init__(self, high_water_mark: int = DEFAULT_HIGH_WATER_MARK):
        super().__init__(high_water_mark)
        self._data = bytearray()

    @property
    def data(self) -> bytes:
        return bytes(self._data)

    async def _flush(self, data: bytes) -> None:
        self._data.extend(data)

    async def _release(self) -> None:
        return None


__all__ = ["MediaSink", "FileSink", "BytesSink", "DEFAULT_HIGH_WATER_MARK"]

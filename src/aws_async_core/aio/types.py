#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from io import BytesIO
from typing import cast

from .interfaces import AsyncByteStream, StreamingBlob
from .utils import close

# The default chunk size for iterating streams.
_DEFAULT_CHUNK_SIZE = 64 * 1024


# asyncio has a StreamReader class which you might think would be appropriate here,
# but it is unfortunately tied to the asyncio http interfaces.
class AsyncBytesReader:
    """A file-like object with an async read method.

    Used to expose streaming response payloads. Data is read from the source on an
    as-needed basis and is not buffered.
    """

    _closed = False

    def __init__(self, data: StreamingBlob):
        """Initializes self.

        :param data: The source data to read from.
        """
        self._remainder = b""
        self._data: AsyncByteStream | AsyncIterable[bytes] | BytesIO | None
        if isinstance(data, bytes | bytearray):
            self._data = BytesIO(data)
        else:
            self._data = data

    async def read(self, size: int = -1) -> bytes:
        """Read a number of bytes from the stream.

        :param size: The maximum number of bytes to read. If less than 0, all bytes will
            be read.
        """
        if self._closed or self._data is None:
            raise ValueError("I/O operation on closed file.")

        if isinstance(self._data, BytesIO):
            return self._data.read(size)

        if isinstance(self._data, AsyncByteStream):
            return await self._data.read(size)

        return await self._read_from_iterable(
            cast(AsyncIterable[bytes], self._data), size
        )

    async def _read_from_iterable(
        self, iterator: AsyncIterable[bytes], size: int
    ) -> bytes:
        result = self._remainder
        if size < 0:
            async for element in iterator:
                result += element
            self._remainder = b""
            return result

        if len(result) < size:
            async for element in iterator:
                result += element
                if len(result) >= size:
                    break

        self._remainder = result[size:]
        return result[:size]

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    def iter_chunks(
        self, chunk_size: int = _DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """Iterate over the reader in chunks of a given size.

        :param chunk_size: The maximum size of each chunk.
        """
        return _AsyncByteStreamIterator(self.read, chunk_size)

    @property
    def closed(self) -> bool:
        """Returns whether the stream is closed."""
        return self._closed

    async def close(self) -> None:
        """Closes the stream, as well as the underlying stream where possible."""
        if self._closed:
            return
        self._closed = True
        await close(self._data)
        self._data = None


class _AsyncByteStreamIterator:
    """An async bytes iterator that operates over an async read method."""

    def __init__(self, read: Callable[[int], Awaitable[bytes]], chunk_size: int):
        self._read = read
        self._chunk_size = chunk_size

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        data = await self._read(self._chunk_size)
        if data:
            return data
        raise StopAsyncIteration


class StreamingBody(AsyncBytesReader):
    """A streamed response payload.

    The underlying connection stays open until the body is read to the end or closed.
    """

    async def content(self) -> bytes:
        """Read the whole payload and release the connection."""
        try:
            return await self.read()
        finally:
            await self.close()

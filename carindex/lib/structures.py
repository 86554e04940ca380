"""
Interfaces and classes to read structured data: the `carindex.lib.structures.LookaheadReader` reads
from seekable binary streams with a bounded amount of look-ahead, and the
`carindex.lib.structures.StructReader` parses data that is held in memory.
"""
from __future__ import annotations

import io
import struct

from typing import BinaryIO

from carindex.lib.exceptions import CarTruncatedError
from carindex.lib.types import buf


class EOF(CarTruncatedError):
    """
    While reading from a `carindex.lib.structures.LookaheadReader`, less bytes were available than
    requested. The exception contains the data from the incomplete read.
    """
    def __init__(self, size: int, rest: buf = B'', offset: int | None = None):
        super().__init__(
            F'unexpected end of input; attempted to read {size} bytes, but got only {len(rest)}', offset)
        self.rest = rest
        self.size = size


class StreamDetour:
    """
    A stream detour is used as a context manager to temporarily move the cursor of a stream and
    then return to the original offset when the context ends.
    """
    def __init__(self, stream: LookaheadReader):
        self.stream = stream

    def __enter__(self):
        self.cursor = self.stream.tell()
        return self

    def __exit__(self, *args):
        self.stream.seek(self.cursor, io.SEEK_SET)


class LookaheadReader:
    """
    A thin wrapper around a binary stream which allows peeking at upcoming bytes without consuming
    them. Unlike `io.BufferedReader.peek`, a call to `peek` returns exactly as many bytes as were
    requested unless the stream ends first. The internal buffer never holds more than the largest
    amount of bytes that was peeked at, so memory use is bounded by the callers of `peek`; reads
    and seeks pass through to the underlying stream.
    """
    __slots__ = '_stream', '_buffer'

    def __init__(self, stream: BinaryIO | buf):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(stream)
        self._stream = stream
        self._buffer = bytearray()

    @property
    def stream(self) -> BinaryIO:
        return self._stream

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    def close(self):
        self._buffer.clear()
        self._stream.close()

    def tell(self) -> int:
        return self._stream.tell() - len(self._buffer)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_CUR:
            offset -= len(self._buffer)
        self._buffer.clear()
        return self._stream.seek(offset, whence)

    def seekset(self, offset: int) -> int:
        return self.seek(offset, io.SEEK_SET)

    def size(self) -> int:
        """
        The total size of the underlying stream. The cursor is not moved.
        """
        with StreamDetour(self):
            return self._stream.seek(0, io.SEEK_END)

    def peek(self, size: int) -> bytes:
        """
        Return up to `size` upcoming bytes without consuming them. Fewer bytes are returned only
        if the stream ends.
        """
        buffer = self._buffer
        while (missing := size - len(buffer)) > 0:
            chunk = self._stream.read(missing)
            if not chunk:
                break
            buffer.extend(chunk)
        return bytes(buffer[:size])

    def peek_exactly(self, size: int) -> bytes:
        """
        Like `carindex.lib.structures.LookaheadReader.peek`, but raises an exception of type
        `carindex.lib.structures.EOF` if fewer than `size` bytes are available.
        """
        data = self.peek(size)
        if len(data) < size:
            raise EOF(size, data, self.tell())
        return data

    def discard(self, size: int) -> int:
        """
        Skip `size` bytes that have already been peeked at. Returns the number of bytes that were
        discarded, which may be less than `size` only at the end of the stream.
        """
        buffer = self._buffer
        if size > len(buffer):
            self.peek(size)
        size = min(size, len(buffer))
        del buffer[:size]
        return size

    def read(self, size: int | None = None) -> bytes:
        buffer = self._buffer
        if size is None or size < 0:
            data = bytes(buffer) + self._stream.read()
            buffer.clear()
            return data
        if size <= len(buffer):
            data = bytes(buffer[:size])
            del buffer[:size]
            return data
        data = bytes(buffer)
        buffer.clear()
        rest = self._stream.read(size - len(data))
        if rest:
            data += rest
        return data

    def read_exactly(self, size: int) -> bytes:
        """
        Read exactly `size` bytes from the stream or raise an exception of type
        `carindex.lib.structures.EOF` which contains the data from the incomplete read.
        """
        offset = self.tell()
        data = self.read(size)
        while len(data) < size:
            more = self._stream.read(size - len(data))
            if not more:
                raise EOF(size, data, offset)
            data += more
        return data

    @property
    def eof(self) -> bool:
        return not self.peek(1)


class StructReader:
    """
    A reader for structured data held entirely in memory. It is used for data that has to be
    materialized anyway, like the header of a CAR container.
    """
    __slots__ = '_data', '_cursor', 'bigendian'

    def __init__(self, data: buf, bigendian: bool = False):
        self._data = memoryview(data)
        self._cursor = 0
        self.bigendian = bigendian

    @property
    def byteorder_name(self):
        return 'big' if self.bigendian else 'little'

    @property
    def byteorder_format(self) -> str:
        return '>' if self.bigendian else '<'

    @property
    def eof(self) -> bool:
        return self._cursor >= len(self._data)

    @property
    def remaining_bytes(self) -> int:
        return len(self._data) - self._cursor

    def tell(self) -> int:
        return self._cursor

    def read(self, size: int | None = None, peek: bool = False) -> memoryview:
        beginning = self._cursor
        if size is None or size < 0:
            end = len(self._data)
        else:
            end = min(self._cursor + size, len(self._data))
        if not peek:
            self._cursor = end
        return self._data[beginning:end]

    def read_exactly(self, size: int, peek: bool = False) -> memoryview:
        """
        Read bytes from the underlying buffer. Raises an exception of type
        `carindex.lib.structures.EOF` when fewer data is available than requested.
        """
        offset = self._cursor
        data = self.read(size, peek)
        if len(data) < size:
            raise EOF(size, bytes(data), offset)
        return data

    def read_integer(self, size: int, peek: bool = False, signed: bool = False) -> int:
        """
        Read an integer of the given size (in bits) from the buffer.
        """
        nbytes, rest = divmod(size, 8)
        if rest > 0:
            raise ValueError(
                F'A {self.__class__.__name__} cannot read {size} bits, only multiples of 8 are possible.')
        data = self.read_exactly(nbytes, peek)
        return int.from_bytes(data, self.byteorder_name, signed=signed)

    def read_byte(self, peek: bool = False) -> int:
        try:
            b = self._data[self._cursor]
        except IndexError:
            raise EOF(1, B'', self._cursor)
        if not peek:
            self._cursor += 1
        return b

    u8 = read_byte

    def read_struct(self, spec: str, peek: bool = False) -> tuple:
        """
        Read structured data in any format supported by the `struct` module. Unless the format
        starts with a byte order character, the byte order of the reader is used.
        """
        if spec[:1] not in '<!=@>':
            spec = F'{self.byteorder_format}{spec}'
        return struct.unpack(spec, self.read_exactly(struct.calcsize(spec), peek))

    def f64(self, peek: bool = False) -> float:
        value, = self.read_struct('d', peek)
        return value

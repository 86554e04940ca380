"""
Parsing of CAR (content-addressable archive) containers. A container is a sequence of frames,
each of which consists of a varint length prefix and a body of that many bytes:

    | length | header            |
    | length | CID | block data  |
    ...
    | length | CID | block data  |

The first body is a DAG-CBOR map with the keys `roots` and `version`. This module can decode
that header with `carindex.lib.car.parse_car_header` and it can produce an index of all blocks
with `carindex.lib.car.CarIndexWalker`. The index is computed in a single forward pass that
reads only the length prefix and the CID of each frame and seeks past the block data, so the
memory required does not depend on the size of the blocks or the container.
"""
from __future__ import annotations

import contextlib
import enum
import os

from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, NamedTuple, Union

from carindex.lib.cbor import decode_dag_cbor
from carindex.lib.cid import Cid, CidDecoder
from carindex.lib.environment import logger
from carindex.lib.exceptions import CarFormatError, CarHeaderError, CarTruncatedError
from carindex.lib.structures import EOF, LookaheadReader
from carindex.lib.varint import peek_uvarint

if TYPE_CHECKING:
    from carindex.lib.types import Callable, Generator, JSONDict, buf

Source = Union[str, os.PathLike, BinaryIO]


class CarHeader(NamedTuple):
    roots: tuple[Cid, ...]
    version: int

    def __json__(self) -> JSONDict:
        return {
            'roots': [root.__json__() for root in self.roots],
            'version': self.version,
        }


@dataclass(frozen=True)
class IndexEntry:
    """
    The location of one block frame inside a container. The frame starts at `offset` and spans
    `length` bytes including its length prefix. The block data, which follows the CID, starts at
    `block_offset` and spans `block_length` bytes.
    """
    cid: Cid
    offset: int
    length: int
    block_offset: int
    block_length: int

    @property
    def cid_length(self) -> int:
        return len(self.cid)

    @property
    def prefix_length(self) -> int:
        return self.block_offset - self.offset - self.cid_length

    @property
    def declared_length(self) -> int:
        """
        The frame length as it is encoded in the length prefix.
        """
        return self.length - self.prefix_length

    @property
    def end(self) -> int:
        return self.offset + self.length

    def __json__(self) -> JSONDict:
        return {
            'cid': self.cid.__json__(),
            'offset': self.offset,
            'length': self.length,
            'blockOffset': self.block_offset,
            'blockLength': self.block_length,
        }


class WalkState(str, enum.Enum):
    AWAITING_HEADER = 'awaiting header'
    AWAITING_BLOCK = 'awaiting block'
    DONE = 'done'
    FAILED = 'failed'


@contextlib.contextmanager
def open_container(source: Source):
    """
    Wrap the given source in a `carindex.lib.structures.LookaheadReader`. When the source is a
    path, the file is opened here and closed when the context ends. Streams are left open.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, 'rb') as stream:
            yield LookaheadReader(stream)
    else:
        yield LookaheadReader(source)


def read_frame_length(reader: LookaheadReader, window: int | None = None) -> tuple[int, int]:
    """
    Read the length prefix of the next frame. Returns the declared length of the frame body and
    the number of bytes that the prefix occupied. Only the prefix is consumed.
    """
    offset = reader.tell()
    length, prefix = peek_uvarint(reader, 0, window)
    reader.discard(prefix)
    if length == 0:
        raise CarFormatError('got length 0 block', offset)
    return length, prefix


class CarIndexWalker:
    """
    Walks over the frames of a container and produces one `carindex.lib.car.IndexEntry` for each
    block frame. The first frame is the header; it is skipped and does not produce an entry.
    Entries are produced lazily and in order of increasing offset:

        for entry in CarIndexWalker('archive.car'):
            print(entry.cid, entry.block_offset, entry.block_length)

    Each iteration starts a new pass over the container. When the walker was created from a path,
    the file is opened for the duration of the pass and closed on every exit, including when the
    consumer stops iterating early. A stream is rewound to the position it had when the walker
    was created and it is not closed.
    """
    def __init__(
        self,
        source: Source,
        cid_decoder: CidDecoder | None = None,
        window: int | None = None,
    ):
        self.source = source
        self.window = window
        self.cid_decoder = cid_decoder or CidDecoder(window=window)
        self.state = WalkState.AWAITING_HEADER
        self.log = logger(__name__)
        self._origin = None
        if not isinstance(source, (str, os.PathLike)):
            self._origin = source.tell()

    def __iter__(self):
        return self.walk()

    def walk(self) -> Generator[IndexEntry, None, None]:
        with open_container(self.source) as reader:
            if self._origin is not None:
                reader.seekset(self._origin)
            self.state = WalkState.AWAITING_HEADER
            try:
                yield from self._walk(reader)
            except Exception:
                self.state = WalkState.FAILED
                raise

    def _walk(self, reader: LookaheadReader):
        log = self.log
        size = reader.size()
        offset = reader.tell()
        count = 0

        while True:
            if reader.eof:
                self.state = WalkState.DONE
                log.info('indexed %d blocks in %d bytes', count, offset)
                return

            length, prefix = read_frame_length(reader, self.window)
            end = offset + prefix + length
            if end > size:
                raise CarTruncatedError(
                    F'frame of length {length} ends at offset {end}, but the input has only {size} bytes', offset)

            if self.state is WalkState.AWAITING_HEADER:
                log.debug('skipping header frame of length %d', length)
                self.state = WalkState.AWAITING_BLOCK
            else:
                cid, cid_length = self.cid_decoder.read_cid(reader, length)
                entry = IndexEntry(
                    cid=cid,
                    offset=offset,
                    length=prefix + length,
                    block_offset=offset + prefix + cid_length,
                    block_length=length - cid_length,
                )
                log.debug('block frame at 0x%X with length %d', offset, entry.length)
                count += 1
                yield entry

            if reader.seekset(end) != end:
                raise CarTruncatedError('could not seek to correct position', end)
            offset = end


def iter_car_index(source: Source, window: int | None = None) -> Generator[IndexEntry, None, None]:
    """
    Generate the index entries of the given container.
    """
    return CarIndexWalker(source, window=window).walk()


def generate_car_index(
    source: Source,
    sink: Callable[[IndexEntry], object],
    window: int | None = None,
) -> int:
    """
    Parse a container and pass each `carindex.lib.car.IndexEntry` to `sink`. If `sink` raises an
    exception, the walk is aborted and the exception propagates. Returns the number of entries
    that were passed to the sink.
    """
    entries = iter_car_index(source, window)
    count = 0
    try:
        for entry in entries:
            sink(entry)
            count += 1
    finally:
        entries.close()
    return count


def decode_header(data: buf, cid_decoder: CidDecoder | None = None) -> CarHeader:
    """
    Decode the body of a header frame.
    """
    header = decode_dag_cbor(data, cid_decoder)
    if not isinstance(header, dict):
        raise CarHeaderError(F'header is of type {type(header).__name__}, expected a map')
    try:
        roots = header['roots']
        version = header['version']
    except KeyError as K:
        raise CarHeaderError(F'header is missing the {K!s} field') from K
    if not isinstance(roots, list) or not all(isinstance(root, Cid) for root in roots):
        raise CarHeaderError('header roots must be a list of CIDs')
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        raise CarHeaderError(F'header version must be an unsigned integer, got {version!r}')
    return CarHeader(tuple(roots), version)


def parse_car_header(
    source: Source,
    cid_decoder: CidDecoder | None = None,
    window: int | None = None,
) -> CarHeader:
    """
    Read and decode only the header of a container. Unlike the frames of blocks, the header frame
    is read into memory in full.
    """
    with open_container(source) as reader:
        length, _ = read_frame_length(reader, window)
        try:
            data = reader.read_exactly(length)
        except EOF as E:
            raise CarTruncatedError(
                F'could not read full header; expected {length} bytes, got {len(E.rest)}', E.offset) from E
    return decode_header(data, cid_decoder)


__all__ = [
    'CarHeader',
    'CarIndexWalker',
    'IndexEntry',
    'WalkState',
    'decode_header',
    'generate_car_index',
    'iter_car_index',
    'open_container',
    'parse_car_header',
    'read_frame_length',
]

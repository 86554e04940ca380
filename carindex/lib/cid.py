"""
Content identifiers (CIDs) as they occur inside CAR containers. Two incompatible binary forms
exist:

- The legacy form (CIDv0) is a bare sha2-256 multihash: the two bytes `12 20` followed by a
  32 byte digest. It is always exactly 34 bytes long and implies the dag-pb codec.
- The versioned form (CIDv1) is a varint version (which must be `1`), a varint codec, and a
  multihash of arbitrary length.

Every decoded `carindex.lib.cid.Cid` retains the exact bytes it was decoded from. The length of
these bytes is the number of bytes consumed from the container, which is what all offsets in the
index are computed from.
"""
from __future__ import annotations

from dataclasses import dataclass

from multiformats import multibase

from carindex.lib.exceptions import CarFormatError
from carindex.lib.multihash import SHA2_256, Multihash, MultihashReader, StreamMultihashReader
from carindex.lib.structures import LookaheadReader
from carindex.lib.types import JSONDict, buf
from carindex.lib.varint import peek_uvarint

LEGACY_CID_PREFIX = bytes((SHA2_256, 0x20))
LEGACY_CID_SIZE = 34
DAG_PB = 0x70


class Cid:
    """
    Common interface of both CID forms.
    """
    version: int
    codec: int
    multihash: Multihash
    raw: bytes

    def __len__(self):
        return len(self.raw)

    def __bytes__(self):
        return self.raw

    def __str__(self):
        # multibase only; codec and hash codes are never looked up
        if self.version == 0:
            return multibase.encode(self.raw, 'base58btc')[1:]
        return multibase.encode(self.raw, 'base32')

    def __json__(self) -> JSONDict:
        return {'/': str(self)}


@dataclass(frozen=True)
class LegacyCid(Cid):
    raw: bytes

    def __post_init__(self):
        if len(self.raw) != LEGACY_CID_SIZE or not self.raw.startswith(LEGACY_CID_PREFIX):
            raise ValueError(F'not a legacy CID: {self.raw.hex()}')

    @property
    def version(self) -> int:
        return 0

    @property
    def codec(self) -> int:
        return DAG_PB

    @property
    def multihash(self) -> Multihash:
        return Multihash(SHA2_256, 32, self.raw[2:], LEGACY_CID_SIZE)


@dataclass(frozen=True)
class VersionedCid(Cid):
    version: int
    codec: int
    multihash: Multihash
    raw: bytes


class CidDecoder:
    """
    Decodes CIDs from a `carindex.lib.structures.LookaheadReader`. The consumption of the
    multihash part of a versioned CID is delegated to a `carindex.lib.multihash.MultihashReader`.
    """
    def __init__(self, multihash_reader: MultihashReader | None = None, window: int | None = None):
        if multihash_reader is None:
            multihash_reader = StreamMultihashReader(window)
        self.multihash_reader = multihash_reader
        self.window = window

    def read_cid(self, reader: LookaheadReader, limit: int | None = None) -> tuple[Cid, int]:
        """
        Consume one CID from the current position of `reader` and return it along with the number
        of bytes that it occupied. If `limit` is given, a CID that would occupy more than `limit`
        bytes is rejected before anything beyond its varint prefixes is read.
        """
        start = reader.tell()
        if reader.peek_exactly(2) == LEGACY_CID_PREFIX:
            self._check_limit(LEGACY_CID_SIZE, limit, start)
            raw = reader.read_exactly(LEGACY_CID_SIZE)
            return LegacyCid(raw), LEGACY_CID_SIZE

        window = self.window
        version, version_size = peek_uvarint(reader, 0, window)
        if version != 1:
            raise CarFormatError(F'invalid CID version number: {version}', start)
        codec, codec_size = peek_uvarint(reader, version_size, window)
        head = reader.peek(version_size + codec_size)
        reader.discard(len(head))

        # only the two varints at the front are peeked to learn the multihash size
        _, code_size = peek_uvarint(reader, 0, window)
        length, length_size = peek_uvarint(reader, code_size, window)
        head += reader.peek(code_size + length_size)
        size = len(head) + length
        self._check_limit(size, limit, start)

        multihash = self.multihash_reader.read_multihash(reader)
        consumed = reader.tell() - start
        if consumed != size or multihash.size != size - version_size - codec_size:
            raise CarFormatError(
                F'multihash reader consumed {consumed} bytes for a CID of {size} bytes', start)

        cid = VersionedCid(version, codec, multihash, head + multihash.digest)
        return cid, size

    @staticmethod
    def _check_limit(size: int, limit: int | None, offset: int):
        if limit is not None and size > limit:
            raise CarFormatError(F'CID occupies {size} bytes, but only {limit} are available', offset)

    def decode(self, data: buf) -> Cid:
        """
        Decode a CID from a buffer that contains nothing else.
        """
        reader = LookaheadReader(bytes(data))
        cid, size = self.read_cid(reader, len(data))
        if size != len(data):
            raise CarFormatError(F'CID occupies {size} bytes, but {len(data)} were given')
        return cid

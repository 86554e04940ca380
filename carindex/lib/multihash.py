"""
Multihashes are self-describing hash values: a varint hash function code, a varint digest length,
and the digest itself. The CID decoder only needs to know how many bytes a multihash occupies and
delegates the actual consumption to a `carindex.lib.multihash.MultihashReader`, which keeps the
decoder independent of any particular multihash implementation.
"""
from __future__ import annotations

import abc

from dataclasses import dataclass
from typing import TYPE_CHECKING

from carindex.lib.varint import peek_uvarint

if TYPE_CHECKING:
    from carindex.lib.structures import LookaheadReader


SHA2_256 = 0x12


@dataclass(frozen=True)
class Multihash:
    code: int
    length: int
    digest: bytes
    size: int
    """
    The number of bytes occupied by the encoded multihash, including both varint prefixes.
    """

    def __post_init__(self):
        if len(self.digest) != self.length:
            raise ValueError(
                F'multihash digest has {len(self.digest)} bytes, but its length prefix is {self.length}')


class MultihashReader(abc.ABC):
    """
    The interface used by `carindex.lib.cid.CidDecoder` to consume a multihash from a stream.
    """
    @abc.abstractmethod
    def read_multihash(self, reader: LookaheadReader) -> Multihash:
        """
        Consume exactly one multihash from the current position of `reader`.
        """
        raise NotImplementedError


class StreamMultihashReader(MultihashReader):
    """
    The default multihash reader; it reads the two varint prefixes and then the digest in full.
    """
    def __init__(self, window: int | None = None):
        self.window = window

    def read_multihash(self, reader: LookaheadReader) -> Multihash:
        code, code_size = peek_uvarint(reader, 0, self.window)
        length, length_size = peek_uvarint(reader, code_size, self.window)
        reader.discard(code_size + length_size)
        digest = reader.read_exactly(length)
        return Multihash(code, length, digest, code_size + length_size + length)

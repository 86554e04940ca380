#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Decoding of DAG-CBOR, the subset of CBOR (RFC 8949) that IPLD uses and in which the header of a CAR
container is encoded. Every data item starts with an initial byte: the high 3 bits hold the major
type and the low 5 bits the additional information, from which the argument is decoded. DAG-CBOR
only permits definite lengths, string map keys, the simple values `false`, `true` and `null`,
64-bit floats, and tag 42, which marks a CID link. Anything else is rejected.
"""
from __future__ import annotations

from carindex.lib.cid import Cid, CidDecoder
from carindex.lib.exceptions import CarHeaderError
from carindex.lib.structures import EOF, StructReader
from carindex.lib.types import buf

CBOR_TAG_CID = 42


class DagCborReader(StructReader):
    """
    Reads DAG-CBOR data items from a buffer. Links are decoded with the given
    `carindex.lib.cid.CidDecoder`.
    """
    def __init__(self, data: buf, cid_decoder: CidDecoder | None = None):
        super().__init__(data, bigendian=True)
        self.cid_decoder = cid_decoder or CidDecoder()

    def read_argument(self, major: int, info: int) -> int:
        if info < 24:
            return info
        if info > 27:
            raise ValueError(F'major type {major} with additional information {info} is not permitted')
        return self.read_integer(8 << (info - 24))

    def read_item(self):
        initial = self.u8()
        major = initial >> 5
        info = initial & 0x1F

        if major == 7:
            return self._read_special(info)

        argument = self.read_argument(major, info)

        if major == 0:
            return argument
        if major == 1:
            return -1 - argument
        if major == 2:
            return bytes(self.read_exactly(argument))
        if major == 3:
            return bytes(self.read_exactly(argument)).decode('utf8')
        if major == 4:
            return [self.read_item() for _ in range(argument)]
        if major == 5:
            return self._read_map(argument)
        if argument != CBOR_TAG_CID:
            raise ValueError(F'tag {argument} is not permitted')
        return self._read_link()

    def _read_special(self, info: int):
        if info == 20:
            return False
        if info == 21:
            return True
        if info == 22:
            return None
        if info == 27:
            return self.f64()
        raise ValueError(F'simple value or float with additional information {info} is not permitted')

    def _read_map(self, count: int) -> dict:
        pairs = {}
        for _ in range(count):
            key = self.read_item()
            if not isinstance(key, str):
                raise ValueError(F'map key of type {type(key).__name__} is not permitted')
            if key in pairs:
                raise ValueError(F'duplicate map key {key!r}')
            pairs[key] = self.read_item()
        return pairs

    def _read_link(self) -> Cid:
        content = self.read_item()
        if not isinstance(content, bytes) or content[:1] != B'\0':
            raise ValueError('CID link must be a byte string with a leading zero byte')
        return self.cid_decoder.decode(content[1:])


def decode_dag_cbor(data: buf, cid_decoder: CidDecoder | None = None):
    """
    Decode exactly one data item that spans all of `data`.
    """
    reader = DagCborReader(data, cid_decoder)
    try:
        item = reader.read_item()
    except EOF as E:
        raise CarHeaderError(F'CBOR data ends prematurely: {E.reason}') from E
    except RecursionError as E:
        raise CarHeaderError('CBOR data is nested too deeply') from E
    except (ValueError, TypeError, UnicodeDecodeError) as E:
        raise CarHeaderError(F'invalid CBOR data: {E!s}') from E
    if not reader.eof:
        raise CarHeaderError(F'{reader.remaining_bytes} trailing bytes after CBOR data item')
    return item

import hashlib
import logging
import os
import random
import tempfile
import unittest

import carindex

from typing import Iterable, Optional, Tuple


__all__ = ['carindex', 'TestBase', 'CarBuilder']


def uvarint(value: int) -> bytes:
    output = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            output.append(byte | 0x80)
        else:
            output.append(byte)
            return bytes(output)


def cbor_head(major: int, argument: int) -> bytes:
    if argument < 24:
        return bytes((major << 5 | argument,))
    if argument < 0x100:
        return bytes((major << 5 | 24, argument))
    if argument < 0x10000:
        return bytes((major << 5 | 25,)) + argument.to_bytes(2, 'big')
    return bytes((major << 5 | 26,)) + argument.to_bytes(4, 'big')


def cbor_text(text: str) -> bytes:
    data = text.encode('utf8')
    return cbor_head(3, len(data)) + data


def cbor_link(cid: bytes) -> bytes:
    data = B'\0' + cid
    return B'\xD8\x2A' + cbor_head(2, len(data)) + data


def legacy_cid(payload: bytes) -> bytes:
    return B'\x12\x20' + hashlib.sha256(payload).digest()


def versioned_cid(payload: bytes, codec: int = 0x55, code: int = 0x12, digest: Optional[bytes] = None) -> bytes:
    if digest is None:
        digest = hashlib.sha256(payload).digest()
    return uvarint(1) + uvarint(codec) + uvarint(code) + uvarint(len(digest)) + digest


def car_header(roots: Iterable[bytes], version: int = 1) -> bytes:
    roots = list(roots)
    return (
        cbor_head(5, 2)
        + cbor_text('roots') + cbor_head(4, len(roots)) + B''.join(cbor_link(r) for r in roots)
        + cbor_text('version') + cbor_head(0, version)
    )


def frame(body: bytes) -> bytes:
    return uvarint(len(body)) + body


class CarBuilder:
    """
    Assembles CAR containers in memory and remembers the expected layout of every block frame.
    """
    def __init__(self, roots: Iterable[bytes] = (), version: int = 1):
        self.header = car_header(roots, version)
        self.blocks: list[Tuple[bytes, bytes]] = []

    def add(self, cid: bytes, payload: bytes):
        self.blocks.append((cid, payload))
        return self

    def expected(self):
        offset = len(frame(self.header))
        for cid, payload in self.blocks:
            body = cid + payload
            prefix = len(uvarint(len(body)))
            yield dict(
                offset=offset,
                length=prefix + len(body),
                block_offset=offset + prefix + len(cid),
                block_length=len(payload),
            )
            offset += prefix + len(body)

    def build(self) -> bytes:
        return frame(self.header) + B''.join(frame(cid + payload) for cid, payload in self.blocks)


class TestBase(unittest.TestCase):

    def generate_random_buffer(self, size):
        return bytes(random.randrange(0, 0x100) for _ in range(size))

    def setUp(self):
        random.seed(0xBAADF00D)  # guarantee deterministic 'random' buffers
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def write_temporary(self, data: bytes) -> str:
        fd, path = tempfile.mkstemp(suffix='.car')
        with os.fdopen(fd, 'wb') as stream:
            stream.write(data)
        self.addCleanup(os.unlink, path)
        return path

    def assertContains(self, container, member, msg=None):
        self.assertIn(member, container, msg)

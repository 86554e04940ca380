"""
Decoding of unsigned variable-length integers as they are used for CAR frame lengths, CID
versions, codecs, and multihash prefixes: little-endian base 128, where the high bit of each
byte signals that another byte follows.

The decoder works on a fixed look-ahead window rather than an unbounded stream. A varint that
does not terminate within the window is rejected as malformed; this bounds the amount of memory
needed to decode any prefix, but it also means that values which would require more than
`7 * window` bits cannot be represented.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from carindex.lib.environment import environment
from carindex.lib.exceptions import CarFormatError, CarTruncatedError

if TYPE_CHECKING:
    from carindex.lib.structures import LookaheadReader
    from carindex.lib.types import buf


def varint_window(window: int | None = None) -> int:
    """
    Resolve the effective look-ahead window; an explicit positive value takes precedence over
    the `CARINDEX_VARINT_WINDOW` setting.
    """
    if window is None or window <= 0:
        window = environment.varint_window.value
    return window


def decode_uvarint(data: buf, offset: int = 0, window: int | None = None) -> tuple[int, int]:
    """
    Decode the varint that starts at `offset` inside `data`. Returns the decoded value and the
    number of bytes that the encoding occupies. At most `window` bytes are examined.
    """
    window = varint_window(window)
    value = 0
    shift = 0
    end = min(offset + window, len(data))
    for k in range(offset, end):
        b = data[k]
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            return value, k - offset + 1
        shift += 7
    if end - offset < window:
        raise CarTruncatedError(
            F'not enough bytes to decode varint; {end - offset} available and none terminate it')
    raise CarFormatError(F'varint does not terminate within the look-ahead window of {window} bytes')


def peek_uvarint(reader: LookaheadReader, offset: int = 0, window: int | None = None) -> tuple[int, int]:
    """
    Decode the varint which begins `offset` bytes past the current position of `reader` without
    advancing it. Only `offset + window` bytes are ever buffered.
    """
    window = varint_window(window)
    data = reader.peek(offset + window)
    if len(data) <= offset:
        raise CarTruncatedError(
            F'not enough bytes for varint; needed more than {offset}, got {len(data)}', reader.tell())
    try:
        return decode_uvarint(data, offset, window)
    except CarFormatError as E:
        raise E.__class__(E.reason, reader.tell() + offset) from None


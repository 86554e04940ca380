R"""
This is the carindex package documentation. The package parses CAR (content-addressable archive)
files: it can decode the header of a container, and it can produce an index of the location of
every block without reading any block data.

    >>> from carindex import parse_car_header, iter_car_index
    >>> header = parse_car_header('archive.car')
    >>> for entry in iter_car_index('archive.car'):
    ...     print(entry.cid, entry.block_offset, entry.block_length)

The same functionality is available from the command line via the `carindex` command, see
`carindex.cli`. The following library modules are most relevant:

1. `carindex.lib.car`: the header extractor and the index walker
2. `carindex.lib.cid`: decoding of both binary CID forms
3. `carindex.lib.varint`: decoding of varints with a bounded look-ahead window
4. `carindex.lib.environment`: configuration via environment variables, and logging
"""
from __future__ import annotations

__version__ = '0.3.1'
__distribution__ = 'carindex'

from carindex.lib.car import (
    CarHeader,
    CarIndexWalker,
    IndexEntry,
    WalkState,
    decode_header,
    generate_car_index,
    iter_car_index,
    parse_car_header,
)
from carindex.lib.cid import Cid, CidDecoder, LegacyCid, VersionedCid
from carindex.lib.exceptions import (
    CarFormatError,
    CarHeaderError,
    CarIndexException,
    CarTruncatedError,
)

__all__ = [
    'CarFormatError',
    'CarHeader',
    'CarHeaderError',
    'CarIndexException',
    'CarIndexWalker',
    'CarTruncatedError',
    'Cid',
    'CidDecoder',
    'IndexEntry',
    'LegacyCid',
    'VersionedCid',
    'WalkState',
    'decode_header',
    'generate_car_index',
    'iter_car_index',
    'parse_car_header',
]

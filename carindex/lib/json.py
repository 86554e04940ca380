"""
This module provides JSON encoding. All of carindex should use this interface rather than the
standard library JSON module. It uses the orJSON external library as backend, which is much faster,
and falls back to the standard library if orJSON is not available.
"""
from __future__ import annotations

import json as pyjson

from enum import Enum

from carindex.lib.types import Any, Callable

try:
    import orjson
except ImportError:
    orjson = None


def standard_conversions(o):
    """
    Converts objects that provide a `__json__` method, and also converts `set`, `tuple`, and
    `frozenset` objects to `list`s for JSON serialization. Other serialization of standard object
    types should be added here.
    """
    try:
        return o.__json__()
    except AttributeError:
        pass
    if isinstance(o, Enum):
        return o.name
    if isinstance(o, (bytes, bytearray, memoryview)):
        return bytes(o).hex()
    if isinstance(o, (set, tuple, frozenset)):
        return list(o)
    raise TypeError(F'Object of type {type(o).__name__} is not JSON serializable')


def preprocess(o):
    """
    This method converts all objects with a `__json__` method within nested dictionaries and lists
    of the input object, and it ensures that no integers requiring more than 64 bits are stored in
    them. Integers that exceed this limit are converted to hexadecimal string representations with
    prefix.
    """
    if hasattr(o, '__json__'):
        return preprocess(o.__json__())
    if isinstance(o, dict):
        return {k: preprocess(v) for k, v in o.items()}
    if isinstance(o, (list, tuple)):
        return [preprocess(v) for v in o]
    if isinstance(o, int) and not isinstance(o, bool) and o.bit_length() > 64:
        return hex(o)
    return o


def py_json_dumps(
    object,
    pretty: bool = False,
    checks: bool = True,
    tojson: Callable[[Any], Any] | None = None,
) -> bytes:
    """
    This is the JSON dump method wrapper which is based on the standard library backend. It is
    exposed separately to allow testing.
    """
    if checks:
        object = preprocess(object)
    default = tojson or standard_conversions
    if pretty:
        out = pyjson.dumps(object, ensure_ascii=False, default=default, indent=2)
    else:
        out = pyjson.dumps(object, ensure_ascii=False, default=default, indent=None, separators=(',', ':'))
    return out.encode('utf8')


def or_json_dumps(
    object,
    pretty: bool = False,
    checks: bool = True,
    tojson: Callable[[Any], Any] | None = None,
) -> bytes:
    """
    The JSON dump method wrapper which is based on orJSON.
    """
    default = tojson or standard_conversions
    options = (
        0
        | orjson.OPT_NON_STR_KEYS
        | orjson.OPT_PASSTHROUGH_DATACLASS
    )
    if pretty:
        options |= orjson.OPT_INDENT_2
    if checks:
        object = preprocess(object)
    return orjson.dumps(object, option=options, default=default)


if orjson is None:
    dumps = py_json_dumps
    loads = pyjson.loads
else:
    dumps = or_json_dumps
    loads = orjson.loads


__pdoc__ = {
    'dumps': (
        'A unified proxy method for dumping input data to JSON, using either the orJSON or the '
        'standard library as backend, depending on what is available. The `pretty` option controls '
        'whether the output is indented or minified, and an optional conversion handler can be '
        'passed as the `tojson` parameter to serialize Python objects that are not handled natively '
        'by the backend. The option `checks` can be set to false to prevent all preprocessing of '
        'the input data.'
    ),
    'loads': (
        'A unified proxy method for loading JSON data as a Python object, using either orJSON '
        'or the standard library backend.'
    ),
}

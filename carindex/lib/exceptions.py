"""
Exceptions raised while parsing CAR containers. All of them derive from
`carindex.lib.exceptions.CarIndexException`. Errors from the file system are not wrapped; they
surface as the `OSError` that was raised. Likewise, any exception raised by a consumer of index
entries propagates unchanged.
"""
from __future__ import annotations


class CarIndexException(Exception):
    """
    Base class for all exceptions raised by carindex.
    """


class CarFormatError(CarIndexException, ValueError):
    """
    The container is malformed. Since parsing is strictly sequential, no offset after the point
    of failure can be trusted, and no partial index should be considered valid.
    """
    def __init__(self, message: str, offset: int | None = None):
        reason = message
        if offset is not None:
            message = F'{message} (at offset 0x{offset:X})'
        super().__init__(F'Bad CAR format: {message}')
        self.offset = offset
        self.reason = reason


class CarTruncatedError(CarFormatError, EOFError):
    """
    Fewer bytes were available than the container structure requires.
    """


class CarHeaderError(CarFormatError):
    """
    The header frame could be read, but its contents do not decode to a valid CAR header.
    """

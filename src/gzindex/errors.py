# gzindex/errors.py
from typing import Optional


class GzipError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.__class__.__name__}: {self.message}"


# ---- Parser (container structure) ----

class ParseError(GzipError):
    pass


class MagicMismatch(ParseError):
    pass


class UnsupportedCompression(ParseError):
    pass


class Truncated(ParseError):
    pass


# ---- Inflate engine (payload / footer) ----

class InflateError(GzipError):
    """
    Raised by the inflate engine. Carries the decompressor's running totals
    at the point of failure so callers can report how far the stream got.
    """
    def __init__(self, message: str, total_in: int = 0, total_out: int = 0):
        super().__init__(message)
        self.total_in = total_in
        self.total_out = total_out

    def __str__(self):
        return f"{self.__class__.__name__}: {self.message} (in={self.total_in} out={self.total_out})"


class CorruptStream(InflateError):
    pass


class TruncatedStream(InflateError):
    pass


class FinalizeError(InflateError):
    pass


class FooterMissing(InflateError):
    pass


class MismatchedChecksum(InflateError):
    def __init__(self, message: str, expected: int, actual: int, total_in: int = 0, total_out: int = 0):
        super().__init__(message, total_in, total_out)
        self.expected = expected
        self.actual = actual


class MismatchedSize(InflateError):
    def __init__(self, message: str, expected: int, actual: int, total_in: int = 0, total_out: int = 0):
        super().__init__(message, total_in, total_out)
        self.expected = expected
        self.actual = actual


# ---- Resources ----

class AllocationFailure(GzipError, MemoryError):
    def __init__(self, message: str, requested: Optional[int] = None):
        super().__init__(message)
        self.requested = requested

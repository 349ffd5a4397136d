# gzindex/span.py
"""
Byte spans and a bounds-checked cursor over them.

A span is a read-only memoryview into memory owned by the caller. The view
keeps its owner alive, and a bytearray owner cannot be resized while a view
is exported, so a span can never dangle.

ByteReader is the single place where offsets are advanced: every read checks
the remaining length first and raises Truncated instead of reading short.
"""
import struct

from .errors import Truncated

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_SCAN_CHUNK = 4096


def as_span(buffer) -> memoryview:
    """Read-only byte view over any buffer-protocol object."""
    view = memoryview(buffer)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view.toreadonly()


class ByteReader:
    __slots__ = ("span", "offset")

    def __init__(self, buffer, offset: int = 0):
        self.span = as_span(buffer)
        if not 0 <= offset <= len(self.span):
            raise ValueError(f"offset {offset} outside buffer of {len(self.span)} bytes")
        self.offset = offset

    def __len__(self) -> int:
        return len(self.span)

    @property
    def remaining(self) -> int:
        return len(self.span) - self.offset

    def _need(self, n: int, what: str) -> None:
        if n < 0 or n > self.remaining:
            raise Truncated(
                f"{what}: need {n} bytes at offset {self.offset}, {self.remaining} remain"
            )

    def read(self, n: int, what: str = "field") -> memoryview:
        """Next n bytes as a span, or Truncated."""
        self._need(n, what)
        start = self.offset
        self.offset += n
        return self.span[start:self.offset]

    def read_u8(self, what: str = "u8") -> int:
        self._need(1, what)
        value = self.span[self.offset]
        self.offset += 1
        return value

    def read_u16(self, what: str = "u16") -> int:
        self._need(2, what)
        value = _U16.unpack_from(self.span, self.offset)[0]
        self.offset += 2
        return value

    def read_u32(self, what: str = "u32") -> int:
        self._need(4, what)
        value = _U32.unpack_from(self.span, self.offset)[0]
        self.offset += 4
        return value

    def read_cstring(self, what: str = "string") -> memoryview:
        """
        Span up to (not including) the next NUL; the cursor ends past the NUL.
        End of buffer without a NUL -> Truncated.
        """
        start = self.offset
        end = len(self.span)
        pos = start
        while pos < end:
            chunk = self.span[pos:min(pos + _SCAN_CHUNK, end)].tobytes()
            hit = chunk.find(b"\x00")
            if hit >= 0:
                nul = pos + hit
                self.offset = nul + 1
                return self.span[start:nul]
            pos += len(chunk)
        raise Truncated(f"{what}: no NUL terminator after offset {start}")

    def rest(self) -> memoryview:
        """Everything from the cursor to the end; the cursor moves to the end."""
        return self.read(self.remaining, "rest")

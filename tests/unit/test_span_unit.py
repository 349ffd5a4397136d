# tests/unit/test_span_unit.py
import struct

import pytest

from gzindex.errors import Truncated
from gzindex.span import ByteReader, as_span


def test_little_endian_reads():
    data = b"\x01" + struct.pack("<H", 0xBEEF) + struct.pack("<I", 0xDEADBEEF) + b"tail"
    r = ByteReader(data)
    assert r.read_u8() == 1
    assert r.read_u16() == 0xBEEF
    assert r.read_u32() == 0xDEADBEEF
    assert r.offset == 7
    assert r.read(4).tobytes() == b"tail"
    assert r.remaining == 0


def test_short_read_raises_without_moving():
    r = ByteReader(b"\x01\x02\x03")
    r.read(2)
    with pytest.raises(Truncated):
        r.read_u16()
    assert r.offset == 2
    with pytest.raises(Truncated):
        r.read(2)
    with pytest.raises(Truncated):
        r.read(-1)
    assert r.read_u8() == 3


def test_cstring_excludes_terminator():
    r = ByteReader(b"a.txt\x00rest")
    assert r.read_cstring().tobytes() == b"a.txt"
    assert r.offset == 6
    assert r.rest().tobytes() == b"rest"


def test_empty_cstring():
    r = ByteReader(b"\x00x")
    assert r.read_cstring().tobytes() == b""
    assert r.offset == 1


def test_cstring_without_nul_is_truncated():
    r = ByteReader(b"abc")
    with pytest.raises(Truncated):
        r.read_cstring("name")
    assert r.offset == 0


def test_cstring_longer_than_scan_chunk():
    long_name = b"n" * 10000
    r = ByteReader(long_name + b"\x00!")
    assert len(r.read_cstring()) == 10000
    assert r.read(1).tobytes() == b"!"


def test_spans_are_read_only_views():
    owner = bytearray(b"abcdef")
    span = as_span(owner)
    with pytest.raises(TypeError):
        span[0] = 0x41
    # the owner cannot be resized while the view is alive
    with pytest.raises(BufferError):
        owner.extend(b"x")
    span.release()
    owner.extend(b"x")
    assert bytes(owner) == b"abcdefx"


def test_reader_over_sliced_view():
    base = memoryview(b"junk" + b"ab\x00cd")[4:]
    r = ByteReader(base)
    assert r.read_cstring().tobytes() == b"ab"
    assert r.rest().tobytes() == b"cd"


def test_start_offset_validation():
    assert ByteReader(b"abc", 3).remaining == 0
    with pytest.raises(ValueError):
        ByteReader(b"abc", 4)

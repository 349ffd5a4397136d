import struct
import zlib

import numpy as np
import pytest

from gzindex.alloc import SystemAllocator


def raw_deflate(payload: bytes, level: int = 6) -> bytes:
    co = zlib.compressobj(level, zlib.DEFLATED, -15)
    return co.compress(payload) + co.flush()


def build_gzip(
    payload: bytes,
    *,
    flags: int = 0,
    mtime: int = 0,
    xfl: int = 0,
    os_id: int = 255,
    extra: bytes = None,
    name: bytes = None,
    comment: bytes = None,
    hcrc: bool = False,
    level: int = 6,
) -> bytes:
    """Hand-rolled single-member gzip so every optional field can be exercised."""
    if extra is not None:
        flags |= 0x04
    if name is not None:
        flags |= 0x08
    if comment is not None:
        flags |= 0x10
    if hcrc:
        flags |= 0x02
    head = struct.pack("<HBBIBB", 0x8B1F, 8, flags, mtime, xfl, os_id)
    if extra is not None:
        head += struct.pack("<H", len(extra)) + extra
    if name is not None:
        head += name + b"\x00"
    if comment is not None:
        head += comment + b"\x00"
    if hcrc:
        head += struct.pack("<H", zlib.crc32(head) & 0xFFFF)
    footer = struct.pack("<II", zlib.crc32(payload), len(payload) & 0xFFFFFFFF)
    return head + raw_deflate(payload, level) + footer


class RecordingAllocator(SystemAllocator):
    """SystemAllocator that remembers what it handed out and got back."""

    def __init__(self):
        self.allocated = []
        self.released = []

    def allocate(self, capacity):
        block = super().allocate(capacity)
        self.allocated.append(capacity)
        return block

    def release(self, block):
        if block is not None and not block.empty:
            self.released.append(block.capacity)
        super().release(block)

    @property
    def outstanding(self):
        return sum(self.allocated) - sum(self.released)


@pytest.fixture
def make_gzip():
    return build_gzip


@pytest.fixture
def recording_allocator():
    return RecordingAllocator()


@pytest.fixture
def rng():
    return np.random.default_rng(1952)


@pytest.fixture
def hello_gz():
    # header {1f8b, 8, flags=0, mtime=0, xfl=0, os=255} + deflate("hello world") + footer
    return build_gzip(b"hello world")

# gzindex/gzip_index.py
"""
GZip container index (RFC 1952, single member).

parse() validates the header and slices the caller's buffer into spans
without copying:

    +---+---+---+---+---+---+---+---+---+---+
    |ID1|ID2|CM |FLG|     MTIME     |XFL|OS |   fixed 10 bytes
    +---+---+---+---+---+---+---+---+---+---+
    [XLEN(2) + extra]  if FEXTRA
    [name ... NUL]     if FNAME
    [comment ... NUL]  if FCOMMENT
    [CRC16(2)]         if FHCRC
    compressed blocks ... CRC32(4) ISIZE(4)   <- `rest`

Read-only buffers (bytes, read-only memoryview/mmap) are borrowed and kept
alive by the index. Writable buffers are copied once, so later writes by the
caller cannot reach the index's spans.
"""
import enum
import struct
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import MagicMismatch, Truncated, UnsupportedCompression
from .span import ByteReader
from .util import info

# ---- GZIP constants ----
GZIP_MAGIC          = 0x8B1F   # little-endian u16 of 1f 8b
GZIP_SIG            = b"\x1f\x8b"
COMPRESSION_DEFLATE = 8
HEADER_SIZE         = 10
FOOTER_SIZE         = 8
RESERVED_FLAGS      = 0xE0

_HEADER = struct.Struct("<HBBIBB")
_FOOTER = struct.Struct("<II")


class GzipFlag(enum.IntFlag):
    TEXT    = 0x01  # hint: output is text
    HCRC    = 0x02  # 16-bit header CRC before the compressed data
    EXTRA   = 0x04  # extra field after the fixed header
    NAME    = 0x08  # Latin-1 NUL-terminated original file name
    COMMENT = 0x10  # Latin-1 NUL-terminated comment


class GzipOS(enum.IntEnum):
    FAT           = 0
    AMIGA         = 1
    VMS           = 2
    UNIX          = 3
    VM_CMS        = 4
    ATARI_TOS     = 5
    HPFS          = 6
    MACINTOSH     = 7
    Z_SYSTEM      = 8
    CPM           = 9
    TOPS_20       = 10
    NTFS          = 11
    QDOS          = 12
    ACORN_RISCOS  = 13
    UNKNOWN       = 255


def looks_like_gzip(magic: Optional[bytes]) -> bool:
    """Signature + DEFLATE method byte (1f 8b 08)."""
    if not magic or len(magic) < 3:
        return False
    return bytes(magic[:2]) == GZIP_SIG and magic[2] == COMPRESSION_DEFLATE


@dataclass(frozen=True)
class GzipHeader:
    magic: int
    compression: int
    flags: int
    modified_time: int       # seconds since the Unix epoch (0 == not set)
    compression_flags: int   # deflate: 2 == best, 4 == fastest
    os_id: int

    @classmethod
    def from_bytes(cls, raw) -> "GzipHeader":
        return cls(*_HEADER.unpack_from(raw, 0))

    def has(self, flag: GzipFlag) -> bool:
        return bool(self.flags & flag)

    @property
    def flag_names(self) -> List[str]:
        return [f.name for f in GzipFlag if self.flags & f]

    @property
    def reserved_flags(self) -> int:
        # Reported, not rejected.
        return self.flags & RESERVED_FLAGS

    @property
    def os_name(self) -> str:
        try:
            return GzipOS(self.os_id).name.lower()
        except ValueError:
            return "unknown"


@dataclass
class GzipFooter:
    crc: int = 0
    size: int = 0    # decompressed size mod 2**32

    @classmethod
    def from_bytes(cls, raw) -> "GzipFooter":
        crc, size = _FOOTER.unpack_from(raw, 0)
        return cls(crc=crc, size=size)


@dataclass
class GzipIndex:
    buffer: memoryview = field(repr=False)
    header: GzipHeader
    rest: memoryview = field(repr=False)      # compressed payload + footer
    payload_offset: int                       # where `rest` starts in `buffer`
    extra: Optional[memoryview] = field(default=None, repr=False)
    name: Optional[memoryview] = field(default=None, repr=False)
    comment: Optional[memoryview] = field(default=None, repr=False)
    header_crc: Optional[int] = None
    footer: GzipFooter = field(default_factory=GzipFooter)

    @property
    def name_text(self) -> Optional[str]:
        return None if self.name is None else self.name.tobytes().decode("latin-1")

    @property
    def comment_text(self) -> Optional[str]:
        return None if self.comment is None else self.comment.tobytes().decode("latin-1")

    @property
    def modified(self) -> Optional[datetime]:
        if not self.header.modified_time:
            return None
        return datetime.fromtimestamp(self.header.modified_time, tz=timezone.utc)

    def header_crc_matches(self) -> Optional[bool]:
        """
        FHCRC holds the two low bytes of CRC32 over every header byte before it.
        None when the field is absent.
        """
        if self.header_crc is None:
            return None
        computed = zlib.crc32(self.buffer[:self.payload_offset - 2]) & 0xFFFF
        return computed == self.header_crc

    def describe(self) -> Dict[str, Any]:
        h = self.header
        modified = self.modified
        return {
            "magic": f"0x{h.magic:04x}",
            "compression": h.compression,
            "flags": h.flag_names,
            "reserved_flags": h.reserved_flags,
            "modified_time": h.modified_time,
            "modified": modified.isoformat() if modified else None,
            "compression_flags": h.compression_flags,
            "os_id": h.os_id,
            "os": h.os_name,
            "extra_len": None if self.extra is None else len(self.extra),
            "name": self.name_text,
            "comment": self.comment_text,
            "header_crc": self.header_crc,
            "header_crc_ok": self.header_crc_matches(),
            "payload_offset": self.payload_offset,
            "rest_len": len(self.rest),
            "footer": {"crc": self.footer.crc, "size": self.footer.size},
        }

    def release(self) -> None:
        """Drop the borrowed views; any later span access raises ValueError."""
        for view in (self.extra, self.name, self.comment, self.rest, self.buffer):
            if view is not None:
                view.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


def parse(buffer, debug: bool = False) -> GzipIndex:
    """
    Validate and index a single-member gzip buffer.

    Raises (first violation wins, no partial index):
      Truncated               buffer too short for a required/declared field
      MagicMismatch           first two bytes are not 1f 8b
      UnsupportedCompression  method byte is not 8 (DEFLATE)
    """
    with memoryview(buffer) as view:
        if not view.readonly:
            # Writable sources (bytearray, writable mmap) are frozen into a
            # private copy so the index never changes underneath its caller.
            buffer = view.tobytes()
    reader = ByteReader(buffer)
    span = reader.span

    if len(span) < HEADER_SIZE:
        raise Truncated(f"{len(span)} bytes is shorter than the {HEADER_SIZE}-byte header")
    if span[:2].tobytes() != GZIP_SIG:
        raise MagicMismatch(f"bad magic {span[:2].hex()} (want 1f8b)")
    if span[2] != COMPRESSION_DEFLATE:
        raise UnsupportedCompression(f"compression method {span[2]} (only 8/DEFLATE supported)")

    header = GzipHeader.from_bytes(reader.read(HEADER_SIZE, "header"))
    if debug:
        info(f"[parse] flags={header.flag_names} mtime={header.modified_time} os={header.os_name}")

    # 1) Extra: 2-byte length read at the cursor, then that many bytes
    extra = None
    if header.has(GzipFlag.EXTRA):
        xlen = reader.read_u16("extra length")
        extra = reader.read(xlen, "extra field")
        if debug:
            info(f"[parse] extra: {xlen} bytes")

    # 2) Name / comment: NUL-terminated, terminator excluded from the span
    name = reader.read_cstring("name") if header.has(GzipFlag.NAME) else None
    comment = reader.read_cstring("comment") if header.has(GzipFlag.COMMENT) else None

    # 3) Header CRC16
    header_crc = reader.read_u16("header crc") if header.has(GzipFlag.HCRC) else None

    # 4) Compressed data + footer
    payload_offset = reader.offset
    if reader.remaining == 0:
        raise Truncated(f"no compressed data after header ({payload_offset} bytes)")
    rest = reader.rest()

    if debug:
        info(f"[parse] payload_offset={payload_offset} rest={len(rest)} bytes")

    return GzipIndex(
        buffer=span,
        header=header,
        rest=rest,
        payload_offset=payload_offset,
        extra=extra,
        name=name,
        comment=comment,
        header_crc=header_crc,
    )

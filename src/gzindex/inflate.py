# gzindex/inflate.py
"""
Inflate driver for an indexed gzip member.

The engine owns the loop; the DEFLATE algorithm itself sits behind the
Decompressor capability (zlib raw inflate by default). Each step writes into
the output buffer's spare capacity and reports one status:

    STREAM_END    -> done, finalize and check the footer
    ERROR         -> CorruptStream
    NEEDS_INPUT   -> TruncatedStream (all of `rest` consumed, no end marker)
    NEEDS_OUTPUT  -> double the buffer (written bytes preserved) and go again

Every exit is either a verified buffer or an exception; the output buffer is
released before any exception leaves run().
"""
import enum
import time
import zlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .alloc import Allocator, BudgetAllocator
from .errors import (
    AllocationFailure,
    CorruptStream,
    FinalizeError,
    FooterMissing,
    MismatchedChecksum,
    MismatchedSize,
    TruncatedStream,
)
from .growbuf import GrowableBuffer
from .gzip_index import FOOTER_SIZE, GzipFooter, GzipIndex, parse
from .util import info, ms


class StepStatus(enum.Enum):
    NEEDS_INPUT = "needs-input"
    NEEDS_OUTPUT = "needs-output"
    STREAM_END = "stream-end"
    ERROR = "error"


class Decompressor(Protocol):
    total_in: int
    total_out: int
    error: Optional[str]

    def step(self, output: memoryview) -> StepStatus: ...
    def finish(self) -> bool: ...


class ZlibRawDecompressor:
    """
    Raw DEFLATE (wbits=-15: no zlib/gzip wrapper, the parser already consumed
    the container header) over a fixed input span.
    """

    def __init__(self, data):
        self._size = len(data)
        self._pending = data
        self._obj = zlib.decompressobj(wbits=-zlib.MAX_WBITS)
        self.total_in = 0
        self.total_out = 0
        self.error: Optional[str] = None

    def step(self, output: memoryview) -> StepStatus:
        room = len(output)
        if room == 0:
            return StepStatus.NEEDS_OUTPUT
        try:
            chunk = self._obj.decompress(self._pending, room)
        except zlib.error as e:
            self.error = str(e)
            return StepStatus.ERROR

        n = len(chunk)
        output[:n] = chunk
        self.total_out += n
        self._pending = self._obj.unconsumed_tail

        # After end of stream the leftover input can sit in both
        # unconsumed_tail and unused_data; unused_data alone is authoritative.
        if self._obj.eof:
            self.total_in = self._size - len(self._obj.unused_data)
            return StepStatus.STREAM_END
        self.total_in = self._size - len(self._obj.unconsumed_tail)
        if n == room or self._pending:
            return StepStatus.NEEDS_OUTPUT
        return StepStatus.NEEDS_INPUT

    def finish(self) -> bool:
        try:
            tail = self._obj.flush()
        except zlib.error as e:
            self.error = str(e)
            return False
        if tail:
            self.error = f"{len(tail)} bytes still buffered after end of stream"
            return False
        return True


@dataclass
class InflateConfig:
    initial_factor: int = 2              # first output capacity = factor * len(rest)
    verify_checksum: bool = True
    verify_size: bool = True
    budget_bytes: Optional[int] = None   # cap on output memory (BudgetAllocator)
    debug: bool = False

    @classmethod
    def from_params(cls, params: Optional[Dict[str, Any]]) -> "InflateConfig":
        p = params or {}
        budget = p.get("decompress_budget_bytes")
        return cls(
            initial_factor=int(p.get("initial_factor", 2)),
            verify_checksum=bool(p.get("verify_checksum", True)),
            verify_size=bool(p.get("verify_size", True)),
            budget_bytes=int(budget) if budget is not None else None,
            debug=bool(p.get("debug", False)),
        )


class InflateEngine:
    def __init__(
        self,
        config: Optional[InflateConfig] = None,
        decompressor_factory: Callable[[memoryview], Decompressor] = ZlibRawDecompressor,
    ):
        self.config = config or InflateConfig()
        self.decompressor_factory = decompressor_factory

    def run(self, index: GzipIndex, allocator: Optional[Allocator] = None) -> GrowableBuffer:
        cfg = self.config
        rest = index.rest
        index.footer = GzipFooter()  # zero unless this run succeeds
        if len(rest) <= FOOTER_SIZE:
            raise TruncatedStream(
                f"{len(rest)} bytes after header leaves no room for a DEFLATE stream and footer"
            )

        if cfg.budget_bytes is not None:
            allocator = BudgetAllocator(cfg.budget_bytes, allocator)

        t0 = time.perf_counter()
        out: GrowableBuffer = GrowableBuffer("B", allocator)
        try:
            footer = self._inflate_into(rest, out)
        except Exception:
            out.release()
            raise

        index.footer = footer
        if cfg.debug:
            info(f"[inflate] {len(rest)} -> {out.length} bytes in {ms(time.perf_counter() - t0)} "
                 f"(cap={out.capacity}, crc=0x{footer.crc:08x})")
        return out

    def _inflate_into(self, rest: memoryview, out: GrowableBuffer) -> GzipFooter:
        cfg = self.config
        initial = max(1, cfg.initial_factor) * len(rest)
        if not out.ensure_capacity(initial):
            raise AllocationFailure(f"could not allocate {initial}-byte output buffer", requested=initial)

        stream = self.decompressor_factory(rest)
        growths = 0
        while True:
            status = stream.step(out.spare())
            out.commit(stream.total_out - out.length)

            if status is StepStatus.STREAM_END:
                break
            if status is StepStatus.ERROR:
                raise CorruptStream(f"decode error: {stream.error}", stream.total_in, stream.total_out)
            if status is StepStatus.NEEDS_INPUT:
                raise TruncatedStream("input exhausted before end of stream", stream.total_in, stream.total_out)

            # NEEDS_OUTPUT
            old_cap = out.capacity
            if not out.grow():
                raise AllocationFailure(
                    f"could not grow output buffer beyond {old_cap} bytes", requested=old_cap * 2
                )
            growths += 1
            if cfg.debug:
                info(f"[inflate] grow #{growths}: {old_cap} -> {out.capacity} (written={out.length})")

        if not stream.finish():
            raise FinalizeError(f"finalize failed: {stream.error}", stream.total_in, stream.total_out)
        out.truncate(stream.total_out)

        # Footer sits right after the last input byte the decompressor used
        at = stream.total_in
        if at + FOOTER_SIZE > len(rest):
            raise FooterMissing(
                f"footer needs {FOOTER_SIZE} bytes at {at}, only {len(rest) - at} remain",
                stream.total_in, stream.total_out,
            )
        footer = GzipFooter.from_bytes(rest[at:at + FOOTER_SIZE])
        trailing = len(rest) - at - FOOTER_SIZE
        if trailing and cfg.debug:
            info(f"[inflate] ignoring {trailing} bytes after the footer (single member only)")

        if cfg.verify_checksum:
            crc = zlib.crc32(out.view())
            if crc != footer.crc:
                raise MismatchedChecksum(
                    f"crc32 0x{crc:08x} != footer 0x{footer.crc:08x}",
                    expected=footer.crc, actual=crc,
                    total_in=stream.total_in, total_out=stream.total_out,
                )
        if cfg.verify_size:
            size = out.length & 0xFFFFFFFF
            if size != footer.size:
                raise MismatchedSize(
                    f"size {size} != footer {footer.size}",
                    expected=footer.size, actual=size,
                    total_in=stream.total_in, total_out=stream.total_out,
                )
        return footer


def inflate(
    index: GzipIndex,
    allocator: Optional[Allocator] = None,
    config: Optional[InflateConfig] = None,
) -> GrowableBuffer:
    return InflateEngine(config).run(index, allocator)


def decompress(buffer, allocator: Optional[Allocator] = None, config: Optional[InflateConfig] = None) -> bytes:
    """parse + inflate + copy out. The index and output buffer are released."""
    debug = bool(config and config.debug)
    with parse(buffer, debug=debug) as index:
        with inflate(index, allocator, config) as out:
            return out.tobytes()

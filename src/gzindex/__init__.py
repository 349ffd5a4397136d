from .alloc import ArenaAllocator, Block, BudgetAllocator, SystemAllocator, SYSTEM_ALLOCATOR
from .errors import (
    AllocationFailure,
    CorruptStream,
    FinalizeError,
    FooterMissing,
    GzipError,
    InflateError,
    MagicMismatch,
    MismatchedChecksum,
    MismatchedSize,
    ParseError,
    Truncated,
    TruncatedStream,
    UnsupportedCompression,
)
from .growbuf import DEFAULT_GROWTH, GrowableBuffer, GrowthPolicy
from .gzip_index import GzipFlag, GzipFooter, GzipHeader, GzipIndex, GzipOS, looks_like_gzip, parse
from .inflate import InflateConfig, InflateEngine, StepStatus, ZlibRawDecompressor, decompress, inflate
from .span import ByteReader, as_span

__version__ = "0.1.0"

# gzindex/alloc.py
"""
Allocator capabilities used by GrowableBuffer.

An allocator is any object with:
    allocate(capacity) -> Block | None     (None == allocation failure)
    release(block)     -> None             (None / empty block is a no-op)

Allocators are NOT thread-safe; one caller drives a buffer at a time.
"""
from typing import List, Optional, Protocol


class Block:
    """
    Owned memory region. `memory` is a writable buffer (bytearray or a
    memoryview slice of one); `capacity` is its size in bytes.
    """
    __slots__ = ("memory", "capacity")

    def __init__(self, memory, capacity: int):
        self.memory = memory
        self.capacity = capacity

    @property
    def empty(self) -> bool:
        return self.capacity == 0

    def __repr__(self):
        return f"<Block cap={self.capacity}>"


_EMPTY = bytearray()


def _forget(block: Block) -> None:
    block.memory = _EMPTY
    block.capacity = 0


class Allocator(Protocol):
    def allocate(self, capacity: int) -> Optional[Block]: ...
    def release(self, block: Optional[Block]) -> None: ...


# ---------- System ----------

class SystemAllocator:
    """Plain bytearray blocks. Out-of-memory is reported as None, never raised."""

    def allocate(self, capacity: int) -> Optional[Block]:
        if capacity < 0:
            return None
        try:
            return Block(bytearray(capacity), capacity)
        except (MemoryError, OverflowError):
            return None

    def release(self, block: Optional[Block]) -> None:
        if block is None or block.empty:
            return
        _forget(block)


SYSTEM_ALLOCATOR = SystemAllocator()


# ---------- Budget ----------

class BudgetAllocator:
    """
    Caps the number of bytes outstanding at once.

    Policy:
      - allocate(n) fails (None) when outstanding + n > limit_bytes.
      - release() returns the block's bytes to the budget; blocks this
        allocator did not hand out are ignored.
      - Memory itself comes from `parent` (SystemAllocator by default).
    """

    def __init__(self, limit_bytes: int, parent: Optional[Allocator] = None):
        self.limit_bytes = int(limit_bytes)
        self.parent = parent or SYSTEM_ALLOCATOR
        self.outstanding = 0
        self.peak = 0
        self.failures = 0
        self._issued = {}  # id(block) -> capacity

    def allocate(self, capacity: int) -> Optional[Block]:
        if capacity < 0 or self.outstanding + capacity > self.limit_bytes:
            self.failures += 1
            return None
        block = self.parent.allocate(capacity)
        if block is None:
            self.failures += 1
            return None
        self._issued[id(block)] = capacity
        self.outstanding += capacity
        self.peak = max(self.peak, self.outstanding)
        return block

    def release(self, block: Optional[Block]) -> None:
        if block is None:
            return
        cap = self._issued.pop(id(block), None)
        if cap is None:
            return
        self.outstanding -= cap
        self.parent.release(block)


# ---------- Arena ----------

class ArenaAllocator:
    """
    Carves small blocks out of large chunks and frees everything at once.

    Chunks are kept in an indexed list (no back-links between chunks):
      - Any request that fits in the current chunk is served from it.
      - Otherwise a request > chunk_size / 2 gets a dedicated chunk and the
        current chunk stays current (it may still have room for small
        requests; this also allows requests larger than chunk_size).
      - Otherwise a new chunk of `chunk_size` is appended and becomes current.
      - release() of an individual block is a no-op; destroy() drops all
        chunks in a single pass.
    """

    def __init__(self, chunk_size: int = 1024 * 1024, parent: Optional[Allocator] = None):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = int(chunk_size)
        self.parent = parent or SYSTEM_ALLOCATOR
        self.chunks: List[Block] = []
        self._current: Optional[int] = None  # index into self.chunks
        self._pos = 0

    @property
    def size(self) -> int:
        """Total bytes held in chunks."""
        return sum(c.capacity for c in self.chunks)

    def _new_chunk(self, capacity: int) -> Optional[int]:
        chunk = self.parent.allocate(capacity)
        if chunk is None:
            return None
        self.chunks.append(chunk)
        return len(self.chunks) - 1

    def _fits(self, capacity: int) -> bool:
        return self._current is not None and self._pos + capacity <= self.chunks[self._current].capacity

    def allocate(self, capacity: int) -> Optional[Block]:
        if capacity < 0:
            return None
        if capacity == 0:
            return Block(bytearray(), 0)

        if not self._fits(capacity):
            if capacity > self.chunk_size // 2:
                idx = self._new_chunk(capacity)
                if idx is None:
                    return None
                return Block(memoryview(self.chunks[idx].memory), capacity)

            idx = self._new_chunk(self.chunk_size)
            if idx is None:
                return None
            self._current, self._pos = idx, 0

        start = self._pos
        self._pos += capacity
        mem = memoryview(self.chunks[self._current].memory)[start:start + capacity]
        return Block(mem, capacity)

    def release(self, block: Optional[Block]) -> None:
        return None

    def destroy(self) -> None:
        for chunk in self.chunks:
            self.parent.release(chunk)
        self.chunks = []
        self._current = None
        self._pos = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()
        return False

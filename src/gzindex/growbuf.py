# gzindex/growbuf.py
from array import array
from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, List, Optional, TypeVar, Union

import numpy as np

from .alloc import Allocator, Block, SYSTEM_ALLOCATOR

T = TypeVar("T")

# Formats both array and memoryview.cast understand.
_TYPECODES = "bBhHiIlLqQfd"


@dataclass(frozen=True)
class GrowthPolicy:
    """new_cap = max(required, minimum, capacity * multiplier + additive)"""
    multiplier: int = 2
    additive: int = 0
    minimum: int = 1

    def next_capacity(self, capacity: int, required: int = 0) -> int:
        return max(required, self.minimum, capacity * self.multiplier + self.additive)


DEFAULT_GROWTH = GrowthPolicy()


class GrowableBuffer(Generic[T]):
    """
    Contiguous, resizable run of fixed-size elements backed by an allocator.

    - `typecode` picks the element type (array module codes: "B" bytes,
      "I" uint32, "d" double, ...).
    - Created empty; nothing is allocated until the first growth.
    - Invariant: 0 <= length <= capacity.
    - Growth copies [0, min(length, new_cap)) into the new block and hands the
      old block back to the same allocator. A failed allocation leaves the
      buffer untouched and is reported as False (never raised).
    - Without an allocator the shared SystemAllocator is assigned on first use.
    """

    def __init__(
        self,
        typecode: str = "B",
        allocator: Optional[Allocator] = None,
        policy: Optional[GrowthPolicy] = None,
    ):
        if typecode not in _TYPECODES:
            raise ValueError(f"unsupported element typecode {typecode!r}")
        self.typecode = typecode
        self.itemsize = array(typecode).itemsize
        self.allocator = allocator
        self.policy = policy or DEFAULT_GROWTH
        self.length = 0
        self.capacity = 0
        self._block: Optional[Block] = None
        self._items: Optional[memoryview] = None

    def __repr__(self):
        return (f"<GrowableBuffer typecode={self.typecode!r} "
                f"len={self.length} cap={self.capacity}>")

    def __len__(self) -> int:
        return self.length

    # ---- Capacity ----

    def realloc(self, new_cap: int) -> bool:
        """Exact reallocation to `new_cap` elements. Shrinking drops the tail."""
        if new_cap < 0:
            raise ValueError(f"capacity must be >= 0, got {new_cap}")
        if self.allocator is None:
            self.allocator = SYSTEM_ALLOCATOR

        block = self.allocator.allocate(new_cap * self.itemsize)
        if block is None:
            return False

        items = memoryview(block.memory)[:new_cap * self.itemsize].cast(self.typecode)
        new_len = min(self.length, new_cap)
        if new_len:
            items[:new_len] = self._items[:new_len]

        if self._block is not None:
            self.allocator.release(self._block)
        self._block = block
        self._items = items
        self.length = new_len
        self.capacity = new_cap
        return True

    def ensure_capacity(self, min_cap: int) -> bool:
        if self.capacity >= min_cap:
            return True
        return self.realloc(self.policy.next_capacity(self.capacity, min_cap))

    def grow(self) -> bool:
        """One policy step (2x by default)."""
        return self.ensure_capacity(self.capacity + 1)

    # ---- Elements ----

    def push(self, value: T) -> bool:
        if self.length >= self.capacity and not self.ensure_capacity(self.length + 1):
            return False
        self._items[self.length] = value
        self.length += 1
        return True

    def extend(self, values: Union[bytes, bytearray, memoryview, array, Iterable[T]]) -> bool:
        if not isinstance(values, (bytes, bytearray, memoryview, array)):
            values = array(self.typecode, values)
        src = memoryview(values)
        if src.format != self.typecode:
            src = src.cast("B").cast(self.typecode)
        n = len(src)
        if not self.ensure_capacity(self.length + n):
            return False
        self._items[self.length:self.length + n] = src
        self.length += n
        return True

    def del_nth(self, i: int) -> None:
        """Swap-remove: the last element moves into slot i (order not kept)."""
        if not 0 <= i < self.length:
            raise IndexError(f"index {i} out of range for length {self.length}")
        last = self.length - 1
        if i < last:
            self._items[i] = self._items[last]
        self.length = last

    def del_value(self, value: T) -> bool:
        """Remove the first element equal to `value` by swap-remove."""
        for i in range(self.length):
            if self._items[i] == value:
                self.del_nth(i)
                return True
        return False

    def truncate(self, n: int) -> None:
        if not 0 <= n <= self.length:
            raise ValueError(f"cannot truncate length {self.length} to {n}")
        self.length = n

    # ---- Spare capacity (direct writers, e.g. a decompressor) ----

    def spare(self) -> memoryview:
        """Writable view of [length, capacity)."""
        if self._items is None:
            return memoryview(bytearray()).cast(self.typecode)
        return self._items[self.length:self.capacity]

    def commit(self, n: int) -> None:
        """Mark n elements written into spare() as initialized."""
        if n < 0 or self.length + n > self.capacity:
            raise ValueError(f"commit of {n} exceeds spare capacity {self.capacity - self.length}")
        self.length += n

    # ---- Read access ----

    def view(self) -> memoryview:
        if self._items is None:
            return memoryview(bytearray()).cast(self.typecode)
        return self._items[:self.length]

    def __getitem__(self, index):
        return self.view()[index]

    def __iter__(self) -> Iterator[T]:
        return iter(self.view())

    def tobytes(self) -> bytes:
        return self.view().tobytes()

    def tolist(self) -> List[T]:
        return self.view().tolist()

    def to_numpy(self) -> np.ndarray:
        """Copy of [0, length) as a 1-D array of the matching dtype."""
        return np.frombuffer(self.view(), dtype=np.dtype(self.typecode)).copy()

    # ---- Lifecycle ----

    def release(self) -> None:
        if self._block is not None:
            self.allocator.release(self._block)
        self._block = None
        self._items = None
        self.length = 0
        self.capacity = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

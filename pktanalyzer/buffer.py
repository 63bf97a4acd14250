"""Fixed-capacity circular byte buffer."""

from __future__ import annotations


class BufferOverflow(Exception):
    """Raised when a write does not fit in the free space."""


class BufferUnderflow(Exception):
    """Raised when a read asks for more bytes than are stored."""


class CircularBuffer:
    """A FIFO byte buffer of fixed capacity that wraps around its storage."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("Invalid buffer capacity")
        self._data = bytearray(capacity)
        self._head = 0
        self._tail = 0
        self._used = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    def write(self, data: bytes) -> None:
        """Append data; raises BufferOverflow if there is not enough room."""
        data = bytes(data)
        length = len(data)
        if length == 0:
            raise ValueError("Invalid data for write operation")
        if self._used + length > self.capacity:
            raise BufferOverflow(
                f"Insufficient buffer space (used: {self._used}, need: {length}, "
                f"capacity: {self.capacity})"
            )
        first = min(length, self.capacity - self._tail)
        self._data[self._tail:self._tail + first] = data[:first]
        rest = length - first
        if rest:
            self._data[:rest] = data[first:]
        self._tail = (self._tail + length) % self.capacity
        self._used += length

    def read(self, length: int) -> bytes:
        """Remove and return the oldest length bytes."""
        if length <= 0:
            raise ValueError("Invalid length for read operation")
        if self._used < length:
            raise BufferUnderflow(
                f"Insufficient data in buffer (available: {self._used}, requested: {length})"
            )
        first = min(length, self.capacity - self._head)
        out = bytes(self._data[self._head:self._head + first])
        rest = length - first
        if rest:
            out += bytes(self._data[:rest])
        self._head = (self._head + length) % self.capacity
        self._used -= length
        return out

    def __len__(self) -> int:
        return self._used

    def reset(self) -> None:
        """Discard all stored data."""
        self._head = 0
        self._tail = 0
        self._used = 0
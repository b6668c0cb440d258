"""Outgoing byte buffer that removes drained data lazily."""

from __future__ import annotations


class BackPressure:
    """Bytes waiting to be written to a socket.

    Erasing only advances a removal offset; the underlying buffer is
    compacted once the offset grows past 1/32 of the buffer length.
    """

    __slots__ = ("_buffer", "_pending_removal")

    def __init__(self, data: bytes = b"") -> None:
        self._buffer = bytearray(data)
        self._pending_removal = 0

    def append(self, data: bytes) -> None:
        """Add data to the end of the buffer."""
        self._buffer += data

    def erase(self, length: int) -> None:
        """Drop ``length`` bytes from the front of the buffer."""
        if length < 0:
            raise ValueError("cannot erase a negative number of bytes")
        self._pending_removal += length
        # Always erase a minimum of 1/32th of the current backpressure
        if self._pending_removal > (len(self._buffer) >> 5):
            del self._buffer[: self._pending_removal]
            self._pending_removal = 0

    def clear(self) -> None:
        """Remove everything, releasing the storage."""
        self._pending_removal = 0
        self._buffer = bytearray()

    def resize(self, length: int) -> None:
        """Make the unsent part exactly ``length`` bytes, zero padded."""
        if length < 0:
            raise ValueError("length must not be negative")
        target = length + self._pending_removal
        if target < len(self._buffer):
            del self._buffer[target:]
        else:
            self._buffer.extend(bytes(target - len(self._buffer)))

    def __len__(self) -> int:
        return len(self._buffer) - self._pending_removal

    def __bool__(self) -> bool:
        return len(self) > 0

    @property
    def data(self) -> bytes:
        """The bytes that are still waiting to be sent."""
        return bytes(self._buffer[self._pending_removal :])

    @property
    def total_length(self) -> int:
        """Length of the storage, including bytes pending removal."""
        return len(self._buffer)

    def __repr__(self) -> str:
        return f"BackPressure(length={len(self)}, total_length={self.total_length})"
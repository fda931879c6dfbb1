"""Fixed-size circular byte buffer."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple, Union

from .memsearch import memmem

WriteMethod = Callable[[memoryview, bytes], None]


def _copy(target: memoryview, chunk: bytes) -> None:
    target[:] = chunk


class RingBuffer:
    """A circular buffer of ``size`` bytes with separate read and write positions."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("ring buffer size must be positive")
        self.size = size
        self._buffer = bytearray(size)
        self._used = 0
        self._read = 0
        self._write = 0

    @property
    def read_pos(self) -> int:
        """Offset of the first unread byte."""
        return self._read

    @property
    def write_pos(self) -> int:
        """Offset where the next byte will be written."""
        return self._write

    def used(self) -> int:
        """Number of bytes available for reading."""
        return self._used

    def free(self) -> int:
        """Number of bytes that can still be written."""
        return self.size - self._used

    def _regions(self, start: int, length: int) -> List[memoryview]:
        view = memoryview(self._buffer)
        end = start + length
        if end > self.size:
            return [view[start:], view[: end - self.size]]
        return [view[start:end]]

    def _peek(self, length: int) -> bytes:
        if length <= 0:
            return b""
        return b"".join(bytes(part) for part in self._regions(self._read, length))

    def compare(self, data: bytes) -> Optional[bool]:
        """Tell whether the buffered data starts with ``data``.

        Returns None when the buffer is empty, ``data`` is empty, or fewer
        bytes are buffered than ``data`` holds.
        """
        data = bytes(data)
        if self._used == 0 or not data or self._used < len(data):
            return None
        return self._peek(len(data)) == data

    def read_all(self) -> bytes:
        """Return all buffered data without consuming it."""
        return self._peek(self._used)

    def read_n(self, length: int) -> Optional[bytes]:
        """Return the first ``length`` buffered bytes, or None if fewer are buffered."""
        if length < 0:
            raise ValueError("length must not be negative")
        if self._used < length:
            return None
        return self._peek(length)

    def read_until_char(self, char: Union[int, bytes]) -> Optional[bytes]:
        """Return the data before the first ``char``, or None if it is absent."""
        needle = bytes([char]) if isinstance(char, int) else bytes(char)
        if len(needle) != 1:
            raise ValueError("expected a single byte")
        return self.read_until(needle)

    def read_until(self, pattern: bytes) -> Optional[bytes]:
        """Return the data before the first occurrence of ``pattern``, or None."""
        data = self._peek(self._used)
        index = memmem(data, pattern)
        return None if index is None else data[:index]

    def consume(self, length: int) -> int:
        """Advance the read position by up to ``length`` bytes; return the amount."""
        if length < 0:
            raise ValueError("length must not be negative")
        length = min(length, self._used)
        if length > 0:
            self._used -= length
            if self._used == 0:
                self._read = 0
                self._write = 0
            else:
                position = self._read + length
                self._read = position - self.size if position >= self.size else position
        return length

    def write_regions(self) -> List[memoryview]:
        """Return writable views over the free space, in write order."""
        free = self.free()
        if free == 0:
            return []
        return self._regions(self._write, free)

    def commit_write(self, length: int) -> int:
        """Mark up to ``length`` bytes written into the free regions; return the amount."""
        if length < 0:
            raise ValueError("length must not be negative")
        length = min(length, self.free())
        if length > 0:
            position = self._write + length
            self._write = position - self.size if position >= self.size else position
            self._used += length
        return length

    def _write_core(
        self, write_pos: int, used: int, data: bytes, method: WriteMethod
    ) -> Tuple[int, int]:
        """Apply ``method`` from ``write_pos`` given ``used`` bytes are taken.

        Returns the number of bytes handled and the resulting write position.
        The buffer's own positions are left untouched.
        """
        data = bytes(data)
        count = min(len(data), self.size - used)
        if count <= 0:
            return 0, write_pos
        view = memoryview(self._buffer)
        end = write_pos + count
        if end > self.size:
            first = self.size - write_pos
            method(view[write_pos:], data[:first])
            method(view[: end - self.size], data[first:count])
            return count, end - self.size
        method(view[write_pos:end], data[:count])
        return count, 0 if end == self.size else end

    def write_with(self, data: bytes, method: WriteMethod) -> int:
        """Store ``data`` with ``method(target, chunk)``; return the bytes handled."""
        count, self._write = self._write_core(self._write, self._used, data, method)
        self._used += count
        return count

    def write(self, data: bytes) -> int:
        """Copy ``data`` in; return the number of bytes that fitted."""
        return self.write_with(data, _copy)
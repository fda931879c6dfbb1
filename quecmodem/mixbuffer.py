"""Ring buffer that mixes 16-bit signed audio from several streams."""

from __future__ import annotations

from array import array
from dataclasses import dataclass
from typing import List, Optional

from .ringbuffer import RingBuffer

_SAMPLE_MIN = -32768
_SAMPLE_MAX = 32767


@dataclass(eq=False)
class MixStream:
    """Per-stream write state inside a MixBuffer."""

    used: int = 0
    write: int = 0


def _saturated_sum(target: memoryview, chunk: bytes) -> None:
    """Add native-endian int16 samples of ``chunk`` into ``target`` with clipping."""
    length = (min(len(target), len(chunk)) // 2) * 2
    if length == 0:
        return
    current = array("h", bytes(target[:length]))
    incoming = array("h", chunk[:length])
    mixed = array(
        "h",
        (max(_SAMPLE_MIN, min(_SAMPLE_MAX, a + b)) for a, b in zip(current, incoming)),
    )
    target[:length] = mixed.tobytes()


class MixBuffer:
    """A ring buffer where every attached stream's data is summed sample-wise."""

    def __init__(self, size: int) -> None:
        self._rb = RingBuffer(size)
        self._streams: List[MixStream] = []

    def attach(self, stream: MixStream) -> None:
        """Attach ``stream``; it starts writing at the current read position."""
        stream.used = 0
        stream.write = self._rb.read_pos
        self._streams.append(stream)

    def detach(self, stream: MixStream) -> None:
        """Detach ``stream``; raises ValueError if it is not attached."""
        self._streams.remove(stream)

    def free(self, stream: MixStream) -> int:
        """Number of bytes ``stream`` may still write."""
        return self._rb.size - stream.used

    def used(self) -> int:
        """Number of bytes available for reading."""
        return self._rb.used()

    def stream_count(self) -> int:
        """Number of attached streams."""
        return len(self._streams)

    def _mix_write(self, stream: MixStream, data: bytes) -> int:
        count, stream.write = self._rb._write_core(
            stream.write, stream.used, data, _saturated_sum
        )
        stream.used += count
        return count

    def write(self, stream: MixStream, data: bytes) -> int:
        """Mix ``data`` from ``stream`` in; return the number of bytes accepted."""
        data = bytes(data)
        length = min(len(data), self.free(stream))
        if length > 0:
            mixable = self._rb.used() - stream.used
            if length > mixable:
                if mixable:
                    self._mix_write(stream, data[:mixable])
                self._rb.write(data[mixable:length])
                stream.write = self._rb.write_pos
                stream.used = self._rb.used()
            else:
                self._mix_write(stream, data[:length])
        return length

    def consume(self, length: int) -> int:
        """Advance the read position; return the number of bytes consumed."""
        consumed = self._rb.consume(length)
        for stream in self._streams:
            stream.used = stream.used - length if stream.used > length else 0
            position = self._rb.read_pos + stream.used
            if position >= self._rb.size:
                position -= self._rb.size
            stream.write = position
        return consumed

    def read_all(self) -> bytes:
        """Return all mixed data without consuming it."""
        return self._rb.read_all()

    def read_n(self, length: int) -> Optional[bytes]:
        """Return the first ``length`` mixed bytes, or None if fewer are ready."""
        return self._rb.read_n(length)
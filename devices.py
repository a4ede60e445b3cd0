"""
Migraine I/O Device Layer
=========================
Byte-level input sources and output sinks the interpreter is wired to.

Input devices expose ``read_byte() -> int | None``; ``None`` signals that
the source is exhausted.  Output devices expose ``write_byte(value)`` and
let failures propagate.  All devices are strictly sequential: one byte per
``,`` / ``.`` instruction.
"""

from __future__ import annotations
from collections import deque
from typing import BinaryIO, Iterable, Iterator, Optional


class Device:
    """Base class for all I/O devices."""

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"<{self.name}>"

# ---------------------------------------------------------------------------
#  Input
# ---------------------------------------------------------------------------

class BufferedInput(Device):
    """In-memory input queue.  Bytes can be injected at any time."""

    def __init__(self, data: bytes | str = b""):
        super().__init__("BufferedInput")
        self.rx_buffer: deque[int] = deque()
        self.inject_input(data)

    def inject_input(self, data: bytes | str):
        """Push bytes onto the end of the queue (str is UTF-8 encoded)."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        for b in data:
            self.rx_buffer.append(b & 0xFF)

    @property
    def has_rx_data(self) -> bool:
        return len(self.rx_buffer) > 0

    def read_byte(self) -> Optional[int]:
        if self.rx_buffer:
            return self.rx_buffer.popleft()
        return None


class StreamInput(Device):
    """Reads from a binary stream such as ``sys.stdin.buffer``.

    Reads block for as long as the stream does; closing the stream from
    another thread turns the next read into an error (stored as zero).
    """

    def __init__(self, stream: BinaryIO):
        super().__init__("StreamInput")
        self.stream = stream

    def read_byte(self) -> Optional[int]:
        data = self.stream.read(1)
        if not data:
            return None
        return data[0]


class IterableInput(Device):
    """Lazily pulls bytes from any iterable of ints (may be infinite)."""

    def __init__(self, source: Iterable[int]):
        super().__init__("IterableInput")
        self._it: Optional[Iterator[int]] = iter(source)

    def read_byte(self) -> Optional[int]:
        """Next byte, or None once the source is exhausted or has failed."""
        if self._it is None:
            return None
        try:
            value = next(self._it)
        except Exception:
            # StopIteration or a source error: either way there is no more input.
            self._it = None
            return None
        if not isinstance(value, int):
            return None
        return value & 0xFF

# ---------------------------------------------------------------------------
#  Output
# ---------------------------------------------------------------------------

class BufferedOutput(Device):
    """Collects output bytes in memory; optional per-byte callback."""

    def __init__(self):
        super().__init__("BufferedOutput")
        self.tx_buffer = bytearray()
        self.on_tx: Optional[callable] = None  # called with each byte written

    def write_byte(self, value: int):
        value &= 0xFF
        self.tx_buffer.append(value)
        if self.on_tx:
            self.on_tx(value)

    def getvalue(self) -> bytes:
        return bytes(self.tx_buffer)

    def drain(self) -> bytes:
        """Return all collected bytes and clear the buffer."""
        out = bytes(self.tx_buffer)
        self.tx_buffer.clear()
        return out


class StreamOutput(Device):
    """Writes to a binary stream such as ``sys.stdout.buffer``.

    With ``autoflush`` (the default) the stream is flushed after every
    byte so interactive programs show output immediately.
    """

    def __init__(self, stream: BinaryIO, autoflush: bool = True):
        super().__init__("StreamOutput")
        self.stream = stream
        self.autoflush = autoflush
        self.bytes_written = 0
        self.failed = False    # set once a write or flush has raised

    def write_byte(self, value: int):
        try:
            self.stream.write(bytes((value & 0xFF,)))
            self.bytes_written += 1
            if self.autoflush:
                self.stream.flush()
        except (OSError, ValueError):
            self.failed = True
            raise

    def flush(self):
        """Flush the stream.  A no-op once the stream has failed."""
        if self.failed:
            return
        try:
            self.stream.flush()
        except (OSError, ValueError):
            self.failed = True
            raise

# ---------------------------------------------------------------------------
#  Adapters
# ---------------------------------------------------------------------------

def as_input(source) -> Device:
    """Wrap *source* in an input device unless it already is one.

    Accepts bytes/str (buffered), binary streams (anything with ``read``)
    and arbitrary iterables of ints.
    """
    if hasattr(source, "read_byte"):
        return source
    if isinstance(source, (bytes, bytearray, str)):
        return BufferedInput(bytes(source) if isinstance(source, bytearray) else source)
    if hasattr(source, "read"):
        return StreamInput(source)
    return IterableInput(source)


def as_output(sink) -> Device:
    """Wrap *sink* in an output device unless it already is one.

    Accepts binary streams (anything with ``write``) and callables that
    take one int.
    """
    if hasattr(sink, "write_byte"):
        return sink
    if hasattr(sink, "write"):
        return StreamOutput(sink)
    if callable(sink):
        out = BufferedOutput()
        out.on_tx = sink
        return out
    raise TypeError(f"Cannot use {type(sink).__name__} as an output device")

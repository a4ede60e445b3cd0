"""
Migraine System
===============
Wires together:
  - one Interpreter (migraine.py), which exclusively owns its tape
  - one input device and one output device (devices.py)
  - one Diagnostics record for the most recent failure

and provides program loading from the host filesystem.
"""

from __future__ import annotations
import os
import sys
from typing import Optional

from migraine import (
    Interpreter, Diagnostics, MigraineError, DEFAULT_TAPE_CAPACITY,
)
from devices import BufferedInput, StreamInput, StreamOutput, as_input, as_output

# ---------------------------------------------------------------------------
#  Program loading
# ---------------------------------------------------------------------------

class ProgramLoadError(MigraineError):
    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(message)

class ProgramNotFoundError(ProgramLoadError):
    pass

class ProgramIsDirectoryError(ProgramLoadError):
    pass


def load_program(path: str) -> bytes:
    """Read the whole file at *path* into one buffer.

    Directories and missing files fail with distinct error kinds.
    """
    if os.path.isdir(path):
        raise ProgramIsDirectoryError(
            f"'{path}' is a directory, not a valid source-code file", path)
    try:
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            data = f.read(size)
    except FileNotFoundError:
        raise ProgramNotFoundError(f"Cannot load program from file '{path}'", path)
    except IsADirectoryError:
        raise ProgramIsDirectoryError(
            f"'{path}' is a directory, not a valid source-code file", path)
    return data

# ---------------------------------------------------------------------------
#  System
# ---------------------------------------------------------------------------

class MigraineSystem:
    """One interpreter plus its I/O devices.

    *input* may be a device, bytes/str, a binary stream or an iterable of
    ints; when omitted, stdin is used.  *output* may be a device, a binary
    stream or a callable; when omitted, stdout is used.
    """

    def __init__(self, tape_size: int = DEFAULT_TAPE_CAPACITY,
                 input=None, output=None, buffered: bool = False):
        self.interpreter = Interpreter(tape_size)
        self.diagnostics = Diagnostics()

        if input is None:
            self.input = StreamInput(sys.stdin.buffer)
        else:
            self.input = as_input(input)

        if output is None:
            self.output = StreamOutput(sys.stdout.buffer, autoflush=not buffered)
        else:
            self.output = as_output(output)
            if buffered and isinstance(self.output, StreamOutput):
                self.output.autoflush = False

    # -- Lifecycle --

    def __enter__(self) -> MigraineSystem:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Flush pending output and release the interpreter's tape."""
        try:
            self.flush()
        finally:
            self.interpreter.close()

    def flush(self):
        flush = getattr(self.output, "flush", None)
        if flush is not None:
            flush()

    # -- Loading / running --

    def inject_input(self, data: bytes | str):
        """Append bytes to a buffered input device."""
        if not isinstance(self.input, BufferedInput):
            raise TypeError(f"{self.input!r} does not accept injected input")
        self.input.inject_input(data)

    def load(self, program: bytes | str):
        self.diagnostics = Diagnostics()
        self.interpreter.load(program, self.input, self.output, self.diagnostics)

    def step(self) -> bool:
        return self.interpreter.step()

    def run(self, max_steps: Optional[int] = None) -> int:
        return self.interpreter.run(max_steps)

    def run_program(self, program: bytes | str,
                    max_steps: Optional[int] = None) -> int:
        """Load and run *program*.  Returns instructions executed."""
        self.load(program)
        return self.run(max_steps)

    def run_file(self, path: str, max_steps: Optional[int] = None) -> int:
        return self.run_program(load_program(path), max_steps)

    @property
    def finished(self) -> bool:
        return self.interpreter.finished

    def dump_state(self) -> str:
        return self.interpreter.dump_state()

"""
Migraine Tape Interpreter
=========================
Executes programs for the classic 8-instruction tape language:

    >  move head right        <  move head left
    +  increment cell         -  decrement cell
    .  output cell            ,  input into cell
    [  jump past ] if zero    ]  jump back to [ if non-zero

Every other byte is a comment.  Execution happens in two phases: a
pre-pass links each ``[`` with its ``]`` (rejecting unbalanced programs
before anything runs), then a fetch/dispatch loop drives the program
counter across the raw bytes, one instruction per ``step()``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

DEFAULT_TAPE_CAPACITY = 30000
CELL_MASK = 0xFF

OP_RIGHT = ord(">")
OP_LEFT  = ord("<")
OP_INC   = ord("+")
OP_DEC   = ord("-")
OP_OUT   = ord(".")
OP_IN    = ord(",")
OP_LOOP  = ord("[")
OP_END   = ord("]")

OPCODES = frozenset((OP_RIGHT, OP_LEFT, OP_INC, OP_DEC,
                     OP_OUT, OP_IN, OP_LOOP, OP_END))

# ---------------------------------------------------------------------------
#  Errors
# ---------------------------------------------------------------------------

class MigraineError(Exception):
    """Base for every failure raised by the interpreter."""

    def __init__(self, message: str = "", index: Optional[int] = None):
        self.index = index
        super().__init__(message)


class UnbalancedJumpError(MigraineError):
    pass

class UnmappedJumpError(MigraineError):
    pass

class OutputError(MigraineError):
    pass


class TapeError(MigraineError):
    """Addressing failure on the tape."""
    pass

class RangeOverflowError(TapeError):
    pass

class RangeUnderflowError(TapeError):
    pass

class ReadOperationError(TapeError):
    pass

class WriteOperationError(TapeError):
    pass

class ShiftOperationError(TapeError):
    pass

class HeadPointerError(TapeError):
    pass

# ---------------------------------------------------------------------------
#  Diagnostics
# ---------------------------------------------------------------------------

@dataclass
class Diagnostics:
    """Out-of-band record of the last failure: message + instruction index."""
    message: str = ""
    failed_opcode: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.failed_opcode is not None


def report(message: str, index: int, diagnostics: Optional[Diagnostics] = None):
    """Fill *diagnostics* with message and failing index, if one was given."""
    if diagnostics is not None:
        diagnostics.message = message
        diagnostics.failed_opcode = index

# ---------------------------------------------------------------------------
#  Tape
# ---------------------------------------------------------------------------

class Tape:
    """Fixed-capacity array of 8-bit cells with a single head.

    A zero-capacity tape is legal but unusable: every addressing
    operation on it fails.
    """

    def __init__(self, capacity: int = DEFAULT_TAPE_CAPACITY):
        if capacity < 0:
            raise ValueError(f"Tape capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._cells = bytearray(capacity)
        self._head = 0

    @property
    def usable(self) -> bool:
        return self.capacity > 0

    @property
    def cells(self) -> memoryview:
        return memoryview(self._cells).toreadonly()

    @property
    def head(self) -> int:
        return self._head

    def current_address(self) -> int:
        if not self.usable:
            raise HeadPointerError("Tape has no cells; head is undefined")
        return self._head

    def move_to(self, address: int):
        if not self.usable:
            raise HeadPointerError(f"Cannot move head to {address}: tape has no cells")
        if address >= self.capacity:
            raise RangeOverflowError(
                f"Cannot move head to {address}: capacity is {self.capacity}")
        if address < 0:
            raise RangeUnderflowError(f"Cannot move head to {address}")
        self._head = address

    def shift_right(self):
        if not self.usable:
            raise ShiftOperationError("Cannot shift head right: tape has no cells")
        if self._head >= self.capacity - 1:
            raise RangeOverflowError(
                f"Cannot shift head right past cell {self._head} (capacity {self.capacity})")
        self._head += 1

    def shift_left(self):
        if self._head == 0:
            raise RangeUnderflowError("Cannot shift head left of cell 0")
        self._head -= 1

    def increment(self):
        if not self.usable:
            raise WriteOperationError("Cannot increment: tape has no cells")
        self._cells[self._head] = (self._cells[self._head] + 1) & CELL_MASK

    def decrement(self):
        if not self.usable:
            raise WriteOperationError("Cannot decrement: tape has no cells")
        self._cells[self._head] = (self._cells[self._head] - 1) & CELL_MASK

    def write(self, value: int):
        if not self.usable:
            raise WriteOperationError("Cannot write: tape has no cells")
        self._cells[self._head] = value & CELL_MASK

    def read(self) -> int:
        if not self.usable:
            raise ReadOperationError("Cannot read: tape has no cells")
        return self._cells[self._head]

    def reset(self):
        """Zero every cell and park the head at 0."""
        self._cells[:] = bytes(self.capacity)
        self._head = 0

    def release(self):
        """Drop cell storage.  The tape degrades to the zero-capacity form."""
        self._cells = bytearray()
        self.capacity = 0
        self._head = 0

    def window(self, radius: int = 8) -> tuple[int, bytes]:
        """Return (start, cells) for the cells within *radius* of the head."""
        start = max(0, self._head - radius)
        end = min(self.capacity, self._head + radius + 1)
        return start, bytes(self._cells[start:end])

# ---------------------------------------------------------------------------
#  Jump table
# ---------------------------------------------------------------------------

def build_jump_table(program: bytes,
                     diagnostics: Optional[Diagnostics] = None) -> dict[int, int]:
    """Link every ``[`` with its matching ``]`` and vice versa.

    Raises UnbalancedJumpError at the first ``]`` with nothing to close,
    or, after the scan, at the innermost ``[`` left open.
    """
    table: dict[int, int] = {}
    pending: list[int] = []

    for index, opcode in enumerate(program):
        if opcode == OP_LOOP:
            pending.append(index)
        elif opcode == OP_END:
            if not pending:
                report("Unbalanced jump detected at position", index, diagnostics)
                raise UnbalancedJumpError(
                    f"Unmatched ']' at position {index}", index)
            opening = pending.pop()
            table[opening] = index
            table[index] = opening

    if pending:
        index = pending[-1]
        report("Unbalanced jump detected at position", index, diagnostics)
        raise UnbalancedJumpError(f"Unmatched '[' at position {index}", index)

    return table

# ---------------------------------------------------------------------------
#  Interpreter
# ---------------------------------------------------------------------------

def _as_program(program: bytes | bytearray | str) -> bytes:
    if isinstance(program, str):
        return program.encode("utf-8")
    return bytes(program)


class Interpreter:
    """Owns one tape and drives a program counter across a program.

    ``input`` is any object with ``read_byte() -> int | None`` (None means
    exhausted) and ``output`` any object with ``write_byte(int)``; see
    devices.py for the stock implementations.
    """

    def __init__(self, capacity: int = DEFAULT_TAPE_CAPACITY):
        self.tape = Tape(capacity)
        self.program: bytes = b""
        self.jumps: dict[int, int] = {}
        self.pc: int = 0
        self.step_count: int = 0
        self.input = None
        self.output = None
        self.diagnostics: Optional[Diagnostics] = None

    # -- Lifecycle --

    def __enter__(self) -> Interpreter:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.tape.release()
        self.program = b""
        self.jumps = {}
        self.pc = 0

    def reset(self):
        self.tape.reset()
        self.pc = 0
        self.step_count = 0

    def load(self, program: bytes | bytearray | str, input, output,
             diagnostics: Optional[Diagnostics] = None):
        """Validate *program* and prepare a fresh run against a zeroed tape."""
        program = _as_program(program)
        # Drop the previous program first so a rejected load leaves nothing to resume.
        self.program = b""
        self.jumps = {}
        self.pc = 0
        jumps = build_jump_table(program, diagnostics)
        self.program = program
        self.jumps = jumps
        self.input = input
        self.output = output
        self.diagnostics = diagnostics
        self.reset()

    @property
    def finished(self) -> bool:
        return self.pc >= len(self.program)

    # =====================================================================
    #  STEP: one instruction, including any resulting jump
    # =====================================================================

    def step(self) -> bool:
        """Execute the instruction at pc.  Returns False once the program is done."""
        if self.finished:
            return False
        pc = self.pc
        try:
            self.pc = self._dispatch(self.program[pc], pc)
        except MigraineError as e:
            if e.index is None:
                e.index = pc
            report(str(e), pc, self.diagnostics)
            raise
        self.step_count += 1
        return True

    def _dispatch(self, opcode: int, pc: int) -> int:
        """Execute *opcode* at *pc* and return the next pc."""
        tape = self.tape
        if   opcode == OP_RIGHT: tape.shift_right()
        elif opcode == OP_LEFT:  tape.shift_left()
        elif opcode == OP_INC:   tape.increment()
        elif opcode == OP_DEC:   tape.decrement()
        elif opcode == OP_OUT:   self._exec_out(pc)
        elif opcode == OP_IN:    self._exec_in()
        elif opcode == OP_LOOP:
            if tape.read() == 0:
                return self._jump_target(pc)
        elif opcode == OP_END:
            if tape.read() > 0:
                return self._jump_target(pc)
        return pc + 1

    def _jump_target(self, pc: int) -> int:
        target = self.jumps.get(pc)
        if target is None:
            side = "opening" if self.program[pc] == OP_LOOP else "closing"
            raise UnmappedJumpError(
                f"Impossible to find a match for the {side} bracket", pc)
        return target

    def _exec_out(self, pc: int):
        value = self.tape.read()
        try:
            self.output.write_byte(value)
        except Exception as e:
            # Every sink failure ends the run, whatever the exception type.
            raise OutputError(f"Impossible to output value: {e}", pc) from e

    def _exec_in(self):
        # Exhausted or failing input always stores 0; it never aborts a run.
        try:
            value = self.input.read_byte()
        except Exception:
            value = None
        if not isinstance(value, int):
            value = 0
        self.tape.write(value)

    # -- Run loop --

    def run(self, max_steps: Optional[int] = None) -> int:
        """Step until the program ends or *max_steps* instructions ran.

        Returns the number of instructions executed by this call.
        """
        executed = 0
        while max_steps is None or executed < max_steps:
            if not self.step():
                break
            executed += 1
        return executed

    def eval(self, program: bytes | bytearray | str, input, output,
             diagnostics: Optional[Diagnostics] = None) -> int:
        """Load *program* and run it to completion."""
        self.load(program, input, output, diagnostics)
        return self.run()

    # -- Debug / introspection --

    def dump_state(self, radius: int = 8) -> str:
        lines = [f"  PC = {self.pc} / {len(self.program)}  "
                 f"steps = {self.step_count}  tape = {self.tape.capacity} cells"]
        if self.tape.usable:
            start, cells = self.tape.window(radius)
            row = []
            for i, val in enumerate(cells, start):
                row.append(f"[{val:03}]" if i == self.tape.head else f" {val:03} ")
            lines.append(f"  HEAD = {self.tape.head}  @{start}: " + "".join(row))
        return "\n".join(lines)

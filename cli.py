#!/usr/bin/env python3
"""
Migraine Command-Line Interface
===============================
Runs a tape-language program from a file or from an inline string.

Usage:
  python cli.py --file=PROGRAM [--size=N] [--input=TEXT | --input-dec=LIST]
                [--verbose] [--buffered]
  python cli.py --eval=PROGRAM [...]
  python cli.py --help | --about | --version

Program output goes to stdout byte-for-byte.  Progress messages
(``--verbose``) and errors go to stderr.
"""

from __future__ import annotations
import argparse
import re
import sys
from dataclasses import dataclass
from typing import Optional

from migraine import MigraineError, DEFAULT_TAPE_CAPACITY
from system import (
    MigraineSystem, load_program, ProgramNotFoundError, ProgramIsDirectoryError,
)

MIGRAINE = "Migraine"
VERSION = "0.1.0"

ABOUT = (
    "An interpreter for the classic eight-instruction tape language.\n"
    "\n"
    "  >  <   move the head right / left\n"
    "  +  -   increment / decrement the current cell (wraps at 8 bits)\n"
    "  .  ,   write / read one byte\n"
    "  [  ]   loop while the current cell is non-zero\n"
    "\n"
    "Every other character is a comment.  The tape holds "
    f"{DEFAULT_TAPE_CAPACITY} cells\n"
    "unless --size says otherwise; moving off either end is an error."
)

# ---------------------------------------------------------------------------
#  Options
# ---------------------------------------------------------------------------

@dataclass
class InterpreterOptions:
    help: bool = False
    about: bool = False
    version: bool = False
    file: Optional[str] = None
    eval: Optional[str] = None
    verbose: bool = False
    size: int = DEFAULT_TAPE_CAPACITY
    input: Optional[str] = None
    input_dec: Optional[bytes] = None
    buffered: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> InterpreterOptions:
        return cls(**vars(args))

    def input_bytes(self) -> Optional[bytes]:
        """Input stream configured on the command line, or None for stdin."""
        if self.input_dec is not None:
            return self.input_dec
        if self.input is not None:
            return self.input.encode("utf-8")
        return None


def _flag(value: str) -> bool:
    v = value.strip().lower()
    if v in ("true", "yes", "on", "1"):
        return True
    if v in ("false", "no", "off", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def _text(value: str) -> str:
    if not value:
        raise argparse.ArgumentTypeError("a value is required")
    return value


def _size(value: str) -> int:
    try:
        n = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a number")
    if n < 0:
        raise argparse.ArgumentTypeError("tape size must be >= 0")
    return n


def _decimal_bytes(value: str) -> bytes:
    parts = [p for p in re.split(r"[,\s]+", value.strip()) if p]
    if not parts:
        raise argparse.ArgumentTypeError("a value is required")
    out = bytearray()
    for p in parts:
        if not p.isdigit() or int(p) > 255:
            raise argparse.ArgumentTypeError(f"'{p}' is not a byte value (0-255)")
        out.append(int(p))
    return bytes(out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migraine",
        description="Run a program for the eight-instruction tape language.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
        epilog="Examples:\n"
               "  migraine --file=hello.bf\n"
               "  migraine --eval='++++++++[>++++++++<-]>+.'\n"
               "  migraine --file=rot13.bf --input='Hello'\n"
               "  migraine --file=echo.bf --input-dec=72,105 --size=16\n"
    )
    parser.add_argument("--help", type=_flag, nargs="?", const=True, default=False,
                        help="Show this message and exit")
    parser.add_argument("--about", type=_flag, nargs="?", const=True, default=False,
                        help="Describe the language and exit")
    parser.add_argument("--version", type=_flag, nargs="?", const=True, default=False,
                        help="Print the version and exit")

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", type=_text, default=None, metavar="PATH",
                        help="Program file to run")
    source.add_argument("--eval", type=_text, default=None, metavar="PROGRAM",
                        help="Program text to run")

    parser.add_argument("--verbose", type=_flag, nargs="?", const=True, default=False,
                        help="Report progress on stderr")
    parser.add_argument("--size", type=_size, default=DEFAULT_TAPE_CAPACITY, metavar="N",
                        help=f"Tape capacity in cells (default: {DEFAULT_TAPE_CAPACITY})")

    feed = parser.add_mutually_exclusive_group()
    feed.add_argument("--input", type=_text, default=None, metavar="TEXT",
                      help="Use TEXT as program input instead of stdin")
    feed.add_argument("--input-dec", type=_decimal_bytes, default=None, metavar="LIST",
                      help="Use comma-separated decimal byte values as input")

    parser.add_argument("--buffered", type=_flag, nargs="?", const=True, default=False,
                        help="Flush output once at exit instead of after every byte")
    return parser

# ---------------------------------------------------------------------------
#  Text output
# ---------------------------------------------------------------------------

def header() -> str:
    return f"{MIGRAINE} {VERSION}"


def print_help(parser: argparse.ArgumentParser):
    print(header())
    print(parser.format_help())


def print_about():
    print(header())
    print(ABOUT)


def _log(message: str):
    print(f"[migraine] {message}", file=sys.stderr)

# ---------------------------------------------------------------------------
#  Running
# ---------------------------------------------------------------------------

def execute(options: InterpreterOptions) -> int:
    """Run the program described by *options*.  Returns the exit status."""
    if options.file is not None:
        source = options.file
        if options.verbose:
            _log(f"Opening '{source}'")
        try:
            program = load_program(source)
        except ProgramNotFoundError:
            print(header())
            print(f"\nCannot load program from file '{source}'", file=sys.stderr)
            return 1
        except ProgramIsDirectoryError:
            print(header())
            print(f"\n'{source}' is a directory, not a valid source-code file.",
                  file=sys.stderr)
            return 1
    else:
        source = "<eval>"
        program = options.eval.encode("utf-8")

    with MigraineSystem(tape_size=options.size, input=options.input_bytes(),
                        buffered=options.buffered) as sys_emu:
        if options.verbose:
            _log(f"Tape: {options.size} cells, program: {len(program)} bytes")
        try:
            steps = sys_emu.run_program(program)
        except MigraineError as e:
            try:
                sys_emu.flush()
            except (OSError, ValueError):
                pass    # stdout is gone; still report the run failure on stderr
            diag = sys_emu.diagnostics
            print(f"\nAn error occurred while interpreting '{source}'\n"
                  f"{type(e).__name__}:\n"
                  f"\t{diag.message}({diag.failed_opcode})", file=sys.stderr)
            if options.verbose:
                print(sys_emu.dump_state(), file=sys.stderr)
            return 1
        if options.verbose:
            _log(f"Finished after {steps} steps")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    argv = [a for a in (sys.argv[1:] if argv is None else argv) if a]
    parser = build_parser()

    if not argv:
        print_help(parser)
        return 0

    options = InterpreterOptions.from_args(parser.parse_args(argv))

    if options.help:
        print_help(parser)
        return 0
    if options.about:
        print_about()
        return 0
    if options.version:
        print(VERSION)
        return 0
    if options.file is None and options.eval is None:
        print_help(parser)
        return 0

    return execute(options)


if __name__ == "__main__":
    sys.exit(main())

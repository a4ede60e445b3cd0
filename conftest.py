"""
Pytest configuration for the Migraine test suite.

    python -m pytest            # whole suite (tests/)
    python -m pytest -k Tape    # one group

Shared fixtures live here; the unittest-style classes in tests/ build
their own interpreters and do not need them.
"""

import os
import pytest

HELLO_WORLD = (
    b">++++++++[<+++++++++>-]<.>++++[<+++++++>-]<+.+++++++..+++.>>++++++"
    b"[<+++++++>-]<++.------------.>++++++[<+++++++++>-]<+.<.+++.------."
    b"--------.>>>++++[<++++++++>-]<+."
)


@pytest.fixture
def hello_world() -> bytes:
    """Classic program printing exactly ``Hello, World!`` (no newline)."""
    return HELLO_WORLD


@pytest.fixture
def program_file(tmp_path):
    """Factory: write program bytes to a file and return its path."""
    def _write(data: bytes, name: str = "program.bf") -> str:
        path = tmp_path / name
        path.write_bytes(data)
        return os.fspath(path)
    return _write

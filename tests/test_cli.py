"""
Command-line tests: flag parsing, help/about precedence, program
sources, and how failures are reported.
"""

import io
import sys
import types

import pytest

from cli import main, build_parser, InterpreterOptions, VERSION


def run_cli(capsysbinary, *argv):
    status = main(list(argv))
    out, err = capsysbinary.readouterr()
    return status, out, err.decode()


def usage_error(capsysbinary, *argv) -> str:
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    assert excinfo.value.code == 2
    return capsysbinary.readouterr()[1].decode()

# ---------------------------------------------------------------------------
#  Informational flags
# ---------------------------------------------------------------------------

def test_no_arguments_shows_help(capsysbinary):
    status, out, _ = run_cli(capsysbinary)
    assert status == 0
    assert out.startswith(f"Migraine {VERSION}".encode())
    assert b"--file" in out


def test_blank_arguments_count_as_none(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "")
    assert status == 0
    assert b"usage:" in out


def test_help_wins_over_everything(capsysbinary, program_file, hello_world):
    path = program_file(hello_world)
    status, out, _ = run_cli(capsysbinary, "--about", "--help", f"--file={path}")
    assert status == 0
    assert b"usage:" in out
    assert b"Hello, World!" not in out


def test_about_wins_over_run(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--about", "--eval=+++.")
    assert status == 0
    assert b"eight-instruction" in out
    assert b"\x03" not in out


def test_help_false_is_ignored(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--help=false", "--version")
    assert status == 0
    assert out == f"{VERSION}\n".encode()


def test_nothing_to_run_shows_help(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--verbose")
    assert status == 0
    assert b"usage:" in out

# ---------------------------------------------------------------------------
#  Running programs
# ---------------------------------------------------------------------------

def test_eval_hello_world(capsysbinary, hello_world):
    status, out, err = run_cli(capsysbinary, "--eval=" + hello_world.decode())
    assert status == 0
    assert out == b"Hello, World!"
    assert err == ""


def test_file_hello_world(capsysbinary, program_file, hello_world):
    path = program_file(hello_world)
    status, out, _ = run_cli(capsysbinary, f"--file={path}")
    assert status == 0
    assert out == b"Hello, World!"


def test_file_value_as_separate_argument(capsysbinary, program_file, hello_world):
    path = program_file(hello_world)
    status, out, _ = run_cli(capsysbinary, "--file", path)
    assert status == 0
    assert out == b"Hello, World!"


def test_input_text(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--eval=,.,.", "--input=hi")
    assert status == 0
    assert out == b"hi"


def test_input_decimal(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--eval=,.,.,.", "--input-dec=72, 105")
    assert status == 0
    assert out == b"Hi\x00"


def test_buffered_output_still_arrives(capsysbinary):
    status, out, _ = run_cli(capsysbinary, "--buffered", "--eval=,+.", "--input=@")
    assert status == 0
    assert out == b"A"


def test_verbose_reports_progress(capsysbinary, program_file):
    path = program_file(b"+.")
    status, out, err = run_cli(capsysbinary, "--verbose", f"--file={path}", "--size=64")
    assert status == 0
    assert out == b"\x01"
    assert f"[migraine] Opening '{path}'" in err
    assert "[migraine] Tape: 64 cells, program: 2 bytes" in err
    assert "[migraine] Finished after 2 steps" in err


def test_verbose_false(capsysbinary):
    status, _, err = run_cli(capsysbinary, "--verbose=false", "--eval=+")
    assert status == 0
    assert err == ""

# ---------------------------------------------------------------------------
#  Failures
# ---------------------------------------------------------------------------

def test_runtime_error_reports_diagnostics(capsysbinary):
    status, out, err = run_cli(capsysbinary, "--eval=+.<")
    assert status == 1
    assert out == b"\x01"
    assert "An error occurred while interpreting '<eval>'" in err
    assert "RangeUnderflowError:" in err
    assert "(2)" in err


def test_unbalanced_program(capsysbinary, program_file):
    path = program_file(b"+.]")
    status, out, err = run_cli(capsysbinary, f"--file={path}")
    assert status == 1
    assert out == b""
    assert "UnbalancedJumpError:" in err
    assert "Unbalanced jump detected at position(2)" in err


def test_small_tape_overflows(capsysbinary):
    status, _, err = run_cli(capsysbinary, "--eval=>>", "--size=2")
    assert status == 1
    assert "RangeOverflowError:" in err


def test_broken_stdout_still_reports_failure(capsys, monkeypatch):
    broken = io.BytesIO()
    broken.close()
    monkeypatch.setattr(sys, "stdout", types.SimpleNamespace(buffer=broken))
    status = main(["--eval=+.", "--buffered"])
    err = capsys.readouterr().err
    assert status == 1
    assert "OutputError:" in err
    assert "(1)" in err


def test_verbose_failure_dumps_state(capsysbinary):
    status, _, err = run_cli(capsysbinary, "--verbose", "--eval=+++<", "--size=8")
    assert status == 1
    assert "PC = 3 / 4" in err


def test_missing_file(capsysbinary, tmp_path):
    status, out, err = run_cli(capsysbinary, f"--file={tmp_path / 'nope.bf'}")
    assert status == 1
    assert out.startswith(b"Migraine")
    assert "Cannot load program from file" in err


def test_directory(capsysbinary, tmp_path):
    status, _, err = run_cli(capsysbinary, f"--file={tmp_path}")
    assert status == 1
    assert "is a directory" in err

# ---------------------------------------------------------------------------
#  Usage errors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("argv", [
    ["--bogus"],
    ["-field"],
    ["field"],
    ["field=mockery"],
    ["--File=./os.bf"],
])
def test_unknown_options(capsysbinary, argv):
    assert "unrecognized arguments" in usage_error(capsysbinary, *argv)


@pytest.mark.parametrize("argv", [
    ["--file"],
    ["--file="],
    ["--eval="],
    ["--size"],
    ["--input"],
])
def test_missing_values(capsysbinary, argv):
    assert "error" in usage_error(capsysbinary, *argv)


@pytest.mark.parametrize("argv", [
    ["--size=abc", "--eval=+"],
    ["--size=-1", "--eval=+"],
    ["--input-dec=300", "--eval=,"],
    ["--input-dec=a,b", "--eval=,"],
    ["--verbose=maybe", "--eval=+"],
])
def test_bad_values(capsysbinary, argv):
    assert "argument" in usage_error(capsysbinary, *argv)


def test_file_and_eval_are_exclusive(capsysbinary, program_file):
    path = program_file(b"+")
    assert "not allowed with" in usage_error(capsysbinary, f"--file={path}", "--eval=+")


def test_no_abbreviations(capsysbinary):
    usage_error(capsysbinary, "--verb")

# ---------------------------------------------------------------------------
#  Options object
# ---------------------------------------------------------------------------

def test_options_defaults():
    opts = InterpreterOptions.from_args(build_parser().parse_args(["--eval=+"]))
    assert opts == InterpreterOptions(eval="+")
    assert opts.size == 30000
    assert opts.input_bytes() is None


def test_options_flags_and_values():
    opts = InterpreterOptions.from_args(build_parser().parse_args(
        ["--file=./example/os.bf", "--verbose=true", "--buffered", "--size=0x100"]))
    assert opts.file == "./example/os.bf"
    assert opts.verbose is True
    assert opts.buffered is True
    assert opts.size == 256


def test_options_input_bytes():
    assert InterpreterOptions(input="é").input_bytes() == "é".encode("utf-8")
    assert InterpreterOptions(input_dec=b"\x01\x02").input_bytes() == b"\x01\x02"

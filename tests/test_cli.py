"""Tests for the command line interface."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from micro16.cli import main
from micro16.image import read_image, write_image

PROGRAMS = Path(__file__).parent.parent / "programs"


class TestAssembleCommand:
    """Test `micro16 assemble`."""

    def test_writes_image(self, tmp_path, capsys):
        """Source assembles into a binary image."""
        output = tmp_path / "add.bin"
        assert main(["assemble", str(PROGRAMS / "add.asm"), "-o", str(output)]) == 0
        assert read_image(output) == [0x1005, 0x1103, 0x4001, 0x0000]
        assert "Wrote 4 words" in capsys.readouterr().out

    def test_reports_line_of_error(self, tmp_path, capsys):
        """Assembly errors print file:line and exit 2."""
        source = tmp_path / "bad.asm"
        source.write_text("LVAL R0, 1\nLVAL R9, 1\n")
        assert main(["assemble", str(source), "-o", str(tmp_path / "x.bin")]) == 2
        err = capsys.readouterr().err
        assert f"{source}:2:" in err
        assert "R9" in err

    def test_missing_source(self, tmp_path):
        assert main(["assemble", str(tmp_path / "none.asm")]) == 1


class TestRunCommand:
    """Test `micro16 run`."""

    def test_run_source(self, capsys):
        """Running a halting program exits 0 and prints registers."""
        assert main(["run", str(PROGRAMS / "add.asm")]) == 0
        out = capsys.readouterr().out
        assert "Halted: True" in out
        assert "'R0': 8" in out

    def test_run_binary(self, tmp_path, capsys):
        image = tmp_path / "p.bin"
        write_image(image, [0x1007, 0x0000])
        assert main(["run", "--binary", str(image), "--quiet"]) == 0
        assert capsys.readouterr().out.strip() == "R0=7"

    def test_run_inline_trace(self, capsys):
        """Inline programs use ; as line separator."""
        assert main(["run", "--inline", "LVAL R1, 2; HALT", "--trace"]) == 0
        out = capsys.readouterr().out
        assert "MICRO16 EXECUTION TRACE" in out
        assert "LVAL R1, 2" in out

    def test_cycle_limit_exit_code(self, capsys):
        """A program that never halts exits 1."""
        assert main(["run", str(PROGRAMS / "counter.asm"), "--max-cycles", "20"]) == 1
        assert "Max cycles (20) exceeded" in capsys.readouterr().out

    def test_fault_exit_code(self, tmp_path, capsys):
        """Faults are reported and exit 1."""
        image = tmp_path / "bad.bin"
        write_image(image, [0xF000])
        assert main(["run", "--binary", str(image)]) == 1
        assert "Execution error" in capsys.readouterr().out

    def test_requires_one_source(self, capsys):
        assert main(["run"]) == 1

    def test_memory_size(self, capsys):
        """Too small a memory rejects the program."""
        assert main(["run", str(PROGRAMS / "add.asm"), "--memory-size", "2"]) == 1
        assert "does not fit" in capsys.readouterr().err


class TestDisasmCommand:
    """Test `micro16 disasm`."""

    def test_listing(self, tmp_path, capsys):
        image = tmp_path / "p.bin"
        write_image(image, [0x1005, 0xF000])
        assert main(["disasm", str(image)]) == 0
        out = capsys.readouterr().out
        assert "0: 1005  LVAL R0, 5" in out
        assert ".WORD 0xf000" in out

    def test_odd_image(self, tmp_path, capsys):
        image = tmp_path / "odd.bin"
        image.write_bytes(b"\x00")
        assert main(["disasm", str(image)]) == 1


class TestParser:
    """Test argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])

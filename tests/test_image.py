"""Tests for binary program images."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from micro16 import Micro16CPU, assemble
from micro16.errors import ImageFormatError
from micro16.image import from_bytes, read_image, to_bytes, write_image


class TestByteCodec:
    """Test word <-> byte conversion."""

    def test_big_endian(self):
        """Opcode/register byte comes first."""
        assert to_bytes([0x1005]) == b"\x10\x05"

    def test_from_bytes(self):
        assert from_bytes(b"\x41\x01\x00\x00") == [0x4101, 0x0000]

    def test_odd_length(self):
        """Half a word is not an image."""
        with pytest.raises(ImageFormatError):
            from_bytes(b"\x10\x05\x00")

    def test_empty(self):
        assert from_bytes(b"") == []
        assert to_bytes([]) == b""

    def test_rejects_wide_words(self):
        with pytest.raises(ValueError):
            to_bytes([0x10000])


class TestImageFiles:
    """Test reading and writing image files."""

    def test_assembled_program_runs_from_file(self, tmp_path):
        """Assemble, write, read back and run."""
        path = tmp_path / "program.bin"
        write_image(path, assemble("LVAL R0, 5\nLVAL R1, 3\nADD R0, R1\nHALT"))
        assert path.stat().st_size == 8

        cpu = Micro16CPU()
        cpu.load(read_image(path))
        cpu.run()
        assert cpu.get_register("R0") == 8

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_image(tmp_path / "missing.bin")

"""Tests for the instruction encoding table."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from micro16 import isa
from micro16.errors import InvalidOpcode, InvalidRegister, UnknownMnemonic, UnknownRegister
from micro16.isa import Instruction, decode, encode


class TestOpcodeTable:
    """Test the mnemonic <-> opcode bijection."""

    def test_opcode_values(self):
        """Opcodes follow the fixed table."""
        assert isa.OPCODES == {
            "HALT": 0b0000, "LVAL": 0b0001, "LOAD": 0b0010, "STORE": 0b0011,
            "ADD": 0b0100, "SUB": 0b0101, "JMP": 0b0110, "MOV": 0b0111,
        }

    def test_bijection(self):
        """Every opcode maps back to its mnemonic."""
        for mnemonic, code in isa.OPCODES.items():
            assert isa.mnemonic_of(code) == mnemonic
            assert isa.opcode_of(mnemonic) == code

    def test_opcode_of_case_insensitive(self):
        """Mnemonic lookup ignores case."""
        assert isa.opcode_of("lval") == 0b0001

    def test_unknown_mnemonic(self):
        """Unknown mnemonics raise UnknownMnemonic without a line."""
        with pytest.raises(UnknownMnemonic) as exc:
            isa.opcode_of("NOP")
        assert exc.value.line_no is None

    @pytest.mark.parametrize("code", range(8, 16))
    def test_reserved_opcodes(self, code):
        """Codes 8-15 have no mnemonic."""
        with pytest.raises(InvalidOpcode):
            isa.mnemonic_of(code)


class TestRegisterTable:
    """Test the register name <-> code bijection."""

    def test_register_codes(self):
        """R0-R3 map to 0-3."""
        for i in range(4):
            assert isa.register_code(f"R{i}") == i
            assert isa.register_name(i) == f"R{i}"

    def test_register_code_case_insensitive(self):
        """Register names ignore case."""
        assert isa.register_code("r2") == 2

    def test_unknown_register(self):
        """R4 and beyond are not registers."""
        with pytest.raises(UnknownRegister):
            isa.register_code("R4")

    def test_invalid_register_code(self):
        """Unassigned register codes raise InvalidRegister."""
        with pytest.raises(InvalidRegister):
            isa.register_name(4)


class TestOperandLayout:
    """Test the per-opcode operand table."""

    def test_every_mnemonic_has_layout(self):
        """Layout table covers exactly the opcode table."""
        assert set(isa.OPERAND_LAYOUT) == set(isa.OPCODES)

    def test_operand_counts(self):
        """Operand counts match the instruction forms."""
        assert isa.operand_count("HALT") == 0
        assert isa.operand_count("JMP") == 1
        for mnemonic in ("LVAL", "LOAD", "STORE", "ADD", "SUB", "MOV"):
            assert isa.operand_count(mnemonic) == 2

    def test_two_register_forms(self):
        """ADD, SUB and MOV take a source register."""
        for mnemonic in ("ADD", "SUB", "MOV"):
            assert isa.OPERAND_LAYOUT[mnemonic] == (isa.REGISTER, isa.SOURCE_REGISTER)


class TestWordCodec:
    """Test encode/decode of 16-bit words."""

    def test_encode_lval(self):
        """LVAL R0, 5 -> 0001 0000 00000101."""
        assert encode(Instruction("LVAL", 0, 5)) == 0b0001_0000_00000101

    def test_encode_add_packs_source_low_nibble(self):
        """ADD R2, R3 keeps the source in the operand's low nibble."""
        assert encode(Instruction("ADD", 2, 3)) == 0b0100_0010_0000_0011

    def test_encode_zeroes_unused_fields(self):
        """HALT ignores register and operand."""
        assert encode(Instruction("HALT", 3, 200)) == 0

    def test_round_trip_all_valid_instructions(self):
        """decode(encode(i)) == i over every valid field combination."""
        for mnemonic, layout in isa.OPERAND_LAYOUT.items():
            registers = range(4) if isa.REGISTER in layout else [0]
            if isa.SOURCE_REGISTER in layout:
                operands = range(4)
            elif isa.IMMEDIATE in layout or isa.ADDRESS in layout:
                operands = range(256)
            else:
                operands = [0]
            for register in registers:
                for operand in operands:
                    instruction = Instruction(mnemonic, register, operand)
                    assert decode(encode(instruction)) == instruction

    def test_decode_reserved_opcode(self):
        """Reserved opcode nibble raises InvalidOpcode."""
        with pytest.raises(InvalidOpcode) as exc:
            decode(0xF000)
        assert exc.value.opcode == 0xF

    def test_decode_bad_destination_register(self):
        """Register field above R3 raises InvalidRegister."""
        with pytest.raises(InvalidRegister):
            decode(0b0001_0100_00000001)

    def test_decode_bad_source_register(self):
        """Source nibble above R3 raises InvalidRegister."""
        with pytest.raises(InvalidRegister):
            decode(0b0111_0000_0000_0101)

    def test_decode_ignores_unused_register_field(self):
        """JMP does not use the register field."""
        assert decode(0b0110_1111_00000011).mnemonic == "JMP"

    def test_unpack_rejects_wide_words(self):
        """Words above 16 bits are rejected."""
        with pytest.raises(ValueError):
            isa.unpack(0x10000)

    def test_pack_rejects_wide_operand(self):
        """Operands above 8 bits are rejected."""
        with pytest.raises(ValueError):
            isa.pack(1, 0, 256)

    def test_instruction_operands_in_source_order(self):
        """operands() lists field values as written in source."""
        assert Instruction("STORE", 1, 10).operands() == (1, 10)
        assert Instruction("MOV", 2, 3).operands() == (2, 3)
        assert Instruction("JMP", 0, 7).operands() == (7,)
        assert Instruction("HALT").operands() == ()

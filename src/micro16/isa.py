"""Instruction encoding table for Micro16.

This module is the single source of truth shared by the assembler and the
CPU: the mnemonic <-> opcode bijection, the register name <-> code
bijection, and the operand layout of every opcode.

Encoded Word (16 bits, most significant nibble first):

    15    12 11     8 7              0
    +-------+--------+---------------+
    |opcode |register|    operand    |
    +-------+--------+---------------+

Opcode Table:
    HALT  0000    stop execution
    LVAL  0001    Rd <- imm
    LOAD  0010    Rd <- memory[addr]
    STORE 0011    memory[addr] <- Rs
    ADD   0100    Rd <- Rd + Rs
    SUB   0101    Rd <- Rd - Rs
    JMP   0110    pc <- addr
    MOV   0111    Rd <- Rs

Codes 1000-1111 are reserved. Two-register opcodes (ADD, SUB, MOV) keep the
source register in the low nibble of the operand; the high nibble is zero.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from .errors import InvalidOpcode, InvalidRegister, UnknownMnemonic, UnknownRegister


WORD_BITS = 16
WORD_MASK = (1 << WORD_BITS) - 1

OPCODE_SHIFT = 12
REGISTER_SHIFT = 8
NIBBLE_MASK = 0xF
OPERAND_MASK = 0xFF

OPCODES: Dict[str, int] = {
    "HALT": 0b0000,
    "LVAL": 0b0001,
    "LOAD": 0b0010,
    "STORE": 0b0011,
    "ADD": 0b0100,
    "SUB": 0b0101,
    "JMP": 0b0110,
    "MOV": 0b0111,
}

MNEMONICS: Dict[int, str] = {code: name for name, code in OPCODES.items()}

REGISTERS: Dict[str, int] = {
    "R0": 0b0000,
    "R1": 0b0001,
    "R2": 0b0010,
    "R3": 0b0011,
}

REGISTER_NAMES: Dict[int, str] = {code: name for name, code in REGISTERS.items()}


# =============================================================================
# Operand layout
# =============================================================================

# Operand kinds, in the order they appear in source text
REGISTER = "register"                # bits 11..8
IMMEDIATE = "immediate"              # bits 7..0, unsigned value
ADDRESS = "address"                  # bits 7..0, memory index or jump target
SOURCE_REGISTER = "source_register"  # bits 3..0, bits 7..4 zero

FIELD_BITS: Dict[str, int] = {
    REGISTER: 4,
    IMMEDIATE: 8,
    ADDRESS: 8,
    SOURCE_REGISTER: 4,
}

OPERAND_LAYOUT: Dict[str, Tuple[str, ...]] = {
    "HALT": (),
    "LVAL": (REGISTER, IMMEDIATE),
    "LOAD": (REGISTER, ADDRESS),
    "STORE": (REGISTER, ADDRESS),
    "ADD": (REGISTER, SOURCE_REGISTER),
    "SUB": (REGISTER, SOURCE_REGISTER),
    "JMP": (ADDRESS,),
    "MOV": (REGISTER, SOURCE_REGISTER),
}


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction.

    Attributes:
        mnemonic: One of the eight mnemonics in OPCODES
        register: Register field (destination, or source for STORE)
        operand: 8-bit operand field (immediate, address or packed source register)
    """
    mnemonic: str
    register: int = 0
    operand: int = 0

    @property
    def opcode(self) -> int:
        return OPCODES[self.mnemonic]

    @property
    def source(self) -> int:
        """Source register code of a two-register instruction."""
        return self.operand & NIBBLE_MASK

    def operands(self) -> Tuple[int, ...]:
        """Field values in source order, as listed by OPERAND_LAYOUT."""
        values = []
        for kind in OPERAND_LAYOUT[self.mnemonic]:
            if kind == REGISTER:
                values.append(self.register)
            elif kind == SOURCE_REGISTER:
                values.append(self.source)
            else:
                values.append(self.operand)
        return tuple(values)


# =============================================================================
# Lookups
# =============================================================================

def opcode_of(mnemonic: str) -> int:
    """Get the 4-bit opcode of a mnemonic (case insensitive).

    Raises:
        UnknownMnemonic: If the mnemonic is not in the table
    """
    try:
        return OPCODES[mnemonic.upper()]
    except KeyError:
        raise UnknownMnemonic(mnemonic) from None


def mnemonic_of(code: int) -> str:
    """Get the mnemonic assigned to a 4-bit opcode.

    Raises:
        InvalidOpcode: If the code is reserved
    """
    try:
        return MNEMONICS[code]
    except KeyError:
        raise InvalidOpcode(code) from None


def register_code(name: str) -> int:
    """Get the 4-bit code of a register name (case insensitive).

    Raises:
        UnknownRegister: If the name is not R0-R3
    """
    try:
        return REGISTERS[name.upper()]
    except KeyError:
        raise UnknownRegister(name) from None


def register_name(code: int) -> str:
    """Get the register name for a 4-bit code.

    Raises:
        InvalidRegister: If the code is not assigned
    """
    try:
        return REGISTER_NAMES[code]
    except KeyError:
        raise InvalidRegister(code) from None


def operand_count(mnemonic: str) -> int:
    return len(OPERAND_LAYOUT[mnemonic.upper()])


# =============================================================================
# Word codec
# =============================================================================

def pack(opcode: int, register: int, operand: int) -> int:
    """Pack raw fields into an Encoded Word."""
    if not 0 <= opcode <= NIBBLE_MASK:
        raise ValueError(f"opcode out of range: {opcode}")
    if not 0 <= register <= NIBBLE_MASK:
        raise ValueError(f"register field out of range: {register}")
    if not 0 <= operand <= OPERAND_MASK:
        raise ValueError(f"operand out of range: {operand}")
    return (opcode << OPCODE_SHIFT) | (register << REGISTER_SHIFT) | operand


def unpack(word: int) -> Tuple[int, int, int]:
    """Split an Encoded Word into its raw (opcode, register, operand) fields."""
    if not 0 <= word <= WORD_MASK:
        raise ValueError(f"not a 16-bit word: {word}")
    return (
        (word >> OPCODE_SHIFT) & NIBBLE_MASK,
        (word >> REGISTER_SHIFT) & NIBBLE_MASK,
        word & OPERAND_MASK,
    )


def encode(instruction: Instruction) -> int:
    """Encode an instruction into a 16-bit word.

    Fields the opcode does not use are written as zero.
    """
    layout = OPERAND_LAYOUT[instruction.mnemonic]
    register = instruction.register if REGISTER in layout else 0
    if SOURCE_REGISTER in layout:
        operand = instruction.source
    elif IMMEDIATE in layout or ADDRESS in layout:
        operand = instruction.operand
    else:
        operand = 0
    return pack(instruction.opcode, register, operand)


def decode(word: int) -> Instruction:
    """Decode a 16-bit word into an Instruction.

    Raises:
        InvalidOpcode: If the opcode nibble is reserved
        InvalidRegister: If a register field used by the opcode is not R0-R3
    """
    opcode, register, operand = unpack(word)
    if opcode not in MNEMONICS:
        raise InvalidOpcode(opcode, word)
    mnemonic = MNEMONICS[opcode]
    layout = OPERAND_LAYOUT[mnemonic]

    if REGISTER in layout and register not in REGISTER_NAMES:
        raise InvalidRegister(register, word)
    if SOURCE_REGISTER in layout and (operand & NIBBLE_MASK) not in REGISTER_NAMES:
        raise InvalidRegister(operand & NIBBLE_MASK, word)

    return Instruction(mnemonic, register, operand)

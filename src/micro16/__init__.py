"""Micro16: a minimal von Neumann CPU emulator with its assembler.

This package implements a teaching CPU with four registers, a unified
instruction/data memory and a fixed 16-bit instruction format, together
with the assembler that produces its programs. Both sides share one
encoding table, so text and binary always agree.

    source text -> ASSEMBLER -> words -> MEMORY -> FETCH -> DECODE -> EXECUTE -> STATE
                       |                             |          |          |
                   [2 passes]                      [PC++]    [isa]    [Registry]

Modules:
    isa: Opcode/register tables, operand layouts, word encode/decode
    assembler: Assembler and disassembler
    state: CPUState dataclass
    registry: Verified execution primitives (OP_ADD, OP_JMP, etc.)
    cpu: Main Micro16CPU orchestrator
    image: Binary program image files
    errors: Exception hierarchy
"""

__version__ = "0.1.0"
__author__ = "Micro16 Project"

from .errors import (
    AddressOutOfRange,
    AlreadyHalted,
    AssemblyError,
    CycleLimitExceeded,
    ExecutionError,
    InvalidOpcode,
    InvalidRegister,
    Micro16Error,
    UndefinedLabel,
    UnknownMnemonic,
    UnknownRegister,
)
from .isa import Instruction, decode, encode
from .state import CPUState
from .registry import CPURegistry
from .assembler import Assembler, assemble, disassemble
from .cpu import Micro16CPU

__all__ = [
    "Micro16CPU",
    "CPUState",
    "CPURegistry",
    "Assembler",
    "Instruction",
    "assemble",
    "disassemble",
    "encode",
    "decode",
    "Micro16Error",
    "AssemblyError",
    "ExecutionError",
    "UnknownMnemonic",
    "UnknownRegister",
    "UndefinedLabel",
    "InvalidOpcode",
    "InvalidRegister",
    "AddressOutOfRange",
    "AlreadyHalted",
    "CycleLimitExceeded",
]

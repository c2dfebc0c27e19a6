"""Assembler and disassembler for Micro16 assembly language.

Source syntax:

    ; comment (also '#')
    start:              ; label, names the next instruction
        LVAL R0, 5      ; mnemonic, then comma separated operands
        LVAL R1, 0x03
        ADD  R0, R1
    loop: JMP loop      ; label and instruction on one line
        .WORD 0xBEEF    ; raw 16-bit data word

Assembly runs in two passes. Pass 1 splits lines into labels, mnemonics and
operand tokens and assigns instruction indices to labels. Pass 2 resolves
every token against the encoding table and packs one Encoded Word per
instruction, in source order. The first error stops assembly.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from . import isa
from .errors import (
    AssemblyError,
    DuplicateLabel,
    InvalidOpcode,
    InvalidRegister,
    MalformedOperand,
    OperandCountMismatch,
    OperandOutOfRange,
    UndefinedLabel,
)
from .isa import ADDRESS, IMMEDIATE, REGISTER, SOURCE_REGISTER, Instruction

logger = logging.getLogger(__name__)

WORD_DIRECTIVE = ".WORD"

_COMMENT = re.compile(r"[;#].*$")
_LABEL = re.compile(r"^([^\s:]+)\s*:(.*)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NUMBER = re.compile(r"^[+-]?(0[xX][0-9A-Fa-f]+|0[bB][01]+|[0-9]+)$")


@dataclass
class SourceLine:
    """One instruction line after pass 1.

    Attributes:
        line_no: 1-based line number in the source text
        mnemonic: Mnemonic or directive as written
        operands: Operand tokens, stripped
        text: Instruction text without label and comment
    """
    line_no: int
    mnemonic: str
    operands: List[str] = field(default_factory=list)
    text: str = ""


def parse_program(source: str) -> Tuple[List[SourceLine], Dict[str, int]]:
    """Split assembly source into instruction lines and labels.

    Handles:
        - Labels (``name:`` alone or in front of an instruction)
        - Comments (starting with ; or #)
        - Blank lines

    Returns:
        Tuple of (instruction lines, label-to-index dict)

    Raises:
        MalformedOperand: If a label name is not an identifier or an operand is empty
        DuplicateLabel: If a label is defined twice (names are case insensitive)
    """
    lines: List[SourceLine] = []
    labels: Dict[str, int] = {}
    seen: Dict[str, str] = {}

    for line_no, raw in enumerate(source.splitlines(), start=1):
        line = _COMMENT.sub("", raw).strip()
        if not line:
            continue

        label_match = _LABEL.match(line)
        if label_match:
            name = label_match.group(1)
            if not _IDENTIFIER.match(name):
                raise MalformedOperand(name, line_no)
            if name.upper() in seen:
                raise DuplicateLabel(name, line_no)
            seen[name.upper()] = name
            labels[name] = len(lines)
            line = label_match.group(2).strip()
            if not line:
                continue

        parts = line.split(None, 1)
        operands: List[str] = []
        if len(parts) > 1:
            operands = [token.strip() for token in parts[1].split(",")]
            for token in operands:
                if not token:
                    raise MalformedOperand(token, line_no)

        lines.append(SourceLine(line_no, parts[0], operands, line))

    return lines, labels


def parse_number(token: str) -> int:
    """Parse a numeric token (decimal, 0x hex or 0b binary).

    Raises:
        MalformedOperand: If the token is not a number
    """
    text = token.strip()
    if not _NUMBER.match(text):
        raise MalformedOperand(token)

    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-").upper()
    if digits.startswith("0X"):
        return sign * int(digits[2:], 16)
    if digits.startswith("0B"):
        return sign * int(digits[2:], 2)
    return sign * int(digits, 10)


class Assembler:
    """Two-pass assembler producing Encoded Words.

    The assembler keeps no state between calls apart from ``labels``, which
    is replaced on every call to assemble() for inspection by callers.

    Attributes:
        labels: Label-to-index mapping of the last assembled program
    """

    def __init__(self):
        self.labels: Dict[str, int] = {}

    def assemble(self, source: str) -> List[int]:
        """Assemble source text into a list of 16-bit words.

        Raises:
            AssemblyError: Subclass naming the first problem and its line
        """
        lines, labels = parse_program(source)
        lookup = {name.upper(): index for name, index in labels.items()}

        words = [self._assemble_line(line, lookup) for line in lines]

        self.labels = labels
        logger.debug("assembled %d words, %d labels", len(words), len(labels))
        return words

    def _assemble_line(self, line: SourceLine, labels: Dict[str, int]) -> int:
        try:
            if line.mnemonic.upper() == WORD_DIRECTIVE:
                return self._assemble_word(line)

            mnemonic = isa.MNEMONICS[isa.opcode_of(line.mnemonic)]
            layout = isa.OPERAND_LAYOUT[mnemonic]
            if len(line.operands) != len(layout):
                raise OperandCountMismatch(mnemonic, len(layout), len(line.operands))

            register = 0
            operand = 0
            for kind, token in zip(layout, line.operands):
                if kind == REGISTER:
                    register = isa.register_code(token)
                elif kind == SOURCE_REGISTER:
                    operand = isa.register_code(token)
                elif kind == ADDRESS and mnemonic == "JMP" and _IDENTIFIER.match(token):
                    operand = self._resolve_label(token, labels)
                else:
                    operand = self._resolve_number(token, isa.FIELD_BITS[kind])

            return isa.encode(Instruction(mnemonic, register, operand))
        except AssemblyError as e:
            raise e.at_line(line.line_no) from None

    def _assemble_word(self, line: SourceLine) -> int:
        if len(line.operands) != 1:
            raise OperandCountMismatch(WORD_DIRECTIVE, 1, len(line.operands))
        return self._resolve_number(line.operands[0], isa.WORD_BITS)

    @staticmethod
    def _resolve_number(token: str, bits: int) -> int:
        value = parse_number(token)
        if not 0 <= value < (1 << bits):
            raise OperandOutOfRange(value, bits)
        return value

    @staticmethod
    def _resolve_label(name: str, labels: Dict[str, int]) -> int:
        if name.upper() not in labels:
            raise UndefinedLabel(name)
        address = labels[name.upper()]
        if address > isa.OPERAND_MASK:
            raise OperandOutOfRange(address)
        return address


def assemble(source: str) -> List[int]:
    """Assemble source text into a list of 16-bit words."""
    return Assembler().assemble(source)


# =============================================================================
# Disassembler
# =============================================================================

def format_instruction(instruction: Instruction) -> str:
    """Render a decoded instruction as canonical source text."""
    rendered = []
    for kind, value in zip(isa.OPERAND_LAYOUT[instruction.mnemonic], instruction.operands()):
        if kind in (REGISTER, SOURCE_REGISTER):
            rendered.append(isa.register_name(value))
        else:
            rendered.append(str(value))
    if not rendered:
        return instruction.mnemonic
    return f"{instruction.mnemonic} {', '.join(rendered)}"


def disassemble_word(word: int) -> str:
    """Render one word as source text.

    Words that do not decode, or that carry bits in fields their opcode
    ignores, are rendered as a ``.WORD`` directive so the text reassembles
    to the same word.
    """
    try:
        instruction = isa.decode(word)
    except (InvalidOpcode, InvalidRegister):
        return f"{WORD_DIRECTIVE} {word:#06x}"
    if isa.encode(instruction) != word:
        return f"{WORD_DIRECTIVE} {word:#06x}"
    return format_instruction(instruction)


def disassemble(words: Sequence[int], start: int = 0, length: Optional[int] = None) -> List[Tuple[int, int, str]]:
    """Disassemble a range of words.

    Returns:
        List of (address, word, text) tuples
    """
    end = len(words) if length is None else min(len(words), start + length)
    return [(address, words[address], disassemble_word(words[address])) for address in range(start, end)]

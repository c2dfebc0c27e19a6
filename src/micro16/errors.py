"""Exception hierarchy for Micro16.

Assembly-time errors carry the source line they belong to; lookups in the
encoding table raise the same classes with ``line_no=None`` and the assembler
re-raises them with the line attached.

Execution-time errors are fatal for the current run. The CPU keeps the state
it had before the failing step and refuses to execute until ``reset()``.
"""

from typing import Optional


class Micro16Error(Exception):
    """Base class for all Micro16 errors."""


# =============================================================================
# Assembly-time errors
# =============================================================================

class AssemblyError(Micro16Error, ValueError):
    """Error attributable to one line of assembly source.

    Attributes:
        line_no: 1-based source line number (None outside the assembler)
        detail: Message without the line prefix
    """

    def __init__(self, detail: str, line_no: Optional[int] = None):
        self.detail = detail
        self.line_no = line_no
        super().__init__(f"line {line_no}: {detail}" if line_no is not None else detail)

    def at_line(self, line_no: int) -> "AssemblyError":
        """Attribute this error to ``line_no`` and return it."""
        self.line_no = line_no
        self.args = (f"line {line_no}: {self.detail}",)
        return self


class UnknownMnemonic(AssemblyError):
    def __init__(self, mnemonic: str, line_no: Optional[int] = None):
        self.mnemonic = mnemonic
        super().__init__(f"unknown mnemonic: {mnemonic}", line_no)


class UnknownRegister(AssemblyError):
    def __init__(self, name: str, line_no: Optional[int] = None):
        self.name = name
        super().__init__(f"unknown register: {name}", line_no)


class MalformedOperand(AssemblyError):
    def __init__(self, token: str, line_no: Optional[int] = None):
        self.token = token
        super().__init__(f"malformed operand: {token!r}", line_no)


class OperandOutOfRange(AssemblyError):
    def __init__(self, value: int, bits: int = 8, line_no: Optional[int] = None):
        self.value = value
        self.bits = bits
        super().__init__(
            f"operand {value} does not fit in {bits} unsigned bits (0-{(1 << bits) - 1})",
            line_no,
        )


class UndefinedLabel(AssemblyError):
    def __init__(self, name: str, line_no: Optional[int] = None):
        self.name = name
        super().__init__(f"undefined label: {name}", line_no)


class DuplicateLabel(AssemblyError):
    def __init__(self, name: str, line_no: Optional[int] = None):
        self.name = name
        super().__init__(f"label already defined: {name}", line_no)


class OperandCountMismatch(AssemblyError):
    def __init__(self, mnemonic: str, expected: int, got: int, line_no: Optional[int] = None):
        self.mnemonic = mnemonic
        self.expected = expected
        self.got = got
        super().__init__(f"{mnemonic} takes {expected} operand(s), got {got}", line_no)


# =============================================================================
# Execution-time errors
# =============================================================================

class ExecutionError(Micro16Error, RuntimeError):
    """Fatal error raised by the fetch-decode-execute cycle."""


class InvalidOpcode(ExecutionError):
    def __init__(self, opcode: int, word: Optional[int] = None):
        self.opcode = opcode
        self.word = word
        msg = f"invalid opcode {opcode:#06b}"
        if word is not None:
            msg += f" in word {word:#06x}"
        super().__init__(msg)


class InvalidRegister(ExecutionError):
    def __init__(self, code: int, word: Optional[int] = None):
        self.code = code
        self.word = word
        msg = f"invalid register code {code:#06b}"
        if word is not None:
            msg += f" in word {word:#06x}"
        super().__init__(msg)


class AddressOutOfRange(ExecutionError):
    def __init__(self, address: int, capacity: int):
        self.address = address
        self.capacity = capacity
        super().__init__(f"address {address} outside memory of {capacity} words")


class AlreadyHalted(ExecutionError):
    def __init__(self):
        super().__init__("CPU is halted; reset() before stepping again")


class CycleLimitExceeded(ExecutionError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max cycles ({limit}) exceeded")


# =============================================================================
# Loading errors
# =============================================================================

class ProgramTooLarge(Micro16Error, ValueError):
    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"program of {size} words does not fit in {capacity} words of memory")


class ImageFormatError(Micro16Error, ValueError):
    """Binary image cannot be split into 16-bit words."""

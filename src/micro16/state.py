"""CPUState: State representation for the Micro16 CPU.

State Components:
    - Registers: R0-R3 (4 general-purpose 16-bit unsigned integers)
    - PC: Program counter (index of the next word to fetch)
    - IR: Instruction register (last fetched Encoded Word)
    - Memory: Unified instruction/data memory of 16-bit words
    - Halted: Execution termination flag
    - Cycle count: Total executed cycles

Mutations return new state objects. The CPU builds the state of a whole
step before adopting it, so a step that fails leaves no partial changes.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence, Union

from .errors import InvalidRegister, ProgramTooLarge
from .isa import REGISTERS, WORD_MASK, register_name


REGISTER_BITS = 16
REGISTER_MASK = (1 << REGISTER_BITS) - 1

DEFAULT_MEMORY_SIZE = 256

RegisterRef = Union[str, int]


def _zeroed_registers() -> Dict[str, int]:
    return {name: 0 for name in REGISTERS}


@dataclass
class CPUState:
    """CPU state representation.

    Attributes:
        registers: Dictionary mapping register names (R0-R3) to 16-bit values
        pc: Program counter
        ir: Instruction register
        memory: List of 16-bit words
        halted: Whether the CPU has executed HALT
        cycle_count: Number of execution cycles completed
    """
    registers: Dict[str, int] = field(default_factory=_zeroed_registers)
    pc: int = 0
    ir: int = 0
    memory: List[int] = field(default_factory=lambda: [0] * DEFAULT_MEMORY_SIZE)
    halted: bool = False
    cycle_count: int = 0

    def snapshot(self) -> dict:
        """Create a snapshot of the current state for tracing.

        Memory is left out; use dump_memory() for it.
        """
        return {
            "registers": dict(self.registers),
            "pc": self.pc,
            "ir": self.ir,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - Registers are exactly R0-R3 and hold 16-bit values
            - Memory words are 16-bit values
            - PC and cycle count are non-negative, IR is a 16-bit word
        """
        if set(self.registers.keys()) != set(REGISTERS):
            return False
        for value in self.registers.values():
            if not isinstance(value, int) or not 0 <= value <= REGISTER_MASK:
                return False

        if not self.memory:
            return False
        for word in self.memory:
            if not isinstance(word, int) or not 0 <= word <= WORD_MASK:
                return False

        if self.pc < 0 or self.cycle_count < 0:
            return False
        if not 0 <= self.ir <= WORD_MASK:
            return False
        return True

    @property
    def memory_size(self) -> int:
        return len(self.memory)

    def get_register(self, reg: RegisterRef) -> int:
        """Get value of a register.

        Args:
            reg: Register name (R0-R3, case insensitive) or register code

        Raises:
            KeyError: If register doesn't exist
        """
        name = self._register_key(reg)
        return self.registers[name]

    def set_register(self, reg: RegisterRef, value: int) -> "CPUState":
        """Create new state with updated register value.

        The value wraps modulo 2**16.
        """
        name = self._register_key(reg)
        new_registers = dict(self.registers)
        new_registers[name] = value & REGISTER_MASK
        return replace(self, registers=new_registers)

    def read_memory(self, address: int) -> int:
        """Read one word. Raises IndexError outside memory."""
        if not 0 <= address < len(self.memory):
            raise IndexError(f"address {address} outside memory")
        return self.memory[address]

    def write_memory(self, address: int, value: int) -> "CPUState":
        """Create new state with one memory word replaced."""
        if not 0 <= address < len(self.memory):
            raise IndexError(f"address {address} outside memory")
        new_memory = list(self.memory)
        new_memory[address] = value & WORD_MASK
        return replace(self, memory=new_memory)

    def increment_pc(self) -> "CPUState":
        return replace(self, pc=self.pc + 1)

    def set_pc(self, new_pc: int) -> "CPUState":
        return replace(self, pc=new_pc)

    def set_ir(self, word: int) -> "CPUState":
        return replace(self, ir=word)

    def set_halted(self, halted: bool = True) -> "CPUState":
        return replace(self, halted=halted)

    def increment_cycle(self) -> "CPUState":
        return replace(self, cycle_count=self.cycle_count + 1)

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values."""
        return dict(self.registers)

    def dump_memory(self) -> List[int]:
        """Get a copy of memory."""
        return list(self.memory)

    @staticmethod
    def _register_key(reg: RegisterRef) -> str:
        if isinstance(reg, int):
            try:
                return register_name(reg)
            except InvalidRegister:
                raise KeyError(f"Invalid register: {reg}") from None
        name = reg.upper()
        if name not in REGISTERS:
            raise KeyError(f"Invalid register: {reg}")
        return name

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"{k}={v}" for k, v in sorted(self.registers.items()))
        return (
            f"[Cycle {self.cycle_count}] PC={self.pc} IR={self.ir:#06x} {regs}"
            f"{' HALTED' if self.halted else ''}"
        )


def create_initial_state(program: Sequence[int] = (), memory_size: int = DEFAULT_MEMORY_SIZE) -> CPUState:
    """Create initial CPU state with a loaded program.

    Args:
        program: Encoded Words placed from address 0
        memory_size: Number of words of memory

    Raises:
        ProgramTooLarge: If the program does not fit in memory
        ValueError: If memory_size is not positive or a word is not a 16-bit value
    """
    if memory_size <= 0:
        raise ValueError(f"memory_size must be positive, got {memory_size}")
    if len(program) > memory_size:
        raise ProgramTooLarge(len(program), memory_size)
    for address, word in enumerate(program):
        if not isinstance(word, int) or not 0 <= word <= WORD_MASK:
            raise ValueError(f"word at address {address} is not a 16-bit value: {word!r}")

    memory = list(program) + [0] * (memory_size - len(program))
    return CPUState(memory=memory)

"""CPURegistry: Verified execution primitives for the Micro16 CPU.

Each opcode maps to a primitive, a pure function that transforms state in
a predictable, auditable way:

    OP_HALT:  halted <- true
    OP_LVAL:  Rd <- imm
    OP_LOAD:  Rd <- memory[addr]
    OP_STORE: memory[addr] <- Rs
    OP_ADD:   Rd <- (Rd + Rs) mod 2**16
    OP_SUB:   Rd <- (Rd - Rs) mod 2**16
    OP_JMP:   pc <- addr
    OP_MOV:   Rd <- Rs

Each primitive is (CPUState, Instruction) -> CPUState. The program counter
has already been advanced past the instruction when a primitive runs.
"""

from typing import Callable, Dict, Optional

from .errors import AddressOutOfRange
from .isa import OPCODES, Instruction
from .state import CPUState


Primitive = Callable[[CPUState, Instruction], CPUState]


def key_for(mnemonic: str) -> str:
    """Registry key of a mnemonic, e.g. "ADD" -> "OP_ADD"."""
    return f"OP_{mnemonic}"


class CPURegistry:
    """Verified registry of CPU primitives.

    The registry is frozen after initialization to ensure
    no runtime modifications can occur.

    Attributes:
        _primitives: Dictionary mapping operation keys to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all CPU primitives."""
        self._primitives: Dict[str, Primitive] = {}
        self._frozen = False
        self._register_all_primitives()
        self.freeze()

    def _register_all_primitives(self) -> None:
        # Control
        self.register("OP_HALT", self._op_halt)
        self.register("OP_JMP", self._op_jmp)

        # Data movement
        self.register("OP_LVAL", self._op_lval)
        self.register("OP_LOAD", self._op_load)
        self.register("OP_STORE", self._op_store)
        self.register("OP_MOV", self._op_mov)

        # Arithmetic
        self.register("OP_ADD", self._op_add)
        self.register("OP_SUB", self._op_sub)

    def register(self, key: str, handler: Primitive) -> None:
        """Register a primitive operation.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register primitives: registry is frozen")
        if key in self._primitives:
            raise ValueError(f"Primitive already registered: {key}")
        self._primitives[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._primitives.keys())

    def covers_isa(self) -> bool:
        """Whether every mnemonic of the encoding table has a primitive."""
        return {key_for(m) for m in OPCODES} == self.get_valid_keys()

    def execute(self, state: CPUState, instruction: Instruction) -> CPUState:
        """Execute the primitive for a decoded instruction.

        Args:
            state: CPU state with PC already advanced past the instruction
            instruction: Decoded instruction

        Returns:
            New CPU state with the cycle count incremented

        Raises:
            KeyError: If the mnemonic has no primitive
            AddressOutOfRange: If LOAD/STORE address is outside memory
        """
        key = key_for(instruction.mnemonic)
        if key not in self._primitives:
            raise KeyError(f"Unknown operation key: {key}")

        handler = self._primitives[key]
        new_state = handler(state, instruction)

        return new_state.increment_cycle()

    # =========================================================================
    # Control Primitives
    # =========================================================================

    def _op_halt(self, state: CPUState, instruction: Instruction) -> CPUState:
        return state.set_halted(True)

    def _op_jmp(self, state: CPUState, instruction: Instruction) -> CPUState:
        """JMP addr - Absolute, unconditional jump.

        Overrides the PC increment done at fetch.
        """
        return state.set_pc(instruction.operand)

    # =========================================================================
    # Data Movement Primitives
    # =========================================================================

    def _op_lval(self, state: CPUState, instruction: Instruction) -> CPUState:
        """LVAL Rd, imm - Load 8-bit immediate into register.

        The whole 16-bit register is replaced; the upper byte becomes zero.
        """
        return state.set_register(instruction.register, instruction.operand)

    def _op_load(self, state: CPUState, instruction: Instruction) -> CPUState:
        """LOAD Rd, addr - Copy a memory word into register."""
        address = self._check_address(state, instruction.operand)
        return state.set_register(instruction.register, state.read_memory(address))

    def _op_store(self, state: CPUState, instruction: Instruction) -> CPUState:
        """STORE Rs, addr - Copy register into a memory word."""
        address = self._check_address(state, instruction.operand)
        return state.write_memory(address, state.get_register(instruction.register))

    def _op_mov(self, state: CPUState, instruction: Instruction) -> CPUState:
        """MOV Rd, Rs - Copy value from source register to destination."""
        value = state.get_register(instruction.source)
        return state.set_register(instruction.register, value)

    # =========================================================================
    # Arithmetic Primitives
    # =========================================================================

    def _op_add(self, state: CPUState, instruction: Instruction) -> CPUState:
        """ADD Rd, Rs - Rd <- Rd + Rs, wrapping on overflow. No flags."""
        result = state.get_register(instruction.register) + state.get_register(instruction.source)
        return state.set_register(instruction.register, result)

    def _op_sub(self, state: CPUState, instruction: Instruction) -> CPUState:
        """SUB Rd, Rs - Rd <- Rd - Rs, wrapping on underflow."""
        result = state.get_register(instruction.register) - state.get_register(instruction.source)
        return state.set_register(instruction.register, result)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @staticmethod
    def _check_address(state: CPUState, address: int) -> int:
        if address >= state.memory_size:
            raise AddressOutOfRange(address, state.memory_size)
        return address


# Shared registry instance; it holds no CPU state and is frozen
_registry: Optional[CPURegistry] = None


def get_registry() -> CPURegistry:
    """Get the shared, frozen CPU registry."""
    global _registry
    if _registry is None:
        _registry = CPURegistry()
    return _registry

"""Micro16CPU: fetch-decode-execute orchestrator.

This module drives the Micro16 execution pipeline:
    MEMORY -> FETCH -> DECODE -> INSTRUCTION -> REGISTRY -> EXECUTE -> STATE

One call to step() is one atomic cycle. The cycle is computed on a new
state object and only adopted when it completes, so a failing cycle
leaves the CPU exactly as it was before the call.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from . import isa
from .assembler import Assembler, disassemble, disassemble_word, format_instruction
from .errors import AddressOutOfRange, AlreadyHalted, CycleLimitExceeded, ExecutionError
from .registry import CPURegistry, get_registry
from .state import DEFAULT_MEMORY_SIZE, CPUState, create_initial_state

logger = logging.getLogger(__name__)


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Captures one fetch-decode-execute cycle for auditability and debugging.

    Attributes:
        cycle: Cycle number (0-indexed)
        address: PC the word was fetched from
        word: Fetched Encoded Word (None if the fetch itself failed)
        text: Disassembled instruction text
        instruction: Decoded instruction (None if fetch or decode failed)
        pre_state: State before execution
        post_state: State after execution (equal to pre_state on error)
        memory_write: (address, value) written by STORE, if any
        error: Error message if execution failed
    """
    cycle: int
    address: int
    word: Optional[int]
    text: str
    instruction: Optional[isa.Instruction]
    pre_state: dict
    post_state: dict
    memory_write: Optional[Tuple[int, int]] = None
    error: Optional[str] = None


class Micro16CPU:
    """Micro16 CPU emulator.

    Every instance owns its registers, memory and trace; instances never
    share mutable state.

    Attributes:
        registry: CPURegistry with verified primitives
        assembler: Assembler used by load_program()
        state: Current CPU state
        trace: List of execution trace entries since the last load/reset
        fault: Execution error that stopped the CPU, until reset()
        labels: Labels of the last program loaded from source
        max_cycles: Default cycle limit for run()
    """

    DEFAULT_MAX_CYCLES = 10000
    DEFAULT_MEMORY_SIZE = DEFAULT_MEMORY_SIZE

    def __init__(
        self,
        memory_size: int = DEFAULT_MEMORY_SIZE,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        registry: Optional[CPURegistry] = None
    ):
        """Initialize the CPU with zeroed memory.

        Args:
            memory_size: Number of 16-bit words of memory
            max_cycles: Maximum cycles run() executes before giving up
            registry: Primitive registry (shared frozen registry by default)
        """
        self.registry = registry or get_registry()
        self.assembler = Assembler()
        self.memory_size = memory_size
        self.max_cycles = max_cycles
        self._image: List[int] = []
        self.state: CPUState = create_initial_state((), memory_size)
        self.trace: List[ExecutionTraceEntry] = []
        self.fault: Optional[ExecutionError] = None
        self.labels: Dict[str, int] = {}

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, words: Sequence[int]) -> None:
        """Replace memory with a program image starting at address 0.

        The rest of memory is zeroed and the CPU is reset. The image is kept
        for later reset() calls.

        Raises:
            ProgramTooLarge: If the image does not fit in memory
            ValueError: If a word is not a 16-bit value
        """
        state = create_initial_state(words, self.memory_size)
        self._image = list(words)
        self.state = state
        self.trace = []
        self.fault = None
        self.labels = {}
        logger.debug("loaded %d words", len(words))

    def load_program(self, source: str) -> List[int]:
        """Assemble source text and load it.

        Returns:
            The assembled words

        Raises:
            AssemblyError: If the source does not assemble; the CPU is unchanged
        """
        words = self.assembler.assemble(source)
        self.load(words)
        self.labels = dict(self.assembler.labels)
        return words

    def reset(self) -> None:
        """Return to the state right after the last load().

        Memory is restored to the loaded image (all zero if nothing was
        loaded), registers, PC and IR are cleared, and any fault is dropped.
        """
        self.state = create_initial_state(self._image, self.memory_size)
        self.trace = []
        self.fault = None

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> ExecutionTraceEntry:
        """Execute a single instruction cycle.

        Performs: FETCH -> ADVANCE PC -> DECODE -> EXECUTE

        Returns:
            ExecutionTraceEntry with full cycle information

        Raises:
            AlreadyHalted: If HALT has been executed; nothing changes
            AddressOutOfRange: If PC or a LOAD/STORE address is outside memory
            InvalidOpcode: If the fetched word has a reserved opcode
            InvalidRegister: If the fetched word names a register above R3

        After AddressOutOfRange, InvalidOpcode or InvalidRegister the CPU is
        faulted: its state is left as before the failing step and every
        further step() raises the same error until reset().
        """
        if self.fault is not None:
            raise self.fault
        if self.state.halted:
            raise AlreadyHalted()

        pre = self.state
        word: Optional[int] = None
        instruction: Optional[isa.Instruction] = None
        try:
            # FETCH
            if pre.pc >= pre.memory_size:
                raise AddressOutOfRange(pre.pc, pre.memory_size)
            word = pre.memory[pre.pc]
            state = pre.set_ir(word).increment_pc()

            # DECODE
            instruction = isa.decode(word)

            # EXECUTE
            post = self.registry.execute(state, instruction)
        except ExecutionError as e:
            self._record_fault(pre, word, e)
            raise

        memory_write = None
        if instruction.mnemonic == "STORE":
            memory_write = (instruction.operand, post.memory[instruction.operand])

        entry = ExecutionTraceEntry(
            cycle=pre.cycle_count,
            address=pre.pc,
            word=word,
            text=format_instruction(instruction),
            instruction=instruction,
            pre_state=pre.snapshot(),
            post_state=post.snapshot(),
            memory_write=memory_write,
        )
        self.state = post
        self.trace.append(entry)
        logger.debug("cycle %d pc=%d %s", entry.cycle, entry.address, entry.text)
        return entry

    def _record_fault(self, pre: CPUState, word: Optional[int], error: ExecutionError) -> None:
        self.fault = error
        snapshot = pre.snapshot()
        self.trace.append(ExecutionTraceEntry(
            cycle=pre.cycle_count,
            address=pre.pc,
            word=word,
            text=disassemble_word(word) if word is not None else "<FETCH OUT OF RANGE>",
            instruction=None,
            pre_state=snapshot,
            post_state=snapshot,
            error=str(error),
        ))
        logger.warning("CPU fault at pc=%d: %s", pre.pc, error)

    def run(self, max_cycles: Optional[int] = None) -> List[ExecutionTraceEntry]:
        """Run the CPU until HALT or the cycle limit.

        Args:
            max_cycles: Override maximum cycles (uses instance default if None)

        Returns:
            Complete execution trace

        Raises:
            CycleLimitExceeded: If the limit is reached before HALT; the CPU
                stays inspectable and can keep stepping
            ExecutionError: Any fault raised by step()
        """
        limit = max_cycles if max_cycles is not None else self.max_cycles

        while not self.state.halted:
            if self.state.cycle_count >= limit:
                logger.warning("stopped after %d cycles without HALT", limit)
                raise CycleLimitExceeded(limit)
            self.step()

        return self.trace

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_register(self, reg) -> int:
        """Get value of a register by name (R0-R3) or code."""
        return self.state.get_register(reg)

    def dump_registers(self) -> Dict[str, int]:
        return self.state.dump_registers()

    def dump_memory(self) -> List[int]:
        return self.state.dump_memory()

    def get_pc(self) -> int:
        return self.state.pc

    def get_ir(self) -> int:
        return self.state.ir

    def get_cycle_count(self) -> int:
        return self.state.cycle_count

    def is_halted(self) -> bool:
        return self.state.halted

    def is_faulted(self) -> bool:
        return self.fault is not None

    def disassemble(self, start: int = 0, length: Optional[int] = None) -> List[Tuple[int, int, str]]:
        """Disassemble memory; by default the whole loaded image."""
        if length is None:
            length = max(len(self._image) - start, 0)
        return disassemble(self.state.memory, start, length)

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("MICRO16 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            print(f"\n[Cycle {entry.cycle}] {status}")
            word = f"{entry.word:016b}" if entry.word is not None else "-"
            print(f"  {entry.address:3}: {word}  {entry.text}")

            pre_regs = entry.pre_state["registers"]
            post_regs = entry.post_state["registers"]
            changes = [
                f"{reg}: {pre_regs[reg]} -> {post_regs[reg]}"
                for reg in sorted(pre_regs)
                if pre_regs[reg] != post_regs[reg]
            ]
            if changes:
                print(f"  Changes: {', '.join(changes)}")
            if entry.memory_write is not None:
                address, value = entry.memory_write
                print(f"  Memory: [{address}] <- {value}")

            pre_pc = entry.pre_state["pc"]
            post_pc = entry.post_state["pc"]
            if post_pc != pre_pc + 1 and not entry.error:
                print(f"  PC: {pre_pc} -> {post_pc}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        print(f"  Registers: {self.dump_registers()}")
        print(f"  PC: {self.get_pc()}")
        print(f"  IR: {self.get_ir():016b}")
        print(f"  Cycles: {self.get_cycle_count()}")
        print(f"  Halted: {self.is_halted()}")
        if self.fault is not None:
            print(f"  Fault: {self.fault}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "registers": self.dump_registers(),
            "pc": self.get_pc(),
            "ir": self.get_ir(),
            "trace_length": len(self.trace),
            "fault": str(self.fault) if self.fault is not None else None,
            "errors": [e.error for e in self.trace if e.error],
        }

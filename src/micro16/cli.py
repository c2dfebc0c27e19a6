"""Micro16 Command Line Interface.

Assemble, run and inspect Micro16 programs.

Usage:
    micro16 assemble programs/add.asm -o program.bin
    micro16 run programs/add.asm --trace
    micro16 run --binary program.bin
    micro16 disasm program.bin
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .assembler import disassemble
from .cpu import Micro16CPU
from .errors import AssemblyError, CycleLimitExceeded, ExecutionError, ImageFormatError, ProgramTooLarge
from .image import read_image, write_image


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="micro16",
        description="Micro16: minimal CPU emulator and assembler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Assemble to a binary image
    micro16 assemble programs/add.asm -o program.bin

    # Run source with full trace output
    micro16 run programs/add.asm --trace

    # Run a binary image, print only non-zero registers
    micro16 run --binary program.bin --quiet

    # Run inline assembly
    micro16 run --inline "LVAL R0, 42; HALT"
        """
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    asm = commands.add_parser("assemble", help="Assemble source into a binary image")
    asm.add_argument("source", type=str, help="Path to assembly program file (.asm)")
    asm.add_argument(
        "--output", "-o",
        type=str,
        default="program.bin",
        help="Output image path. Default: program.bin"
    )

    run = commands.add_parser("run", help="Run a program until HALT")
    run.add_argument("source", type=str, nargs="?", help="Path to assembly program file (.asm)")
    run.add_argument("--binary", "-b", type=str, help="Path to binary image")
    run.add_argument("--inline", "-i", type=str, help="Inline assembly (separate instructions with ;)")
    run.add_argument(
        "--max-cycles",
        type=int,
        default=Micro16CPU.DEFAULT_MAX_CYCLES,
        help="Maximum execution cycles (safety limit). Default: %(default)s"
    )
    run.add_argument(
        "--memory-size",
        type=int,
        default=Micro16CPU.DEFAULT_MEMORY_SIZE,
        help="Memory size in 16-bit words. Default: %(default)s"
    )
    run.add_argument("--trace", "-t", action="store_true", help="Print full execution trace")
    run.add_argument("--quiet", "-q", action="store_true", help="Minimal output (final registers only)")

    dis = commands.add_parser("disasm", help="Disassemble a binary image")
    dis.add_argument("image", type=str, help="Path to binary image")

    return parser


def _report_assembly_error(path: str, error: AssemblyError) -> int:
    where = f"{path}:{error.line_no}" if error.line_no is not None else path
    print(f"{where}: {error.detail}", file=sys.stderr)
    return 2


def cmd_assemble(args) -> int:
    source_path = Path(args.source)
    if not source_path.exists():
        print(f"Error: Program file not found: {args.source}", file=sys.stderr)
        return 1

    cpu = Micro16CPU()
    try:
        words = cpu.assembler.assemble(source_path.read_text())
    except AssemblyError as e:
        return _report_assembly_error(args.source, e)

    write_image(args.output, words)
    print(f"Wrote {len(words)} words to {args.output}")
    return 0


def cmd_run(args) -> int:
    sources = [s for s in (args.source, args.binary, args.inline) if s]
    if len(sources) != 1:
        print("Error: give exactly one of SOURCE, --binary or --inline", file=sys.stderr)
        return 1

    cpu = Micro16CPU(memory_size=args.memory_size, max_cycles=args.max_cycles)

    try:
        if args.binary:
            if not Path(args.binary).exists():
                print(f"Error: Image file not found: {args.binary}", file=sys.stderr)
                return 1
            cpu.load(read_image(args.binary))
            origin = args.binary
        elif args.inline:
            cpu.load_program(args.inline.replace(";", "\n"))
            origin = "<inline>"
        else:
            source_path = Path(args.source)
            if not source_path.exists():
                print(f"Error: Program file not found: {args.source}", file=sys.stderr)
                return 1
            cpu.load_program(source_path.read_text())
            origin = args.source
    except AssemblyError as e:
        return _report_assembly_error(args.source or "<inline>", e)
    except (ImageFormatError, ProgramTooLarge) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Loading program: {origin}")
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    try:
        cpu.run()
    except CycleLimitExceeded as e:
        print(f"Execution stopped: {e}")
    except ExecutionError as e:
        print(f"Execution error: {e}")

    if args.trace:
        cpu.print_trace()
    elif not args.quiet:
        summary = cpu.get_summary()
        print()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        print(f"PC: {summary['pc']}")
        print(f"Registers: {summary['registers']}")
        if summary["fault"]:
            print(f"Fault: {summary['fault']}")
    else:
        regs = cpu.dump_registers()
        for reg in sorted(regs):
            if regs[reg] != 0:
                print(f"{reg}={regs[reg]}")

    return 0 if cpu.is_halted() else 1


def cmd_disasm(args) -> int:
    try:
        words = read_image(args.image)
    except FileNotFoundError:
        print(f"Error: Image file not found: {args.image}", file=sys.stderr)
        return 1
    except ImageFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for address, word, text in disassemble(words):
        print(f"{address:3}: {word:04X}  {text}")
    return 0


COMMANDS = {
    "assemble": cmd_assemble,
    "run": cmd_run,
    "disasm": cmd_disasm,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())

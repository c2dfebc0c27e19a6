"""Micro16 Interactive Demo.

A Gradio web interface for stepping through Micro16 programs.

Usage:
    cd /path/to/micro16
    python demo/gradio_app.py

Features:
    - Write or load assembly programs
    - Assemble and inspect the binary words
    - Step one instruction at a time, run to HALT, or reset
    - Watch registers, PC/IR and memory change
"""

import sys
from pathlib import Path
from typing import Optional, Tuple

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from micro16 import AssemblyError, ExecutionError, Micro16CPU


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Add 5 + 3": """    LVAL R0, 5      ; R0 = 5
    LVAL R1, 3      ; R1 = 3
    ADD R0, R1      ; R0 = R0 + R1
    HALT            ; R0 = 8""",

    "Store / Load": """    LVAL R0, 7      ; value to save
    STORE R0, 100   ; memory[100] = 7
    LOAD R1, 100    ; R1 = memory[100]
    HALT            ; R1 = 7""",

    "Wraparound": """    LVAL R0, 0
    LVAL R1, 1
    SUB R0, R1      ; 0 - 1 wraps to 65535
    HALT""",

    "Counter loop": """    LVAL R0, 0      ; counter
    LVAL R1, 1      ; increment
loop:
    ADD R0, R1      ; counter++
    JMP loop        ; never halts, use Step or a cycle limit""",

    "Custom": ""
}

TRACE_LIMIT = 100


# =============================================================================
# Rendering
# =============================================================================

def render_registers(cpu: Optional[Micro16CPU]) -> str:
    if cpu is None:
        return ""
    lines = ["REGISTERS", "=" * 30]
    for reg, value in sorted(cpu.dump_registers().items()):
        marker = " *" if value != 0 else ""
        lines.append(f"  {reg}: {value:>6}  {value:016b}{marker}")
    lines.append("")
    lines.append("CPU")
    lines.append("-" * 30)
    lines.append(f"  PC: {cpu.get_pc()}")
    lines.append(f"  IR: {cpu.get_ir():016b}")
    lines.append(f"  Cycles: {cpu.get_cycle_count()}")
    lines.append(f"  Halted: {'Yes' if cpu.is_halted() else 'No'}")
    if cpu.fault is not None:
        lines.append(f"  Fault: {cpu.fault}")
    return "\n".join(lines)


def render_memory(cpu: Optional[Micro16CPU]) -> str:
    if cpu is None:
        return ""
    memory = cpu.dump_memory()
    used = max((i for i, word in enumerate(memory) if word), default=-1)
    end = max(used + 1, len(cpu.disassemble()))
    lines = ["MEMORY", "=" * 40]
    listing = {address: text for address, _, text in cpu.disassemble(0, end)}
    for address in range(end):
        pointer = ">" if address == cpu.get_pc() else " "
        lines.append(f"{pointer}{address:3}: {memory[address]:016b}  {listing[address]}")
    return "\n".join(lines)


def render_trace(cpu: Optional[Micro16CPU]) -> str:
    if cpu is None:
        return ""
    lines = ["EXECUTION TRACE", "=" * 60]
    for entry in cpu.trace[-TRACE_LIMIT:]:
        status = "" if not entry.error else f"  ERROR: {entry.error}"
        lines.append(f"[{entry.cycle}] {entry.address:3}: {entry.text}{status}")
        pre_regs = entry.pre_state["registers"]
        post_regs = entry.post_state["registers"]
        changes = [
            f"{reg}: {pre_regs[reg]} -> {post_regs[reg]}"
            for reg in sorted(pre_regs)
            if pre_regs[reg] != post_regs[reg]
        ]
        if changes:
            lines.append(f"      {', '.join(changes)}")
        if entry.memory_write is not None:
            lines.append(f"      [{entry.memory_write[0]}] <- {entry.memory_write[1]}")
    return "\n".join(lines)


def render(cpu: Optional[Micro16CPU], status: str) -> Tuple:
    return cpu, status, render_registers(cpu), render_memory(cpu), render_trace(cpu)


# =============================================================================
# Event Handlers
# =============================================================================

def assemble_program(program: str, max_cycles: int) -> Tuple:
    if not program.strip():
        return render(None, "Error: No program provided")

    cpu = Micro16CPU(max_cycles=int(max_cycles))
    try:
        words = cpu.load_program(program)
    except AssemblyError as e:
        return render(None, f"Assembly error: {e}")
    return render(cpu, f"Assembled {len(words)} words")


def step_cpu(cpu: Optional[Micro16CPU]) -> Tuple:
    if cpu is None:
        return render(None, "Assemble a program first")
    try:
        entry = cpu.step()
    except ExecutionError as e:
        return render(cpu, f"Error: {e}")
    return render(cpu, f"Executed {entry.text}")


def run_cpu(cpu: Optional[Micro16CPU]) -> Tuple:
    if cpu is None:
        return render(None, "Assemble a program first")
    try:
        cpu.run()
    except ExecutionError as e:
        return render(cpu, f"Error: {e}")
    return render(cpu, f"Halted after {cpu.get_cycle_count()} cycles")


def reset_cpu(cpu: Optional[Micro16CPU]) -> Tuple:
    if cpu is None:
        return render(None, "Assemble a program first")
    cpu.reset()
    return render(cpu, "Reset")


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="Micro16 Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # Micro16: Fetch-Decode-Execute Explorer

        Assemble a program, then step through it one instruction at a time.

        **Pipeline**: `fetch -> pc++ -> decode -> execute -> state`
        """)

        cpu_state = gr.State(None)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Assembly Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Add 5 + 3",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Add 5 + 3"],
                    label="Source Code",
                    lines=15,
                    placeholder="Enter assembly code here..."
                )

                max_cycles = gr.Slider(
                    minimum=10,
                    maximum=100000,
                    value=Micro16CPU.DEFAULT_MAX_CYCLES,
                    step=10,
                    label="Max Cycles (Run)"
                )

                with gr.Row():
                    assemble_button = gr.Button("Assemble", variant="primary")
                    step_button = gr.Button("Step")
                    run_button = gr.Button("Run")
                    reset_button = gr.Button("Reset")

                status_output = gr.Textbox(label="Status", lines=1, interactive=False)

            with gr.Column(scale=3):
                with gr.Row():
                    registers_output = gr.Textbox(label="Registers", lines=12, interactive=False)
                    memory_output = gr.Textbox(label="Memory", lines=12, interactive=False)

                trace_output = gr.Textbox(label="Execution Trace", lines=20, interactive=False)

        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Instruction | Opcode | Description |
            |-------------|--------|-------------|
            | `HALT` | 0000 | Stop execution |
            | `LVAL Rd, imm` | 0001 | Rd = imm (0-255) |
            | `LOAD Rd, addr` | 0010 | Rd = memory[addr] |
            | `STORE Rs, addr` | 0011 | memory[addr] = Rs |
            | `ADD Rd, Rs` | 0100 | Rd = Rd + Rs (wraps) |
            | `SUB Rd, Rs` | 0101 | Rd = Rd - Rs (wraps) |
            | `JMP addr/label` | 0110 | pc = addr |
            | `MOV Rd, Rs` | 0111 | Rd = Rs |

            **Word**: `[opcode:4][register:4][operand:8]`
            **Registers**: R0-R3 (16-bit) | **Memory**: 256 words
            **Labels**: Use `name:` to define, reference by name in JMP
            """)

        outputs = [cpu_state, status_output, registers_output, memory_output, trace_output]

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )
        assemble_button.click(fn=assemble_program, inputs=[program_input, max_cycles], outputs=outputs)
        step_button.click(fn=step_cpu, inputs=[cpu_state], outputs=outputs)
        run_button.click(fn=run_cpu, inputs=[cpu_state], outputs=outputs)
        reset_button.click(fn=reset_cpu, inputs=[cpu_state], outputs=outputs)

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )

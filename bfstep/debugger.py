#!/usr/bin/env python3
"""
Brainfuck Step-by-Step Debugger

Runs a program on the step-wise machine and, with --trace, shows the
state of the memory tape, input stream and output after every step.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import MAX_DELAY_MS, MIN_DELAY_MS, load_config
from .errors import BrainfuckError
from .machine import BrainfuckMachine, Snapshot
from .program import DEFAULT_PROGRAM, Program
from .runner import DelayScheduler
from .trace import ExecutionTrace

logger = logging.getLogger(__name__)


def render_program(program: Program, position: Optional[int]) -> str:
    """Program text with the executed position bracketed."""
    if position is None or not 0 <= position < len(program):
        return program.source
    src = program.source
    return f"{src[:position]}[{src[position]}]{src[position + 1:]}"


def render_input(input_data: str, cursor: int) -> str:
    shown = input_data[:cursor]
    if cursor < len(input_data):
        shown += f"[{input_data[cursor]}]" + input_data[cursor + 1:]
    else:
        shown += "[EOF]"
    return shown


def render_memory(snapshot: Snapshot, window: int = 10) -> List[str]:
    """Memory window around the data pointer: values, pointer marker, addresses."""
    tape = snapshot.tape
    pointer = snapshot.data_pointer
    start = max(0, pointer - window // 2)
    end = min(len(tape), start + window)
    # Adjust start if we're near the end
    if end - start < window:
        start = max(0, end - window)

    values = [f"{tape[i]:3d}" for i in range(start, end)]
    markers = [" ^ " if i == pointer else "   " for i in range(start, end)]
    addresses = [f"{i:3d}" for i in range(start, end)]
    return [
        "Memory:   [" + "|".join(values) + "]",
        "Pointer:   " + " ".join(markers),
        "Address:   " + " ".join(addresses),
    ]


def render_state(snapshot: Snapshot, program: Program, input_data: str = "",
                 window: int = 10) -> str:
    lines = []
    if snapshot.position is None:
        lines.append("INITIAL:")
    else:
        lines.append(f"Step {snapshot.step_count}: '{snapshot.instruction}' at position {snapshot.position}")
    lines.append(f"Program:  {render_program(program, snapshot.position)}")
    lines.append(f"Input:    {render_input(input_data, snapshot.input_cursor)}")
    lines.extend(render_memory(snapshot, window))
    lines.append(f"Cell:     {snapshot.cell_value} {snapshot.cell_char!r}")
    if snapshot.output:
        lines.append(f"Output:   {snapshot.output!r}")
    else:
        lines.append("Output:   (empty)")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bfstep", description="Step-by-step Brainfuck machine")
    ap.add_argument("program", nargs="?", default=None,
                    help="Brainfuck source text (default: hello world)")
    ap.add_argument("--input", default=None, help="Input string consumed by ','")
    ap.add_argument("--delay", type=int, default=None,
                    help=f"Delay between traced steps in ms ({MIN_DELAY_MS}-{MAX_DELAY_MS})")
    ap.add_argument("--tape-size", type=int, default=None, help="Number of tape cells (default 30)")
    ap.add_argument("--max-steps", type=int, default=None, help="Stop after this many steps")
    ap.add_argument("--config", default=None, help="YAML config file")
    ap.add_argument("--trace", action="store_true", help="Print machine state after every step")
    ap.add_argument("--window", type=int, default=10, help="Memory cells shown around the pointer")
    ap.add_argument("--stats", action="store_true", help="Print a trace summary at the end")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config).merged(
            tape_size=args.tape_size,
            delay_ms=args.delay,
            max_steps=args.max_steps,
            input_data=args.input,
        )
        program = DEFAULT_PROGRAM if args.program is None else args.program
        machine = BrainfuckMachine.from_config(config, program)
    except (BrainfuckError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    # Snapshots are only kept when a summary was asked for
    trace = ExecutionTrace(machine.program, machine.tape_size) if args.stats else None

    def observe(outcome):
        if trace is not None:
            trace.record(outcome)
        if args.trace:
            print(render_state(outcome.snapshot, machine.program, machine.input_data, args.window))
            print()

    if args.trace:
        print(render_state(machine.snapshot(), machine.program, machine.input_data, args.window))
        print()
        scheduler = DelayScheduler(config.delay_ms, on_step=observe)
    else:
        scheduler = observe

    outcome = None
    try:
        # An empty program has nothing to execute
        if not machine.halted:
            outcome = machine.run(scheduler, max_steps=config.max_steps)
    except BrainfuckError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        machine.cancel()
        print(f"\n⚠️ Interrupted at position {machine.instruction_pointer}", file=sys.stderr)
        return 130

    if args.trace:
        print("🎯 FINAL RESULT:")
    sys.stdout.write(machine.output)
    if machine.output and not machine.output.endswith("\n"):
        sys.stdout.write("\n")

    if trace is not None:
        for key, value in trace.summary().items():
            print(f"  {key}: {value!r}")

    if outcome is not None and not outcome.completed:
        print(f"⚠️ Execution stopped after {machine.step_count} steps (possible infinite loop)",
              file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())

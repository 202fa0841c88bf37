"""
Step-wise Brainfuck machine.

The machine executes one program position per call to step() and hands
back an immutable Snapshot of its state, so an observer can draw the
highlighted source, the tape and the output after every instruction.
Timing belongs to the caller: run() only alternates step() with a
caller-supplied scheduler and checks for cancellation between steps.

Memory model: a fixed tape of 30 byte cells by default. Both the data
pointer and the cell values wrap around.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from .errors import (
    ConcurrentAccessError,
    ConfigError,
    MachineHaltedError,
    UnmatchedBracketError,
)
from .program import DEFAULT_PROGRAM, Program, load_program

logger = logging.getLogger(__name__)

DEFAULT_TAPE_SIZE = 30
CELL_MODULUS = 256


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"


@dataclass(frozen=True)
class Snapshot:
    """Machine state right after a step (or at rest, if position is None)."""
    position: Optional[int]
    instruction: str
    instruction_pointer: int
    data_pointer: int
    tape: Tuple[int, ...]
    output: str
    cell_value: int
    cell_char: str
    input_cursor: int
    loop_depth: int
    step_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["tape"] = list(self.tape)
        return data


@dataclass(frozen=True)
class StepOutcome:
    """Result of a single step: Continued or Completed, plus the snapshot."""
    snapshot: Snapshot
    completed: bool = False

    @property
    def continued(self) -> bool:
        return not self.completed

    def __repr__(self) -> str:
        kind = "Completed" if self.completed else "Continued"
        return f"{kind}(ip={self.snapshot.position}, dp={self.snapshot.data_pointer})"


Scheduler = Callable[[StepOutcome], Any]


class BrainfuckMachine:
    """Owns the tape, pointers, output and loop stack of one program run."""

    def __init__(self, program: Union[str, Program] = DEFAULT_PROGRAM, input_data: str = "",
                 tape_size: int = DEFAULT_TAPE_SIZE):
        if tape_size < 1:
            raise ConfigError(f"tape_size must be at least 1, got {tape_size}")
        self.tape_size = tape_size
        self._program = program if isinstance(program, Program) else load_program(program)
        self._input = input_data

        # Held for the duration of one instruction (or a reset/reload)
        self._lock = threading.Lock()
        self._cancel_requested = threading.Event()
        # Bumped on every reset so a run in progress notices it lost its state
        self._generation = 0

        self._init_state()

    @classmethod
    def from_config(cls, config, program: Union[str, Program] = DEFAULT_PROGRAM) -> "BrainfuckMachine":
        return cls(program, input_data=config.input_data, tape_size=config.tape_size)

    def _init_state(self) -> None:
        self._memory: List[int] = [0] * self.tape_size
        self._pointer = 0
        self._instruction_pointer = 0
        self._output: List[str] = []
        self._loop_stack: List[int] = []
        self._input_index = 0
        self._step_count = 0
        self._last_position: Optional[int] = None
        self._last_instruction = ""

    @contextmanager
    def _exclusive(self, operation: str):
        if not self._lock.acquire(blocking=False):
            raise ConcurrentAccessError(
                f"{operation}() called while another thread is executing a step"
            )
        try:
            yield
        finally:
            self._lock.release()

    # Read-only views

    @property
    def program(self) -> Program:
        return self._program

    @property
    def input_data(self) -> str:
        return self._input

    @property
    def instruction_pointer(self) -> int:
        return self._instruction_pointer

    @property
    def data_pointer(self) -> int:
        return self._pointer

    @property
    def tape(self) -> Tuple[int, ...]:
        return tuple(self._memory)

    @property
    def output(self) -> str:
        return ''.join(self._output)

    @property
    def loop_stack(self) -> Tuple[int, ...]:
        return tuple(self._loop_stack)

    @property
    def input_cursor(self) -> int:
        return self._input_index

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def state(self) -> RunState:
        if self._instruction_pointer >= len(self._program):
            return RunState.HALTED
        if self._step_count == 0:
            return RunState.IDLE
        return RunState.RUNNING

    @property
    def halted(self) -> bool:
        return self.state is RunState.HALTED

    def snapshot(self) -> Snapshot:
        """Current state without executing anything."""
        cell = self._memory[self._pointer]
        return Snapshot(
            position=self._last_position,
            instruction=self._last_instruction,
            instruction_pointer=self._instruction_pointer,
            data_pointer=self._pointer,
            tape=tuple(self._memory),
            output=''.join(self._output),
            cell_value=cell,
            cell_char=chr(cell),
            input_cursor=self._input_index,
            loop_depth=len(self._loop_stack),
            step_count=self._step_count,
        )

    # Control surface

    def reset(self) -> None:
        """Zero the tape, pointers, output and input cursor. Keeps program and input."""
        with self._exclusive("reset"):
            self._generation += 1
            self._init_state()
        logger.debug("Machine reset (program length %d)", len(self._program))

    def load(self, program: Union[str, Program]) -> Program:
        """Replace the program and start over from a fresh state."""
        loaded = program if isinstance(program, Program) else load_program(program)
        with self._exclusive("load"):
            self._program = loaded
            self._generation += 1
            self._init_state()
        logger.info("Loaded new program (%d positions, %d commands)",
                    len(loaded), loaded.instruction_count)
        return loaded

    def set_input(self, input_data: str) -> None:
        """Replace the input string; the run starts over so it is read from the beginning."""
        with self._exclusive("set_input"):
            self._input = input_data
            self._generation += 1
            self._init_state()
        logger.debug("Input replaced (%d characters)", len(input_data))

    def restore_defaults(self) -> None:
        """Default program, empty input, fresh state."""
        loaded = load_program(DEFAULT_PROGRAM)
        with self._exclusive("restore_defaults"):
            self._program = loaded
            self._input = ""
            self._generation += 1
            self._init_state()
        logger.info("Restored default program")

    def cancel(self) -> None:
        """Ask an in-progress run() to stop before its next step."""
        self._cancel_requested.set()
        logger.debug("Cancellation requested at ip=%d", self._instruction_pointer)

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def clear_cancel(self) -> None:
        """Drop a pending cancellation so the next run starts cleanly."""
        self._cancel_requested.clear()

    def step(self) -> StepOutcome:
        """Execute exactly one program position."""
        with self._exclusive("step"):
            return self._execute()

    def _step_if_current(self, generation: int) -> Optional[StepOutcome]:
        with self._exclusive("step"):
            if generation != self._generation:
                return None
            return self._execute()

    def _execute(self) -> StepOutcome:
        program = self._program
        ip = self._instruction_pointer
        if ip >= len(program):
            raise MachineHaltedError(ip, len(program))

        cmd = program[ip]
        cell = self._memory[self._pointer]
        next_ip = ip + 1

        # Faults are detected before anything is written
        if cmd == '>':
            self._pointer = (self._pointer + 1) % self.tape_size

        elif cmd == '<':
            self._pointer = (self._pointer - 1 + self.tape_size) % self.tape_size

        elif cmd == '+':
            self._memory[self._pointer] = (cell + 1) % CELL_MODULUS

        elif cmd == '-':
            self._memory[self._pointer] = (cell - 1 + CELL_MODULUS) % CELL_MODULUS

        elif cmd == '.':
            self._output.append(chr(cell))

        elif cmd == ',':
            if self._input_index < len(self._input):
                self._memory[self._pointer] = ord(self._input[self._input_index]) % CELL_MODULUS
                self._input_index += 1
            else:
                # EOF reads as zero
                self._memory[self._pointer] = 0

        elif cmd == '[':
            if cell == 0:
                target = program.match_for(ip)
                if target is None:
                    raise UnmatchedBracketError('[', ip)
                next_ip = target + 1
            else:
                self._loop_stack.append(ip)

        elif cmd == ']':
            if not self._loop_stack:
                raise UnmatchedBracketError(']', ip)
            if cell != 0:
                # Resume at the first instruction of the loop body; the entry stays pushed
                next_ip = self._loop_stack[-1] + 1
            else:
                self._loop_stack.pop()

        self._instruction_pointer = next_ip
        self._step_count += 1
        self._last_position = ip
        self._last_instruction = cmd

        completed = next_ip >= len(program)
        if completed:
            logger.debug("Program completed after %d steps", self._step_count)
        return StepOutcome(snapshot=self.snapshot(), completed=completed)

    def steps(self, max_steps: Optional[int] = None,
              clear_cancel: bool = True) -> Iterator[StepOutcome]:
        """Yield one outcome per step until completion, cancel(), reset or max_steps.

        With clear_cancel=False a cancel() issued before the first step is
        honoured; the caller is then responsible for clear_cancel().
        """
        if clear_cancel:
            self._cancel_requested.clear()
        return self._iter_steps(self._generation, max_steps)

    def _iter_steps(self, generation: int, max_steps: Optional[int]) -> Iterator[StepOutcome]:
        taken = 0
        while not self._cancel_requested.is_set():
            if max_steps is not None and taken >= max_steps:
                logger.warning("Execution stopped after %d steps (possible infinite loop)", taken)
                return
            outcome = self._step_if_current(generation)
            if outcome is None:
                logger.info("Run abandoned: machine was reset after %d steps", taken)
                return
            taken += 1
            yield outcome
            if outcome.completed:
                return
        logger.info("Run cancelled before ip=%d after %d steps", self._instruction_pointer, taken)

    def run(self, scheduler: Optional[Scheduler] = None,
            max_steps: Optional[int] = None,
            clear_cancel: bool = True) -> Optional[StepOutcome]:
        """Step until completion, handing each outcome to `scheduler`.

        The scheduler is where the caller sleeps, redraws, or calls
        cancel(). Returns the last outcome, or None if nothing ran.
        """
        last = None
        for last in self.steps(max_steps, clear_cancel):
            if scheduler is not None:
                scheduler(last)
        return last

"""Step-wise Brainfuck virtual machine with observable state after every instruction."""

from .config import MachineConfig, load_config
from .errors import (
    BrainfuckError,
    ConcurrentAccessError,
    ConfigError,
    MachineHaltedError,
    StructuralError,
    UnmatchedBracketError,
)
from .machine import (
    CELL_MODULUS,
    DEFAULT_TAPE_SIZE,
    BrainfuckMachine,
    RunState,
    Snapshot,
    StepOutcome,
)
from .program import COMMANDS, DEFAULT_PROGRAM, Program, load_program
from .runner import BackgroundRunner, DelayScheduler
from .trace import ExecutionTrace

__version__ = "0.1.0"

__all__ = [
    "BackgroundRunner",
    "BrainfuckError",
    "BrainfuckMachine",
    "CELL_MODULUS",
    "COMMANDS",
    "ConcurrentAccessError",
    "ConfigError",
    "DEFAULT_PROGRAM",
    "DEFAULT_TAPE_SIZE",
    "DelayScheduler",
    "ExecutionTrace",
    "MachineConfig",
    "MachineHaltedError",
    "Program",
    "RunState",
    "Snapshot",
    "StepOutcome",
    "StructuralError",
    "UnmatchedBracketError",
    "load_config",
    "load_program",
]

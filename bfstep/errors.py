"""
Exception hierarchy for the step-wise Brainfuck machine.

Runtime conditions that the language itself defines (input exhaustion,
comment characters) never raise. Everything here is either a structural
fault in the program or misuse of the machine by its caller.
"""


class BrainfuckError(Exception):
    """Base class for all bfstep errors."""


class StructuralError(BrainfuckError):
    """The program's loop structure cannot be executed as written."""


class UnmatchedBracketError(StructuralError):
    """A bracket that needs a jump target has none."""

    def __init__(self, bracket: str, position: int):
        self.bracket = bracket
        self.position = position
        super().__init__(f"Unmatched '{bracket}' at position {position}")


class MachineHaltedError(BrainfuckError):
    """step() was called after the program already completed."""

    def __init__(self, instruction_pointer: int, program_length: int):
        self.instruction_pointer = instruction_pointer
        self.program_length = program_length
        super().__init__(
            f"Machine is halted (ip={instruction_pointer}, program length={program_length}); "
            "call reset() to run again"
        )


class ConcurrentAccessError(BrainfuckError):
    """Another thread is in the middle of a step."""


class ConfigError(BrainfuckError, ValueError):
    """A configuration value is out of range or malformed."""

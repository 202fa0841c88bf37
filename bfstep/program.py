"""
Program loading for the step-wise Brainfuck machine.

Brainfuck has only 8 commands:
    >   Move the pointer to the right
    <   Move the pointer to the left
    +   Increment the memory cell at the pointer
    -   Decrement the memory cell at the pointer
    .   Output the character signified by the cell at the pointer
    ,   Input a character and store it in the cell at the pointer
    [   Jump past the matching ] if the cell at the pointer is 0
    ]   Jump back to the matching [ if the cell at the pointer is nonzero

All other characters are comments. Unlike a run-to-completion
interpreter, comments are kept in the program: each one still takes a
step so that positions line up with the source text being highlighted.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

COMMANDS = "><+-.,[]"

DEFAULT_PROGRAM = (
    "++++++++++[>+++++++>++++++++++>+++>+<<<<-]>++.>+.+++++++..+++.>++."
    "<<+++++++++++++++.>.+++.------.--------.>+.>."
)


@dataclass(frozen=True)
class Program:
    """An immutable, indexed Brainfuck program."""
    source: str
    jump_table: Dict[int, int] = field(default_factory=dict, compare=False)
    unmatched: Tuple[int, ...] = field(default=(), compare=False)

    def __len__(self) -> int:
        return len(self.source)

    def __getitem__(self, position: int) -> str:
        return self.source[position]

    @property
    def is_balanced(self) -> bool:
        return not self.unmatched

    @property
    def instruction_count(self) -> int:
        """Number of characters that are real commands (not comments)."""
        return sum(1 for c in self.source if c in COMMANDS)

    def match_for(self, position: int) -> Optional[int]:
        """Position of the bracket matching the one at `position`, or None."""
        return self.jump_table.get(position)


def build_jump_table(source: str) -> Tuple[Dict[int, int], Tuple[int, ...]]:
    """Build a table mapping bracket positions for efficient jumping.

    Returns (jump_table, unmatched). Unmatched brackets are reported
    rather than raised; the machine decides what to do if it reaches one.
    """
    jump_table: Dict[int, int] = {}
    stack = []
    stray = []

    for i, cmd in enumerate(source):
        if cmd == '[':
            stack.append(i)
        elif cmd == ']':
            if not stack:
                stray.append(i)
                continue
            start = stack.pop()
            jump_table[start] = i
            jump_table[i] = start

    return jump_table, tuple(sorted(stray + stack))


def load_program(source: str) -> Program:
    """Index `source` into a Program. Never rejects input."""
    jump_table, unmatched = build_jump_table(source)
    if unmatched:
        logger.debug("Loaded program of length %d with unmatched brackets at %s",
                     len(source), list(unmatched))
    else:
        logger.debug("Loaded program of length %d (%d loops)", len(source), len(jump_table) // 2)
    return Program(source=source, jump_table=jump_table, unmatched=unmatched)

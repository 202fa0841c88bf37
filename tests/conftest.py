"""
Pytest Configuration and Fixtures
"""

import pytest

from bfstep.config import ENV_DELAY_MS, ENV_STEP_LIMIT, ENV_TAPE_SIZE
from bfstep.machine import BrainfuckMachine

HELLO_WORLD = (
    "++++++++++[>+++++++>++++++++++>+++>+<<<<-]>++.>+.+++++++..+++.>++."
    "<<+++++++++++++++.>.+++.------.--------.>+.>."
)
SWAP = "+++[>+++++<-]"
ECHO = ">,[>,]<[<]>[.>]"


def run_to_end(machine, limit=100000):
    """Step until completion and return the list of outcomes."""
    outcomes = []
    while len(outcomes) < limit:
        outcome = machine.step()
        outcomes.append(outcome)
        if outcome.completed:
            return outcomes
    raise AssertionError(f"program did not finish within {limit} steps")


@pytest.fixture
def make_machine():
    """Factory for machines with a given program and input."""
    def _make(program, input_data="", tape_size=30):
        return BrainfuckMachine(program, input_data=input_data, tape_size=tape_size)
    return _make


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep BF_* variables from the outer environment out of the tests."""
    for name in (ENV_TAPE_SIZE, ENV_DELAY_MS, ENV_STEP_LIMIT):
        monkeypatch.delenv(name, raising=False)

"""
Tests for execution trace recording
"""

import numpy as np
import pytest

from bfstep.machine import BrainfuckMachine
from bfstep.trace import ExecutionTrace

from conftest import SWAP


@pytest.fixture
def swap_trace():
    machine = BrainfuckMachine(SWAP)
    trace = ExecutionTrace(machine.program, machine.tape_size)
    machine.run(trace)
    return trace


class TestExecutionTrace:
    """Test ExecutionTrace."""

    def test_records_every_step(self, swap_trace):
        assert len(swap_trace) == 31
        assert swap_trace.completed

    def test_tape_history(self, swap_trace):
        history = swap_trace.tape_history()
        assert history.shape == (31, 30)
        assert history.dtype == np.uint8
        assert history[0, 0] == 1
        assert list(history[-1, :3]) == [0, 15, 0]

    def test_trajectories(self, swap_trace):
        assert list(swap_trace.ip_trajectory()[:5]) == [0, 1, 2, 3, 4]
        dp = swap_trace.dp_trajectory()
        assert set(dp.tolist()) == {0, 1}

    def test_position_heat(self, swap_trace):
        heat = swap_trace.position_heat()
        assert heat.shape == (13,)
        assert heat[3] == 1
        assert heat[12] == 3
        assert heat.sum() == 31

    def test_cell_activity(self, swap_trace):
        activity = swap_trace.cell_activity()
        assert activity[0] == 6
        assert activity[1] == 15
        assert activity[2:].sum() == 0

    def test_summary(self, swap_trace):
        summary = swap_trace.summary()
        assert summary["steps"] == 31
        assert summary["completed"] is True
        assert summary["max_loop_depth"] == 1
        assert summary["cells_touched"] == 2
        assert summary["final_data_pointer"] == 0

    def test_empty_trace(self):
        trace = ExecutionTrace()
        assert trace.tape_history().shape == (0, 30)
        assert trace.position_heat().size == 0
        assert trace.cell_activity().sum() == 0
        assert trace.summary()["steps"] == 0

    def test_summary_keys_do_not_depend_on_length(self, swap_trace):
        assert set(ExecutionTrace().summary()) == set(swap_trace.summary())
        assert ExecutionTrace().summary()["final_data_pointer"] == 0

    def test_adopts_tape_size_from_first_snapshot(self):
        machine = BrainfuckMachine(">+", tape_size=4)
        trace = ExecutionTrace()
        machine.run(trace)
        assert trace.tape_history().shape == (2, 4)

    def test_clear(self, swap_trace):
        swap_trace.clear()
        assert len(swap_trace) == 0
        assert not swap_trace.completed

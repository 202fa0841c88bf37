"""
Execution trace recording.

An ExecutionTrace is a scheduler-compatible observer: pass it to
BrainfuckMachine.run() (or as a DelayScheduler's on_step) and it keeps
every snapshot. The numpy views are what a visualization layer plots:
tape history, pointer trajectories, and how often each source position
ran.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .machine import DEFAULT_TAPE_SIZE, Snapshot, StepOutcome
from .program import Program

logger = logging.getLogger(__name__)


class ExecutionTrace:
    def __init__(self, program: Optional[Program] = None, tape_size: int = DEFAULT_TAPE_SIZE):
        self.program = program
        self.tape_size = tape_size
        self.snapshots: List[Snapshot] = []
        self.completed = False

    def __call__(self, outcome: StepOutcome) -> None:
        self.record(outcome)

    def __len__(self) -> int:
        return len(self.snapshots)

    def record(self, outcome: StepOutcome) -> None:
        snap = outcome.snapshot
        if len(snap.tape) != self.tape_size:
            if self.snapshots:
                raise ValueError(f"Snapshot tape has {len(snap.tape)} cells, trace expects {self.tape_size}")
            self.tape_size = len(snap.tape)
        self.snapshots.append(snap)
        self.completed = outcome.completed

    def clear(self) -> None:
        self.snapshots = []
        self.completed = False

    def tape_history(self) -> np.ndarray:
        """(steps, tape_size) uint8 matrix; row i is the tape after step i+1."""
        if not self.snapshots:
            return np.zeros((0, self.tape_size), dtype=np.uint8)
        return np.array([s.tape for s in self.snapshots], dtype=np.uint8)

    def ip_trajectory(self) -> np.ndarray:
        """Executed source position of each step."""
        return np.array([s.position for s in self.snapshots], dtype=np.int64)

    def dp_trajectory(self) -> np.ndarray:
        return np.array([s.data_pointer for s in self.snapshots], dtype=np.int64)

    def position_heat(self) -> np.ndarray:
        """Execution count per source position (a heat map of the program text)."""
        length = len(self.program) if self.program is not None else 0
        traj = self.ip_trajectory()
        if traj.size == 0:
            return np.zeros(length, dtype=np.int64)
        return np.bincount(traj, minlength=length)

    def cell_activity(self) -> np.ndarray:
        """Number of steps that changed each cell's value."""
        history = self.tape_history()
        initial = np.zeros((1, self.tape_size), dtype=np.uint8)
        frames = np.vstack([initial, history])
        return np.count_nonzero(frames[1:] != frames[:-1], axis=0)

    def summary(self) -> Dict[str, Any]:
        if not self.snapshots:
            return {"steps": 0, "completed": False, "output": "", "max_loop_depth": 0,
                    "hottest_position": None, "cells_touched": 0, "final_data_pointer": 0}
        heat = self.position_heat()
        activity = self.cell_activity()
        last = self.snapshots[-1]
        return {
            "steps": len(self.snapshots),
            "completed": self.completed,
            "output": last.output,
            "max_loop_depth": max(s.loop_depth for s in self.snapshots),
            "hottest_position": int(np.argmax(heat)),
            "cells_touched": int(np.count_nonzero(activity)),
            "final_data_pointer": last.data_pointer,
        }

"""
Drivers that replay machine steps at a human-visible pace.

The machine never sleeps. These helpers own the delay between steps and
the thread a UI would run the machine on, so that Run/Stop buttons and
a speed slider can be wired straight to them.
"""

import logging
import threading
from typing import Callable, Optional

from .config import DEFAULT_DELAY_MS, validate_delay
from .errors import BrainfuckError, ConcurrentAccessError
from .machine import BrainfuckMachine, StepOutcome

logger = logging.getLogger(__name__)


class DelayScheduler:
    """Calls an observer after every step, then waits delay_ms before the next one."""

    def __init__(self, delay_ms: int = DEFAULT_DELAY_MS,
                 on_step: Optional[Callable[[StepOutcome], None]] = None):
        self._delay_ms = validate_delay(delay_ms)
        self.on_step = on_step
        self._wake = threading.Event()

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    @delay_ms.setter
    def delay_ms(self, value: int) -> None:
        # Takes effect at the next wait; safe to change while a run is in progress
        self._delay_ms = validate_delay(value)

    def interrupt(self) -> None:
        """Cut the current wait short."""
        self._wake.set()

    def clear_interrupt(self) -> None:
        self._wake.clear()

    def __call__(self, outcome: StepOutcome) -> None:
        if self.on_step is not None:
            self.on_step(outcome)
        if outcome.completed:
            return
        self._wake.wait(self._delay_ms / 1000.0)


class BackgroundRunner:
    """Runs a machine on a worker thread: start() is Run, stop() is Stop."""

    def __init__(self, machine: BrainfuckMachine, delay_ms: int = DEFAULT_DELAY_MS,
                 on_step: Optional[Callable[[StepOutcome], None]] = None,
                 on_finish: Optional[Callable[["BackgroundRunner"], None]] = None,
                 max_steps: Optional[int] = None):
        self.machine = machine
        self.scheduler = DelayScheduler(delay_ms, on_step)
        self.on_finish = on_finish
        self.max_steps = max_steps

        self.last_outcome: Optional[StepOutcome] = None
        self.error: Optional[BrainfuckError] = None

        self._thread: Optional[threading.Thread] = None
        self._stop_requested = threading.Event()
        self.lock = threading.Lock()

    @property
    def delay_ms(self) -> int:
        return self.scheduler.delay_ms

    @delay_ms.setter
    def delay_ms(self, value: int) -> None:
        self.scheduler.delay_ms = value

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def completed(self) -> bool:
        return self.last_outcome is not None and self.last_outcome.completed

    @property
    def current_position(self) -> Optional[int]:
        """Position to highlight, or None once the runner is stopped."""
        if not self.is_running or self.last_outcome is None:
            return None
        return self.last_outcome.snapshot.position

    def start(self) -> None:
        with self.lock:
            if self.is_running:
                raise ConcurrentAccessError("Runner is already running")
            self.error = None
            self._stop_requested.clear()
            self.scheduler.clear_interrupt()
            # Cleared here, not in the worker, so a stop() racing the thread start still counts
            self.machine.clear_cancel()
            self._thread = threading.Thread(target=self._run, name="bfstep-runner", daemon=True)
            self._thread.start()
        logger.debug("Runner started (delay %d ms)", self.scheduler.delay_ms)

    def _observe(self, outcome: StepOutcome) -> None:
        self.last_outcome = outcome
        if self._stop_requested.is_set():
            self.machine.cancel()
            return
        self.scheduler(outcome)
        if self._stop_requested.is_set():
            self.machine.cancel()

    def _run(self) -> None:
        try:
            if not self._stop_requested.is_set():
                self.machine.run(self._observe, max_steps=self.max_steps, clear_cancel=False)
        except BrainfuckError as e:
            logger.error("Run failed: %s", e)
            self.error = e
        finally:
            if self.on_finish is not None:
                self.on_finish(self)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel between steps and wait for the worker to exit."""
        self._stop_requested.set()
        self.machine.cancel()
        self.scheduler.interrupt()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("Runner stopped at ip=%d", self.machine.instruction_pointer)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker exits; True if it did."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

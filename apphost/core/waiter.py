# apphost/core/waiter.py

"""
Waits for a freshly spawned process to show its top-level window.

State machine:

    SPAWNED -> POLLING -> FOUND
                       -> TIMED_OUT
                       -> EXITED_EARLY
                       -> CANCELLED

Each poll is a scheduler callback, so the GUI thread is never blocked
between ticks.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional

from .errors import EmbeddingError, ProcessExitedEarly, WindowTimeoutError
from .native import NativeWindowing
from .process import ManagedProcess


DEFAULT_POLL_INTERVAL_MS = 100
DEFAULT_TIMEOUT_MS = 5000


class WaitState(Enum):
    SPAWNED = auto()
    POLLING = auto()
    FOUND = auto()
    TIMED_OUT = auto()
    EXITED_EARLY = auto()
    CANCELLED = auto()


FINAL_STATES = {WaitState.FOUND, WaitState.TIMED_OUT, WaitState.EXITED_EARLY, WaitState.CANCELLED}


class WindowWaiter:
    """
    Polls for the main window of `process`.

    on_found(hwnd) is called on success; on_failed(error) on timeout or early
    exit (after the process has been killed if it was still alive).
    Cancelling calls neither.
    """

    def __init__(
        self,
        process: ManagedProcess,
        windowing: NativeWindowing,
        scheduler,
        on_found: Callable[[int], None],
        on_failed: Callable[[EmbeddingError], None],
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        input_idle_ms: int = 0,
    ):
        self.logger = logging.getLogger("apphost.WindowWaiter")
        self.process = process
        self.windowing = windowing
        self.scheduler = scheduler
        self.on_found = on_found
        self.on_failed = on_failed
        self.poll_interval_ms = poll_interval_ms
        self.timeout_ms = timeout_ms
        self.input_idle_ms = input_idle_ms

        self.state = WaitState.SPAWNED
        self.hwnd: Optional[int] = None
        self._started_at: Optional[float] = None
        self._pending = None
        self._idle_pending = False

    @property
    def done(self) -> bool:
        return self.state in FINAL_STATES

    @property
    def elapsed_ms(self) -> float:
        if self._started_at is None:
            return 0.0
        return self.scheduler.now_ms() - self._started_at

    def start(self):
        if self.state is not WaitState.SPAWNED:
            raise RuntimeError(f"WindowWaiter already started (state={self.state.name})")

        self.state = WaitState.POLLING
        self._started_at = self.scheduler.now_ms()
        self.logger.debug(f"Waiting for window of PID {self.process.pid} (timeout={self.timeout_ms}ms)")

        self._idle_pending = self.input_idle_ms > 0
        self._tick()

    def cancel(self):
        """Stop waiting. The process is left to the caller."""
        if self.done:
            return
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.state = WaitState.CANCELLED
        self.logger.info(f"Window wait for PID {self.process.pid} cancelled")

    # ------------------------------------------------------------------ #
    # Polling
    # ------------------------------------------------------------------ #

    def _tick(self):
        self._pending = None
        if self.state is not WaitState.POLLING:
            return

        # window lookup waits until the process has settled its input queue
        hwnd = None if self._awaiting_input_idle() else self._query_window()
        alive = self.process.is_alive()

        if hwnd and alive:
            self.hwnd = hwnd
            self.state = WaitState.FOUND
            self.logger.info(f"Found window {hwnd} for PID {self.process.pid} after {self.elapsed_ms:.0f}ms")
            self.on_found(hwnd)
            return

        if not alive:
            self.state = WaitState.EXITED_EARLY
            self._fail(ProcessExitedEarly(
                f"{self.process.name} (PID {self.process.pid}) exited before showing a window"
            ))
            return

        if self.elapsed_ms >= self.timeout_ms:
            self.state = WaitState.TIMED_OUT
            self._fail(WindowTimeoutError(
                f"{self.process.name} (PID {self.process.pid}) showed no window within {self.timeout_ms}ms"
            ))
            return

        self._pending = self.scheduler.call_later(self.poll_interval_ms, self._tick)

    def _awaiting_input_idle(self) -> bool:
        """
        One non-blocking input-idle check per tick, for at most input_idle_ms.
        Errors end the grace period; they never fail the wait.
        """
        if not self._idle_pending:
            return False

        if self.elapsed_ms >= self.input_idle_ms:
            self.logger.debug(f"PID {self.process.pid} not input-idle after {self.input_idle_ms}ms; polling anyway")
            self._idle_pending = False
            return False

        try:
            ready = self.windowing.wait_for_input_idle(self.process.pid, 0)
        except Exception as e:
            self.logger.debug(f"Input-idle check unavailable for PID {self.process.pid}: {e}")
            ready = True

        if ready:
            self._idle_pending = False
        return not ready

    def _query_window(self) -> Optional[int]:
        try:
            return self.windowing.find_main_window(self.process.pid)
        except Exception as e:
            # the process may be going away under us; the next tick decides
            self.logger.debug(f"Window lookup for PID {self.process.pid} failed: {e}")
            return None

    def _fail(self, error: EmbeddingError):
        self.logger.warning(str(error))
        self.process.kill()
        self.on_failed(error)

# apphost/core/scheduler.py

"""
Single-threaded scheduling on the Qt event loop.

Everything that touches containers, sessions or native windows runs as a
callback on the GUI thread. Waiting is a chain of single-shot timers, never
a sleep, so the UI stays responsive and pending work can be cancelled.
"""

from __future__ import annotations

import time
from typing import Callable, Set

from PyQt6 import QtCore


class TimerHandle:
    """Cancellable reference to one scheduled callback."""

    def __init__(self, timer: QtCore.QTimer, owner: "QtScheduler"):
        self._timer = timer
        self._owner = owner

    def cancel(self):
        # a fired timer is already released (and scheduled for deletion)
        if self._timer is not None and self._owner.owns(self._timer):
            self._timer.stop()
            self._owner._release(self._timer)
        self._timer = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._owner.owns(self._timer)


class QtScheduler:
    """
    Timer-driven scheduler bound to the thread that created it
    (the GUI thread in practice).
    """

    def __init__(self, parent: QtCore.QObject | None = None):
        self._parent = parent
        self._timers: Set[QtCore.QTimer] = set()

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)

        def fire():
            self._release(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return TimerHandle(timer, self)

    def call_soon(self, callback: Callable[[], None]) -> TimerHandle:
        return self.call_later(0, callback)

    def cancel_all(self):
        for timer in list(self._timers):
            timer.stop()
            self._release(timer)

    def owns(self, timer: QtCore.QTimer) -> bool:
        return timer in self._timers

    def _release(self, timer: QtCore.QTimer):
        if timer in self._timers:
            self._timers.discard(timer)
            timer.deleteLater()

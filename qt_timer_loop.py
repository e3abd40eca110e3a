"""
runwalk - Qt Timer Loop
Timer loop on the Qt event loop: one single-shot QTimer per scheduled
callback, measured against a QElapsedTimer baseline. Clock ticks, cadence
beats and button handlers all run on the GUI thread.
"""

import itertools
import math
from typing import Callable

from PyQt6.QtCore import QElapsedTimer, QObject, Qt, QTimer

from logging_utils import log_event
from timer_loop import TimerHandle, run_handle


class QtTimerLoop(QObject):
    """call_at/call_later/now over single-shot QTimers. Create after the QApplication."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._elapsed = QElapsedTimer()
        self._elapsed.start()
        self._seq = itertools.count()
        self._timers: dict[TimerHandle, QTimer] = {}
        self.running = False

    def now(self) -> float:
        """Seconds since the loop was created (monotonic)."""
        return self._elapsed.nsecsElapsed() / 1e9

    def start(self) -> None:
        self.running = True
        log_event("INFO", "TimerLoop", "Started")

    def stop(self) -> None:
        """Drop every pending callback"""
        self.running = False
        for handle in list(self._timers):
            handle.cancel()
        log_event("INFO", "TimerLoop", "Stopped")

    def call_at(self, when: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(when, callback, next(self._seq), on_cancel=self._discard)

        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setTimerType(Qt.TimerType.PreciseTimer)
        timer.timeout.connect(lambda: self._fire(handle))
        self._timers[handle] = timer

        # Round up so a callback never runs before its due time
        delay_ms = max(0, math.ceil((when - self.now()) * 1000.0))
        timer.start(delay_ms)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.call_at(self.now() + max(0.0, delay), callback)

    def pending_count(self) -> int:
        return len(self._timers)

    def _fire(self, handle: TimerHandle) -> None:
        self._discard(handle)
        if handle.cancelled:
            return
        run_handle(handle)

    def _discard(self, handle: TimerHandle) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

"""
runwalk - Clock Driver
The one-second tick that drives elapsed time, in the manner of a repeating
QTimer but scheduled through the timer loop so it also runs on virtual time.
"""

from typing import Callable, Optional

from logging_utils import log_event
from timer_loop import TimerHandle


class ClockDriver:
    """Recurring one-second tick on a timer loop.

    Ticks are scheduled against an absolute timeline (origin + n * period)
    so callback latency does not accumulate. Restarting begins a new
    timeline: the first tick after `start` is one full period away.
    """

    def __init__(self, loop, on_tick: Callable[[], None], period_s: float = 1.0):
        self.loop = loop
        self.on_tick = on_tick
        self.period_s = period_s
        self._handle: Optional[TimerHandle] = None
        self._origin = 0.0
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        self._origin = self.loop.now()
        self._ticks = 0
        self._arm()
        log_event("DEBUG", "Clock", "Started", period=self.period_s)

    def stop(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
        log_event("DEBUG", "Clock", "Stopped", ticks=self._ticks)

    def _arm(self) -> None:
        when = self._origin + (self._ticks + 1) * self.period_s
        self._handle = self.loop.call_at(when, self._fire)

    def _fire(self) -> None:
        self._ticks += 1
        # Arm the next tick first so on_tick can stop the clock
        self._arm()
        self.on_tick()

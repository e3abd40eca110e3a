"""
runwalk - Cadence Scheduler
Second, finer timeline next to the one-second clock: plays a beat every
60 / cadence seconds while the guard holds.
"""

from typing import Callable, Optional

from logging_utils import log_event
from timer_loop import TimerHandle


def beat_interval(cadence_spm: int) -> float:
    """Seconds between beats for a steps-per-minute cadence."""
    return 60.0 / cadence_spm


class CadenceTimerHandle:
    """Holds at most one pending beat. Storing a new handle cancels the old one."""

    def __init__(self):
        self._handle: Optional[TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None and self._handle.pending

    @property
    def when(self) -> Optional[float]:
        return self._handle.when if self.active else None

    def replace(self, handle: TimerHandle) -> None:
        self.cancel()
        self._handle = handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def release(self, handle: TimerHandle) -> None:
        """Forget `handle` after it fired, unless it was already superseded."""
        if self._handle is handle:
            self._handle = None


class CadenceScheduler:
    """
    Stateful start()/stop() scheduler for cadence beats.

    Args:
        loop: Timer loop (QtTimerLoop or ManualTimerLoop)
        on_beat: Called once per beat, on the loop thread
        guard: Checked before and after every beat; when False the schedule ends quietly
    """

    def __init__(self, loop, on_beat: Callable[[], None], guard: Callable[[], bool] = lambda: True):
        self.loop = loop
        self.on_beat = on_beat
        self.guard = guard
        self.handle = CadenceTimerHandle()
        self._interval_s: Optional[float] = None
        self.beats_fired = 0

    @property
    def active(self) -> bool:
        return self.handle.active

    @property
    def interval_s(self) -> Optional[float]:
        return self._interval_s if self.active else None

    def start(self, interval_s: float, initial_delay_s: float = 0.0) -> None:
        """(Re)start the beat schedule. Any pending beat is cancelled first."""
        if interval_s <= 0:
            raise ValueError(f"beat interval must be positive, got {interval_s}")
        self._interval_s = interval_s
        self._arm(self.loop.now() + initial_delay_s + interval_s)
        log_event("DEBUG", "Cadence", "Started", interval=f"{interval_s:.3f}s", delay=f"{initial_delay_s:.3f}s")

    def stop(self) -> None:
        """Cancel the pending beat. No beat fires after this returns."""
        was_active = self.handle.active
        self.handle.cancel()
        self._interval_s = None
        if was_active:
            log_event("DEBUG", "Cadence", "Stopped", beats=self.beats_fired)

    def _arm(self, when: float) -> None:
        handle_box: list[TimerHandle] = []

        def fire():
            self._on_timer(handle_box[0])

        handle = self.loop.call_at(when, fire)
        handle_box.append(handle)
        self.handle.replace(handle)

    def _on_timer(self, fired: TimerHandle) -> None:
        self.handle.release(fired)
        # State may have changed while the beat was pending
        if not self.guard():
            self._interval_s = None
            log_event("DEBUG", "Cadence", "Guard closed, beat dropped", beats=self.beats_fired)
            return
        self.beats_fired += 1
        self.on_beat()

        # on_beat may have restarted or stopped us
        if self.handle.active:
            return
        if self._interval_s is None or not self.guard():
            self._interval_s = None
            return
        # Next beat on the same grid, so loop latency does not accumulate
        self._arm(max(fired.when + self._interval_s, self.loop.now()))

"""
runwalk - Timer Loop
Cancellable delayed callbacks shared by the clock and the cadence scheduler.
Every callback and every session command runs on one thread (the Qt GUI
thread in the app, the caller's thread on virtual time), so ticks, beats and
commands never interleave.

`QtTimerLoop` (qt_timer_loop.py) drives the window; `ManualTimerLoop` here
runs on virtual time for tests and `--simulate`.
"""

import heapq
import itertools
from typing import Callable, Optional

from logging_utils import log_event


class TimerHandle:
    """A scheduled callback. Once cancelled it never runs."""

    __slots__ = ("when", "callback", "cancelled", "fired", "_seq", "_on_cancel")

    def __init__(self, when: float, callback: Callable[[], None], seq: int,
                 on_cancel: Optional[Callable[["TimerHandle"], None]] = None):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False
        self._seq = seq
        self._on_cancel = on_cancel

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel is not None and not self.fired:
            self._on_cancel(self)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def __lt__(self, other: "TimerHandle") -> bool:
        return (self.when, self._seq) < (other.when, other._seq)

    def _run(self) -> None:
        self.fired = True
        self.callback()


def run_handle(handle: TimerHandle) -> None:
    """Run a due handle, logging (not raising) callback errors."""
    try:
        handle._run()
    except Exception as e:
        log_event("ERROR", "TimerLoop", "Callback error", callback=getattr(handle.callback, "__qualname__", handle.callback), error=e)


class ManualTimerLoop:
    """
    Deterministic loop on virtual time. Nothing runs until `advance` is called;
    callbacks then fire in time order with `now()` set to their due time.
    """

    def __init__(self, start_time: float = 0.0):
        self._now = start_time
        self._heap: list[TimerHandle] = []
        self._seq = itertools.count()
        self.running = False

    def now(self) -> float:
        return self._now

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        """Drop every pending callback"""
        self.running = False
        for handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def call_at(self, when: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(when, callback, next(self._seq))
        heapq.heappush(self._heap, handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.call_at(self._now + max(0.0, delay), callback)

    def pending_count(self) -> int:
        return sum(1 for h in self._heap if h.pending)

    def _peek(self) -> Optional[TimerHandle]:
        # Drop cancelled handles from the front
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0] if self._heap else None

    def advance(self, seconds: float) -> int:
        """Move virtual time forward, firing every callback due on the way.
        Returns the number of callbacks fired."""
        target = self._now + seconds
        fired = 0
        while True:
            handle = self._peek()
            if handle is None or handle.when > target + 1e-9:
                break
            heapq.heappop(self._heap)
            self._now = max(self._now, handle.when)
            run_handle(handle)
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_seconds: float = 86400.0) -> int:
        """Fire callbacks until none are pending or `max_seconds` of virtual time pass."""
        deadline = self._now + max_seconds
        fired = 0
        while True:
            handle = self._peek()
            if handle is None or handle.when > deadline:
                break
            fired += self.advance(handle.when - self._now)
        return fired

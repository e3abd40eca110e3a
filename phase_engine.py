"""
runwalk - Phase Engine
Pure functions over (SessionState, WorkoutConfig). Elapsed time is the only
stored quantity; phase, cycle and remaining time are always recomputed.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterator, Union

from config import WorkoutConfig


class Phase(IntEnum):
    RUNNING = 0
    WALKING = 1


class SessionStatus(IntEnum):
    IDLE = 0
    RUNNING = 1
    PAUSED = 2
    COMPLETED = 3


@dataclass(frozen=True)
class SessionState:
    elapsed_seconds: int = 0
    running: bool = False
    muted: bool = False
    started: bool = False             # Started at least once since the last reset


@dataclass(frozen=True)
class PhaseChanged:
    phase: Phase


@dataclass(frozen=True)
class CycleChanged:
    cycle: int


@dataclass(frozen=True)
class WorkoutCompleted:
    pass


PhaseEvent = Union[PhaseChanged, CycleChanged, WorkoutCompleted]


def cycle_duration(config: WorkoutConfig) -> int:
    return config.run_seconds + config.walk_seconds


def total_duration(config: WorkoutConfig) -> int:
    return cycle_duration(config) * config.cycles


def time_in_cycle(elapsed: int, config: WorkoutConfig) -> int:
    cd = cycle_duration(config)
    return elapsed % cd if cd > 0 else 0


def is_completed(state: SessionState, config: WorkoutConfig) -> bool:
    return state.started and state.elapsed_seconds >= total_duration(config)


def status_of(state: SessionState, config: WorkoutConfig) -> SessionStatus:
    if state.running:
        return SessionStatus.RUNNING
    if is_completed(state, config):
        return SessionStatus.COMPLETED
    if state.started:
        return SessionStatus.PAUSED
    return SessionStatus.IDLE


def phase_at(elapsed: int, config: WorkoutConfig) -> Phase:
    """Phase for an elapsed time. At or past the end the phase reads RUNNING (reset marker)."""
    if elapsed >= total_duration(config):
        return Phase.RUNNING
    if time_in_cycle(elapsed, config) < config.run_seconds:
        return Phase.RUNNING
    return Phase.WALKING


def cycle_at(state: SessionState, config: WorkoutConfig) -> int:
    """1-based cycle index; 0 before the first start after a reset."""
    if not state.started:
        return 0
    cd = cycle_duration(config)
    if cd <= 0:
        return 1
    return min(state.elapsed_seconds // cd + 1, config.cycles)


def phase_remaining(elapsed: int, config: WorkoutConfig) -> int:
    """Seconds left in the current phase, floored at 0."""
    t = time_in_cycle(elapsed, config)
    if phase_at(elapsed, config) == Phase.WALKING:
        return max(0, config.walk_seconds - (t - config.run_seconds))
    if elapsed >= total_duration(config):
        return 0
    return max(0, config.run_seconds - t)


def progress(elapsed: int, config: WorkoutConfig) -> float:
    """Fraction of the workout done (0.0-1.0)."""
    total = total_duration(config)
    if total <= 0:
        return 0.0
    return min(1.0, elapsed / total)


def _phase_boundaries(start: int, end: int, config: WorkoutConfig) -> Iterator[tuple[int, Phase]]:
    """Yield (time, phase entered) for every boundary in (start, end], in time order.
    Within one cycle a run-start sorts before its walk-start at the same instant."""
    cd = cycle_duration(config)
    if cd <= 0:
        return
    k = start // cd
    while k * cd <= end:
        run_start = k * cd
        walk_start = run_start + config.run_seconds
        if start < run_start <= end and run_start > 0:
            yield run_start, Phase.RUNNING
        if start < walk_start <= end:
            yield walk_start, Phase.WALKING
        k += 1


def _tick_events(state: SessionState, new_state: SessionState, config: WorkoutConfig) -> Iterator[PhaseEvent]:
    if is_completed(new_state, config):
        yield WorkoutCompleted()
        return

    current = phase_at(state.elapsed_seconds, config)
    changed = False
    for _, entered in _phase_boundaries(state.elapsed_seconds, new_state.elapsed_seconds, config):
        if entered != current:
            current = entered
            changed = True
            yield PhaseChanged(entered)

    if changed:
        yield CycleChanged(cycle_at(new_state, config))


def advance(state: SessionState, config: WorkoutConfig) -> tuple[SessionState, tuple[PhaseEvent, ...]]:
    """Apply one one-second tick.

    Returns the new state and the events the tick produced. A state that is
    not running (paused, idle or completed) is returned unchanged.
    """
    if not state.running:
        return state, ()

    total = total_duration(config)
    new_elapsed = state.elapsed_seconds + 1
    if new_elapsed >= total:
        new_state = replace(state, elapsed_seconds=total, running=False, started=True)
    else:
        new_state = replace(state, elapsed_seconds=new_elapsed)

    return new_state, tuple(_tick_events(state, new_state, config))


def start(state: SessionState) -> SessionState:
    return replace(state, running=True, started=True)


def pause(state: SessionState) -> SessionState:
    return replace(state, running=False)


def reset(state: SessionState) -> SessionState:
    """Back to a fresh session. The mute flag is a user preference and survives."""
    return SessionState(muted=state.muted)

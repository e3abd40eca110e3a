"""
runwalk - Session Controller
Owns the session state, wires clock ticks into the phase engine and keeps
the cadence scheduler in step with (running, phase, muted).
"""

from dataclasses import replace
from typing import Callable, Optional

from audio_cues import AudioCueEmitter, COMPLETE_CUE, RUN_CUE, WALK_CUE
from cadence_scheduler import CadenceScheduler, beat_interval
from clock_driver import ClockDriver
from config import Config, WorkoutConfig
from logging_utils import log_event
import phase_engine
from phase_engine import (
    CycleChanged,
    Phase,
    PhaseChanged,
    PhaseEvent,
    SessionState,
    SessionStatus,
    WorkoutCompleted,
)
from transport_wiring import DisplaySnapshot, build_display_snapshot

TEST_AUDIO_GAP_S = 0.3


class SessionController:
    """
    Start/Pause/Reset state machine for one workout session.

    Args:
        config: Application configuration (workout + audio)
        loop: Timer loop shared by the clock and the cadence scheduler
        emitter: Audio cue emitter
        event_callback: Called with every PhaseEvent, on the loop thread
        on_settings_committed: Called with the config after a successful commit
    """

    def __init__(self, config: Config, loop, emitter: AudioCueEmitter,
                 event_callback: Optional[Callable[[PhaseEvent], None]] = None,
                 on_settings_committed: Optional[Callable[[Config], None]] = None):
        self.config = config
        self.config.workout = config.workout.normalized()
        self.loop = loop
        self.emitter = emitter
        self.event_callback = event_callback
        self.on_settings_committed = on_settings_committed

        self._state = SessionState(muted=bool(config.muted))
        self.emitter.muted = self._state.muted

        self.clock = ClockDriver(loop, self._on_tick)
        self.cadence = CadenceScheduler(loop, self._on_beat, guard=self._cadence_wanted)

    # Read-only views

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def workout(self) -> WorkoutConfig:
        return self.config.workout

    @property
    def status(self) -> SessionStatus:
        return phase_engine.status_of(self._state, self.workout)

    @property
    def phase(self) -> Phase:
        return phase_engine.phase_at(self._state.elapsed_seconds, self.workout)

    @property
    def cycle_index(self) -> int:
        return phase_engine.cycle_at(self._state, self.workout)

    def snapshot(self) -> DisplaySnapshot:
        return build_display_snapshot(self._state, self.workout, self.emitter.beat_sound.name)

    # Commands

    def start(self) -> bool:
        """Start a fresh workout or resume a paused one."""
        status = self.status
        if status == SessionStatus.RUNNING:
            return False
        if status == SessionStatus.COMPLETED:
            log_event("INFO", "Session", "Start ignored, workout complete (reset first)")
            return False

        resumed = status == SessionStatus.PAUSED
        self._state = phase_engine.start(self._state)
        self.clock.start()
        self._reconcile_cadence(grace=True)
        log_event("INFO", "Session", "Resumed" if resumed else "Started",
                  elapsed=self._state.elapsed_seconds, phase=self.phase.name, cycle=self.cycle_index)
        return True

    def pause(self) -> bool:
        if not self._state.running:
            return False
        self.clock.stop()
        self._state = phase_engine.pause(self._state)
        self._reconcile_cadence()
        log_event("INFO", "Session", "Paused", elapsed=self._state.elapsed_seconds)
        return True

    def reset(self) -> None:
        """Back to IDLE. Clock and cadence are cancelled before this returns."""
        self.clock.stop()
        self.cadence.stop()
        self._state = phase_engine.reset(self._state)
        log_event("INFO", "Session", "Reset", total=phase_engine.total_duration(self.workout))

    def set_muted(self, muted: bool) -> None:
        if self._state.muted == muted:
            return
        self._state = replace(self._state, muted=muted)
        self.emitter.muted = muted
        self.config.muted = muted
        self._reconcile_cadence()
        log_event("INFO", "Session", "Beats muted" if muted else "Beats unmuted")

    def toggle_mute(self) -> bool:
        self.set_muted(not self._state.muted)
        return self._state.muted

    def select_beat_sound(self, sound_id: str) -> str:
        return self.emitter.select_beat_sound(sound_id).name

    def commit_settings(self, workout: WorkoutConfig) -> bool:
        """Replace the workout. Rejected while running; always resets otherwise."""
        if self._state.running:
            log_event("WARN", "Session", "Settings commit rejected while running")
            return False
        self.config.workout = workout.normalized()
        self.reset()
        log_event("INFO", "Session", "Settings committed",
                  run=self.workout.run_seconds, walk=self.workout.walk_seconds,
                  cycles=self.workout.cycles, cadence=self.workout.cadence_spm)
        if self.on_settings_committed is not None:
            self.on_settings_committed(self.config)
        return True

    def test_audio(self) -> None:
        """Run cue, then walk cue shortly after."""
        self.emitter.emit(RUN_CUE)
        self.loop.call_later(TEST_AUDIO_GAP_S, lambda: self.emitter.emit(WALK_CUE))

    def shutdown(self) -> None:
        self.clock.stop()
        self.cadence.stop()
        self._state = phase_engine.pause(self._state)
        self.emitter.stop()

    # Timer callbacks (same thread as the commands)

    def _on_tick(self) -> None:
        self._state, events = phase_engine.advance(self._state, self.workout)

        entered_running = False
        for event in events:
            if isinstance(event, PhaseChanged):
                entered_running = event.phase == Phase.RUNNING
                self.emitter.emit(RUN_CUE if entered_running else WALK_CUE)
                log_event("INFO", "Phase", f"-> {event.phase.name}", elapsed=self._state.elapsed_seconds)
            elif isinstance(event, CycleChanged):
                log_event("INFO", "Phase", "Cycle", cycle=event.cycle, of=self.workout.cycles)
            elif isinstance(event, WorkoutCompleted):
                self.emitter.emit(COMPLETE_CUE)
                log_event("INFO", "Session", "Workout complete", elapsed=self._state.elapsed_seconds)

            if self.event_callback is not None:
                self.event_callback(event)

        if not self._state.running:
            self.clock.stop()
        if events:
            self._reconcile_cadence(grace=entered_running)

    def _on_beat(self) -> None:
        self.emitter.emit_beat()

    def _cadence_wanted(self) -> bool:
        return self._state.running and self.phase == Phase.RUNNING and not self._state.muted

    def _reconcile_cadence(self, grace: bool = False) -> None:
        if not self._cadence_wanted():
            self.cadence.stop()
            return

        interval = beat_interval(self.workout.cadence_spm)
        if self.cadence.active and self.cadence.interval_s == interval:
            return
        delay = self.config.audio.cadence_grace_ms / 1000.0 if grace else 0.0
        self.cadence.start(interval, initial_delay_s=delay)

from dataclasses import dataclass

from config import WorkoutConfig
from phase_engine import (
    Phase,
    SessionState,
    SessionStatus,
    cycle_at,
    phase_at,
    phase_remaining,
    progress,
    status_of,
    total_duration,
)


PHASE_LABELS = {
    Phase.RUNNING: "Running",
    Phase.WALKING: "Walking",
}

STATUS_LABELS = {
    SessionStatus.IDLE: "Ready",
    SessionStatus.RUNNING: "In progress",
    SessionStatus.PAUSED: "Paused",
    SessionStatus.COMPLETED: "Workout complete",
}


@dataclass(frozen=True)
class DisplaySnapshot:
    status: SessionStatus
    status_text: str
    phase: Phase
    phase_label: str
    phase_remaining: str
    elapsed: str
    total: str
    progress_percent: float
    cycle_index: int
    cycles: int
    cadence_spm: int
    muted: bool
    beat_sound_name: str


@dataclass(frozen=True)
class ControlUiState:
    start_text: str
    start_enabled: bool
    reset_enabled: bool
    settings_enabled: bool
    mute_text: str


def format_time(seconds: int) -> str:
    """mm:ss; minutes are not wrapped at an hour."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def build_display_snapshot(state: SessionState, workout: WorkoutConfig, beat_sound_name: str) -> DisplaySnapshot:
    """Read-only view over session state and the committed workout."""
    status = status_of(state, workout)
    phase = phase_at(state.elapsed_seconds, workout)
    return DisplaySnapshot(
        status=status,
        status_text=STATUS_LABELS[status],
        phase=phase,
        phase_label=PHASE_LABELS[phase],
        phase_remaining=format_time(phase_remaining(state.elapsed_seconds, workout)),
        elapsed=format_time(state.elapsed_seconds),
        total=format_time(total_duration(workout)),
        progress_percent=round(progress(state.elapsed_seconds, workout) * 100.0, 1),
        cycle_index=cycle_at(state, workout),
        cycles=workout.cycles,
        cadence_spm=workout.cadence_spm,
        muted=state.muted,
        beat_sound_name=beat_sound_name,
    )


def play_button_text(is_running: bool) -> str:
    """Return Start button text for running/stopped state."""
    return "⏸ Pause" if is_running else "▶ Start"


def mute_button_text(is_muted: bool) -> str:
    return "🔇 Beats muted" if is_muted else "🔊 Beats on"


def control_ui_state(status: SessionStatus, muted: bool) -> ControlUiState:
    """Return UI state for Start/Pause/Reset/Settings controls based on session status."""
    if status == SessionStatus.RUNNING:
        return ControlUiState(
            start_text=play_button_text(True),
            start_enabled=True,
            reset_enabled=True,
            settings_enabled=False,
            mute_text=mute_button_text(muted),
        )

    if status == SessionStatus.COMPLETED:
        return ControlUiState(
            start_text=play_button_text(False),
            start_enabled=False,
            reset_enabled=True,
            settings_enabled=True,
            mute_text=mute_button_text(muted),
        )

    return ControlUiState(
        start_text=play_button_text(False),
        start_enabled=True,
        reset_enabled=status == SessionStatus.PAUSED,
        settings_enabled=True,
        mute_text=mute_button_text(muted),
    )

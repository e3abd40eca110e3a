from config import Config, WorkoutConfig


def _require_window_attr(window, attr_name: str):
    try:
        return getattr(window, attr_name)
    except AttributeError as exc:
        raise AttributeError(
            f"settings form missing required control: {attr_name}"
        ) from exc


def read_settings_form(window) -> WorkoutConfig:
    """Build a clamped WorkoutConfig from the settings spin boxes."""
    run_spin = _require_window_attr(window, "run_spin")
    walk_spin = _require_window_attr(window, "walk_spin")
    cycles_spin = _require_window_attr(window, "cycles_spin")
    cadence_spin = _require_window_attr(window, "cadence_spin")

    return WorkoutConfig.clamped(
        run_seconds=run_spin.value(),
        walk_seconds=walk_spin.value(),
        cycles=cycles_spin.value(),
        cadence_spm=cadence_spin.value(),
    )


def fill_settings_form(window, workout: WorkoutConfig) -> None:
    """Show the committed workout in the settings spin boxes."""
    _require_window_attr(window, "run_spin").setValue(workout.run_seconds)
    _require_window_attr(window, "walk_spin").setValue(workout.walk_seconds)
    _require_window_attr(window, "cycles_spin").setValue(workout.cycles)
    _require_window_attr(window, "cadence_spin").setValue(workout.cadence_spm)


def persist_runtime_ui_to_config(window, config: Config) -> None:
    """Copy runtime-only UI choices into config on shutdown.
    The workout itself is only changed through an explicit commit."""
    beat_sound_combo = _require_window_attr(window, "beat_sound_combo")
    mute_btn = _require_window_attr(window, "mute_btn")
    sample_path_edit = _require_window_attr(window, "sample_path_edit")

    sound_id = beat_sound_combo.currentData()
    if sound_id:
        config.audio.beat_sound = sound_id
    config.audio.custom_sample_path = sample_path_edit.text().strip()
    config.muted = mute_btn.isChecked()

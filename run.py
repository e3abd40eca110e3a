#!/usr/bin/env python3
"""
runwalk - Run/Walk Interval Timer

Counts run/walk cycles once per second, announces every phase change and
plays cadence beats at the configured steps per minute while running.
"""

import argparse
import cProfile
import sys
import time
from dataclasses import replace


def run_app(app_argv: list[str], log_level: str | None = None) -> int:
    t_pyqt = time.perf_counter()
    from PyQt6.QtWidgets import QApplication
    from logging_utils import log_event, set_log_level

    app = QApplication(app_argv)
    app.setStyle("Fusion")
    log_event("INFO", "Startup", "GUI framework loaded", ms=f"{(time.perf_counter() - t_pyqt) * 1000:.0f}")

    from main import RunWalkWindow

    window = RunWalkWindow()
    if log_level:
        # Command line wins over the saved config level
        set_log_level(log_level)
    window.show()

    return app.exec()


def run_simulation(args) -> int:
    """Run a whole workout on virtual time and log what happens."""
    from audio_cues import AudioCueEmitter
    from config import WorkoutConfig
    from config_persistence import load_config
    from logging_utils import log_event, set_log_level
    from phase_engine import total_duration
    from session_controller import SessionController
    from timer_loop import ManualTimerLoop

    config = load_config()
    set_log_level(args.log_level or config.log_level)
    workout = config.workout
    config.workout = WorkoutConfig.clamped(
        run_seconds=args.run if args.run is not None else workout.run_seconds,
        walk_seconds=args.walk if args.walk is not None else workout.walk_seconds,
        cycles=args.cycles if args.cycles is not None else workout.cycles,
        cadence_spm=args.cadence if args.cadence is not None else workout.cadence_spm,
    )
    # No real-time playback on virtual time
    config.audio = replace(config.audio, enabled=False)

    loop = ManualTimerLoop()
    emitter = AudioCueEmitter(config.audio)
    emitter.start()
    controller = SessionController(config, loop, emitter)
    if args.mute:
        controller.set_muted(True)

    total = total_duration(config.workout)
    log_event("INFO", "Startup", "Simulating workout", total_s=total)
    controller.start()
    loop.run_until_idle(max_seconds=total + 1)

    snap = controller.snapshot()
    log_event("INFO", "Startup", "Simulation finished",
              status=snap.status_text, elapsed=snap.elapsed,
              cycles=f"{snap.cycle_index}/{snap.cycles}", beats=controller.cadence.beats_fired)
    controller.shutdown()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run/walk interval timer with cadence beats")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Run one workout headless on virtual time and log events",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--log-file", default=None, help="Also append log records to this file")
    parser.add_argument("--run", type=int, default=None, help="Run seconds (simulation only)")
    parser.add_argument("--walk", type=int, default=None, help="Walk seconds (simulation only)")
    parser.add_argument("--cycles", type=int, default=None, help="Cycle count (simulation only)")
    parser.add_argument("--cadence", type=int, default=None, help="Steps per minute (simulation only)")
    parser.add_argument("--mute", action="store_true", help="Mute cadence beats (simulation only)")
    args = parser.parse_args()

    if args.log_level:
        from logging_utils import set_log_level
        set_log_level(args.log_level)
    if args.log_file:
        from logging_utils import add_log_file, log_event
        log_event("INFO", "Startup", "Logging to file", path=add_log_file(args.log_file))

    # Keep Qt argument list clean; avoid passing our flags downstream
    app_argv = [sys.argv[0]]

    def target() -> int:
        return run_simulation(args) if args.simulate else run_app(app_argv, args.log_level)

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = target()
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = target()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

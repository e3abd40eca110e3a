# runwalk Configuration
# All default values and constants

import math
from dataclasses import dataclass, field, is_dataclass, replace

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

# Valid ranges for the workout form (inclusive)
CADENCE_MIN_SPM = 60
CADENCE_MAX_SPM = 240

WORKOUT_FIELD_LIMITS = {
    'run_seconds': (1, None),
    'walk_seconds': (1, None),
    'cycles': (1, None),
    'cadence_spm': (CADENCE_MIN_SPM, CADENCE_MAX_SPM),
}

# Keys used by the original single-page app settings object (version 0 files)
LEGACY_WORKOUT_KEYS = {
    'runTime': 'run_seconds',
    'walkTime': 'walk_seconds',
    'cycles': 'cycles',
    'cadence': 'cadence_spm',
}


class ConfigurationError(ValueError):
    """Raised for workout input that cannot be read as a number."""


def parse_int_field(name: str, raw) -> int:
    """Parse a form value into an int. Raises ConfigurationError when impossible."""
    if isinstance(raw, bool):
        raise ConfigurationError(f"{name}: boolean is not a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ConfigurationError(f"{name}: {raw!r} is not a finite number")
        return int(raw)
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        pass
    try:
        return int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigurationError(f"{name}: {raw!r} is not a number") from exc


def clamp_field(name: str, raw) -> int:
    """Clamp one workout field into its valid range.
    Unparsable input falls back to the field minimum."""
    low, high = WORKOUT_FIELD_LIMITS[name]
    try:
        value = parse_int_field(name, raw)
    except ConfigurationError as e:
        log_event("WARN", "Config", "Invalid input, using minimum", field=name, error=e)
        return low

    clamped = max(low, value)
    if high is not None:
        clamped = min(high, clamped)
    if clamped != value:
        log_event("DEBUG", "Config", "Clamped input", field=name, value=value, clamped=clamped)
    return clamped


@dataclass(frozen=True)
class WorkoutConfig:
    """Run/walk interval settings. Replaced wholesale on commit, never edited in place."""
    run_seconds: int = 60             # Length of the running segment
    walk_seconds: int = 30            # Length of the walking segment
    cycles: int = 5                   # Number of run+walk cycles
    cadence_spm: int = 180            # Target steps per minute while running (60-240)

    @classmethod
    def clamped(cls, run_seconds=60, walk_seconds=30, cycles=5, cadence_spm=180) -> "WorkoutConfig":
        """Build a config from raw form input, clamping every field into range."""
        return cls(
            run_seconds=clamp_field('run_seconds', run_seconds),
            walk_seconds=clamp_field('walk_seconds', walk_seconds),
            cycles=clamp_field('cycles', cycles),
            cadence_spm=clamp_field('cadence_spm', cadence_spm),
        )

    def normalized(self) -> "WorkoutConfig":
        """Return an in-range copy of this config."""
        return WorkoutConfig.clamped(
            self.run_seconds, self.walk_seconds, self.cycles, self.cadence_spm
        )

    @property
    def cycle_duration(self) -> int:
        return self.run_seconds + self.walk_seconds

    @property
    def total_duration(self) -> int:
        return self.cycle_duration * self.cycles


@dataclass
class AudioConfig:
    """Audio cue output settings"""
    enabled: bool = True              # False disables every cue (timer keeps working)
    sample_rate: int = 44100
    gain: float = 0.3                 # Output gain for all cues (0.0-1.0)
    # Device index - None means use system default output
    device_index: int | None = None
    beat_sound: str = "beep"          # Id from audio_cues.BEAT_SOUNDS
    custom_sample_path: str = ""      # WAV file used by the "custom" beat sound
    cadence_grace_ms: int = 100       # Delay before arming cadence beats on entering the running phase
    fade_ms: float = 5.0              # Fade in/out on synthesized tones (avoids clicks)


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    workout: WorkoutConfig = field(default_factory=WorkoutConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)

    # Global
    muted: bool = False               # Cadence beats muted at startup
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; frozen nested dataclasses are rebuilt with
    dataclasses.replace."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            if current.__dataclass_params__.frozen:
                known = {k: v for k, v in value.items() if k in current.__dataclass_fields__}
                try:
                    setattr(target, key, replace(current, **known))
                except TypeError as e:
                    log_event("WARN", "Config", "Could not apply section, keeping default", section=key, error=e)
            else:
                apply_dict_to_dataclass(current, value)
            continue

        setattr(target, key, value)


def migrate_config(config: Config, loaded_version, raw_data=None) -> None:
    """Upgrade older config structures to the current schema.
    Maps legacy keys, sanitizes None values, re-clamps ranges and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except Exception:
        version = 0

    if version < 1 and isinstance(raw_data, dict):
        legacy = {new: raw_data[old] for old, new in LEGACY_WORKOUT_KEYS.items() if old in raw_data}
        if legacy:
            config.workout = replace(config.workout, **legacy)
            log_event("INFO", "Config", "Migrated legacy workout keys", keys=",".join(sorted(legacy)))

    if not isinstance(config.workout, WorkoutConfig):
        config.workout = WorkoutConfig()

    # Always clamp the workout into range
    config.workout = config.workout.normalized()

    if getattr(config.audio, 'beat_sound', None) in (None, ""):
        config.audio.beat_sound = "beep"
    if getattr(config.audio, 'custom_sample_path', None) is None:
        config.audio.custom_sample_path = ""
    if getattr(config.audio, 'enabled', True) is None:
        config.audio.enabled = True
    if getattr(config, 'muted', False) is None:
        config.muted = False

    try:
        gain = float(getattr(config.audio, 'gain', 0.3))
    except Exception:
        gain = 0.3
    if not math.isfinite(gain):
        gain = 0.3
    config.audio.gain = max(0.0, min(1.0, gain))

    try:
        grace = int(getattr(config.audio, 'cadence_grace_ms', 100))
    except Exception:
        grace = 100
    config.audio.cadence_grace_ms = max(0, min(1000, grace))

    config.version = CURRENT_CONFIG_VERSION


# Default config instance
DEFAULT_CONFIG = Config()

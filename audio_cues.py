"""
runwalk - Audio Cue Emitter
Transition cues (walk/run/complete) are always audible. Cadence beats are
suppressed while muted. Playback is queued to a worker thread so callers
on the timer loop never block.
"""

import queue
import threading
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from config import AudioConfig
from logging_utils import log_event


class AudioUnavailable(RuntimeError):
    """The audio backend cannot be created or used."""


class SampleLoadFailure(RuntimeError):
    """A custom beat sample could not be read or decoded."""


@dataclass(frozen=True)
class Cue:
    name: str
    frequency_hz: float
    duration_s: float
    mutable: bool = False             # True = silenced by mute


WALK_CUE = Cue("walk", 440.0, 0.2)
RUN_CUE = Cue("run", 880.0, 0.2)
COMPLETE_CUE = Cue("complete", 440.0, 0.3)
BEAT_CUE = Cue("beat", 660.0, 0.05, mutable=True)


@dataclass(frozen=True)
class BeatSound:
    """An entry in the beat sound picker."""
    id: str
    name: str
    frequency_hz: float
    duration_s: float
    uses_sample: bool = False         # Play audio.custom_sample_path instead of a tone


BEAT_SOUNDS = {
    "beep": BeatSound("beep", "Beep", 660.0, 0.05),
    "click": BeatSound("click", "Click", 1320.0, 0.02),
    "tick": BeatSound("tick", "Tick", 2000.0, 0.015),
    "low": BeatSound("low", "Low Tone", 330.0, 0.06),
    "custom": BeatSound("custom", "Custom Sample", 660.0, 0.05, uses_sample=True),
}
DEFAULT_BEAT_SOUND = "beep"


def synthesize_tone(frequency_hz: float, duration_s: float, sample_rate: int,
                    gain: float = 1.0, fade_ms: float = 5.0) -> np.ndarray:
    """Mono float32 sine tone with a short linear fade at both ends."""
    n = max(1, int(round(duration_s * sample_rate)))
    t = np.arange(n, dtype=np.float32) / np.float32(sample_rate)
    tone = np.sin(2.0 * np.pi * frequency_hz * t).astype(np.float32)

    fade = min(int(sample_rate * fade_ms / 1000.0), n // 2)
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        tone[:fade] *= ramp
        tone[-fade:] *= ramp[::-1]
    return tone * np.float32(gain)


def load_wav_sample(path, target_rate: int) -> np.ndarray:
    """Decode a PCM WAV file into mono float32 at `target_rate`.
    Raises SampleLoadFailure for anything that cannot be played."""
    try:
        with wave.open(str(path), "rb") as wf:
            n_channels = wf.getnchannels()
            sampwidth = wf.getsampwidth()
            src_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (OSError, EOFError, wave.Error) as e:
        raise SampleLoadFailure(f"{path}: {e}") from e

    if sampwidth == 1:
        data = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif sampwidth == 2:
        data = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif sampwidth == 4:
        data = np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise SampleLoadFailure(f"{path}: unsupported sample width {sampwidth * 8} bit")

    if n_channels > 1:
        usable = len(data) - len(data) % n_channels
        data = data[:usable].reshape(-1, n_channels).mean(axis=1)
    if len(data) == 0:
        raise SampleLoadFailure(f"{path}: no audio frames")

    if src_rate != target_rate and src_rate > 0:
        n_out = max(1, int(round(len(data) * target_rate / src_rate)))
        x_old = np.linspace(0.0, 1.0, len(data), endpoint=False)
        x_new = np.linspace(0.0, 1.0, n_out, endpoint=False)
        data = np.interp(x_new, x_old, data)

    return data.astype(np.float32)


class SoundDeviceBackend:
    """Non-blocking playback through sounddevice (PortAudio)."""

    def __init__(self, sample_rate: int, device_index: Optional[int] = None):
        self.sample_rate = sample_rate
        self.device_index = device_index
        try:
            import sounddevice as sd
            sd.check_output_settings(device=device_index, channels=1,
                                     dtype="float32", samplerate=sample_rate)
        except Exception as e:
            raise AudioUnavailable(str(e)) from e
        self._sd = sd

    def play(self, samples: np.ndarray) -> None:
        try:
            self._sd.play(samples, self.sample_rate, device=self.device_index)
        except Exception as e:
            raise AudioUnavailable(str(e)) from e

    def close(self) -> None:
        try:
            self._sd.stop()
        except Exception as e:
            log_event("DEBUG", "Audio", "Stop on close failed", error=e)


class AudioCueEmitter:
    """
    Queue-backed cue player.

    Args:
        config: Audio settings
        backend_factory: Called with (sample_rate, device_index); raises AudioUnavailable
    """

    def __init__(self, config: AudioConfig,
                 backend_factory: Callable[[int, Optional[int]], object] = SoundDeviceBackend):
        self.config = config
        self.backend_factory = backend_factory
        self.backend = None
        self.available = False
        self.muted = False

        self.beat_sound = BEAT_SOUNDS.get(config.beat_sound, BEAT_SOUNDS[DEFAULT_BEAT_SOUND])
        self._sample_cache: dict[str, np.ndarray] = {}
        self._tone_cache: dict[tuple, np.ndarray] = {}
        self._sample_failures = 0

        # Cue queue (thread-safe); None is the shutdown sentinel
        self.cue_queue: queue.Queue[Optional[Cue]] = queue.Queue()
        self.running = False
        self.worker_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Open the backend and start the playback worker"""
        if self.running:
            return

        self.available = False
        if self.config.enabled:
            try:
                self.backend = self.backend_factory(self.config.sample_rate, self.config.device_index)
                self.available = True
                log_event("INFO", "Audio", "Output ready", sample_rate=self.config.sample_rate, device=self.config.device_index)
            except AudioUnavailable as e:
                log_event("WARN", "Audio", "Audio unavailable, cues disabled", error=e)
                self.backend = None
        else:
            log_event("INFO", "Audio", "Audio disabled by config")

        self.running = True
        self.worker_thread = threading.Thread(target=self._worker_loop, name="runwalk-audio", daemon=True)
        self.worker_thread.start()

    def stop(self) -> None:
        """Play out queued cues, then stop the worker and close the backend"""
        if not self.running:
            return
        self.running = False
        self.cue_queue.put(None)
        if self.worker_thread is not None and self.worker_thread is not threading.current_thread():
            self.worker_thread.join(timeout=2.0)
        self.worker_thread = None

        if self.backend is not None:
            self.backend.close()
            self.backend = None
        self.available = False
        log_event("INFO", "Audio", "Stopped")

    def emit(self, cue: Cue) -> bool:
        """Queue a cue. Returns False when the cue was dropped (muted beat, no audio)."""
        if cue.mutable and self.muted:
            return False
        if not (self.running and self.available):
            return False
        self.cue_queue.put_nowait(cue)
        return True

    def emit_beat(self) -> bool:
        return self.emit(BEAT_CUE)

    def select_beat_sound(self, sound_id: str) -> BeatSound:
        sound = BEAT_SOUNDS.get(sound_id)
        if sound is None:
            log_event("WARN", "Audio", "Unknown beat sound, using default", sound=sound_id)
            sound = BEAT_SOUNDS[DEFAULT_BEAT_SOUND]
        self.beat_sound = sound
        self.config.beat_sound = sound.id
        self._sample_failures = 0
        log_event("INFO", "Audio", "Beat sound selected", sound=sound.id)
        return sound

    def render(self, cue: Cue) -> np.ndarray:
        """Samples for a cue at the configured rate and gain."""
        if cue.name == BEAT_CUE.name:
            sound = self.beat_sound
            if sound.uses_sample:
                try:
                    return self._load_sample(self.config.custom_sample_path) * np.float32(self.config.gain)
                except SampleLoadFailure as e:
                    self._sample_failures += 1
                    level = "WARN" if self._sample_failures == 1 else "DEBUG"
                    log_event(level, "Audio", "Sample load failed, using tone", error=e, failures=self._sample_failures)
            return self._tone(sound.frequency_hz, sound.duration_s)
        return self._tone(cue.frequency_hz, cue.duration_s)

    def _tone(self, frequency_hz: float, duration_s: float) -> np.ndarray:
        key = (frequency_hz, duration_s, self.config.sample_rate, self.config.gain, self.config.fade_ms)
        tone = self._tone_cache.get(key)
        if tone is None:
            tone = synthesize_tone(frequency_hz, duration_s, self.config.sample_rate,
                                   gain=self.config.gain, fade_ms=self.config.fade_ms)
            self._tone_cache[key] = tone
        return tone

    def _load_sample(self, path: str) -> np.ndarray:
        if not path:
            raise SampleLoadFailure("no custom sample path configured")
        key = str(Path(path).expanduser())
        cached = self._sample_cache.get(key)
        if cached is not None:
            return cached
        data = load_wav_sample(key, self.config.sample_rate)
        self._sample_cache[key] = data
        log_event("INFO", "Audio", "Sample loaded", path=key, frames=len(data))
        return data

    def _worker_loop(self) -> None:
        """Background worker that plays queued cues"""
        while True:
            cue = self.cue_queue.get()
            if cue is None:
                break
            if not self.available or self.backend is None:
                continue
            try:
                self.backend.play(self.render(cue))
            except AudioUnavailable as e:
                log_event("WARN", "Audio", "Playback failed, cues disabled", cue=cue.name, error=e)
                self.available = False
            except Exception as e:
                log_event("ERROR", "Audio", "Worker error", cue=cue.name, error=e)

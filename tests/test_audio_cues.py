import tempfile
import unittest
import wave
from pathlib import Path

import numpy as np

from audio_cues import (
    BEAT_CUE,
    COMPLETE_CUE,
    RUN_CUE,
    WALK_CUE,
    AudioCueEmitter,
    AudioUnavailable,
    SampleLoadFailure,
    load_wav_sample,
    synthesize_tone,
)
from config import AudioConfig


def _write_wav(path, samples, rate=22050, channels=1):
    data = (np.asarray(samples, dtype=np.float32) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(data.tobytes())


class DummyBackend:
    instances = []

    def __init__(self, sample_rate, device_index=None):
        self.sample_rate = sample_rate
        self.device_index = device_index
        self.played = []
        self.closed = False
        DummyBackend.instances.append(self)

    def play(self, samples):
        self.played.append(samples)

    def close(self):
        self.closed = True


class BrokenBackend(DummyBackend):
    def play(self, samples):
        self.played.append(samples)
        raise AudioUnavailable("device unplugged")


def _no_audio(sample_rate, device_index=None):
    raise AudioUnavailable("no output device")


class TestToneAndSamples(unittest.TestCase):
    def test_synthesize_tone_shape_and_fade(self):
        tone = synthesize_tone(440.0, 0.2, 44100, gain=0.3, fade_ms=5.0)
        self.assertEqual(tone.dtype, np.float32)
        self.assertEqual(len(tone), 8820)
        self.assertLessEqual(float(np.max(np.abs(tone))), 0.3 + 1e-6)
        self.assertEqual(float(tone[0]), 0.0)
        self.assertAlmostEqual(float(tone[-1]), 0.0, places=6)

    def test_load_wav_resamples_to_target_rate(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "beat.wav"
            _write_wav(path, np.linspace(-0.5, 0.5, 1000), rate=22050)
            data = load_wav_sample(path, 44100)
        self.assertEqual(data.dtype, np.float32)
        self.assertEqual(len(data), 2000)
        self.assertLessEqual(float(np.max(np.abs(data))), 0.51)

    def test_load_wav_downmixes_stereo(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "stereo.wav"
            frames = np.array([0.5, -0.5] * 100, dtype=np.float32)
            _write_wav(path, frames, rate=44100, channels=2)
            data = load_wav_sample(path, 44100)
        self.assertEqual(len(data), 100)
        self.assertTrue(np.allclose(data, 0.0, atol=1e-3))

    def test_load_missing_or_garbage_file_fails(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(SampleLoadFailure):
                load_wav_sample(Path(tmpdir) / "missing.wav", 44100)

            garbage = Path(tmpdir) / "garbage.wav"
            garbage.write_bytes(b"definitely not a wav file")
            with self.assertRaises(SampleLoadFailure):
                load_wav_sample(garbage, 44100)


class TestAudioCueEmitter(unittest.TestCase):
    def setUp(self):
        DummyBackend.instances = []

    def test_cues_reach_backend(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=DummyBackend)
        emitter.start()
        self.assertTrue(emitter.available)
        self.assertTrue(emitter.emit(RUN_CUE))
        self.assertTrue(emitter.emit(WALK_CUE))
        self.assertTrue(emitter.emit_beat())
        emitter.stop()

        backend = DummyBackend.instances[0]
        self.assertEqual(len(backend.played), 3)
        self.assertEqual(len(backend.played[0]), int(round(RUN_CUE.duration_s * 44100)))
        self.assertTrue(backend.closed)
        self.assertFalse(emitter.running)

    def test_muted_drops_beats_but_not_transitions(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=DummyBackend)
        emitter.start()
        emitter.muted = True
        self.assertFalse(emitter.emit_beat())
        self.assertTrue(emitter.emit(COMPLETE_CUE))
        emitter.stop()
        self.assertEqual(len(DummyBackend.instances[0].played), 1)

    def test_unavailable_audio_disables_playback(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=_no_audio)
        emitter.start()
        self.assertFalse(emitter.available)
        self.assertFalse(emitter.emit(RUN_CUE))
        self.assertFalse(emitter.emit_beat())
        emitter.stop()

    def test_disabled_config_skips_backend(self):
        emitter = AudioCueEmitter(AudioConfig(enabled=False), backend_factory=DummyBackend)
        emitter.start()
        self.assertFalse(emitter.available)
        self.assertEqual(DummyBackend.instances, [])
        emitter.stop()

    def test_playback_failure_disables_audio(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=BrokenBackend)
        emitter.start()
        self.assertTrue(emitter.emit(RUN_CUE))
        emitter.emit(WALK_CUE)
        emitter.stop()
        # Only the first cue reaches the device; later ones are skipped
        self.assertEqual(len(DummyBackend.instances[0].played), 1)
        self.assertTrue(DummyBackend.instances[0].closed)

    def test_emit_before_start_is_dropped(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=DummyBackend)
        self.assertFalse(emitter.emit(RUN_CUE))

    def test_unknown_beat_sound_falls_back_to_beep(self):
        config = AudioConfig(beat_sound="cowbell")
        emitter = AudioCueEmitter(config, backend_factory=DummyBackend)
        self.assertEqual(emitter.beat_sound.id, "beep")
        self.assertEqual(emitter.select_beat_sound("tick").id, "tick")
        self.assertEqual(config.beat_sound, "tick")
        self.assertEqual(emitter.select_beat_sound("cowbell").id, "beep")

    def test_beat_renders_selected_tone(self):
        emitter = AudioCueEmitter(AudioConfig(), backend_factory=DummyBackend)
        emitter.select_beat_sound("click")
        samples = emitter.render(BEAT_CUE)
        self.assertEqual(len(samples), int(round(0.02 * 44100)))

    def test_custom_sample_falls_back_then_loads_and_caches(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "custom.wav"
            config = AudioConfig(custom_sample_path=str(path))
            emitter = AudioCueEmitter(config, backend_factory=DummyBackend)
            emitter.select_beat_sound("custom")

            # Missing file: synthesized beep instead
            fallback = emitter.render(BEAT_CUE)
            self.assertEqual(len(fallback), int(round(0.05 * 44100)))

            # Retried on the next beat once the file exists
            _write_wav(path, np.full(441, 0.25), rate=44100)
            loaded = emitter.render(BEAT_CUE)
            self.assertEqual(len(loaded), 441)
            self.assertAlmostEqual(float(loaded[0]), 0.25 * config.gain, places=3)

            path.unlink()
            cached = emitter.render(BEAT_CUE)
            self.assertEqual(len(cached), 441)

    def test_custom_sample_without_path_uses_tone(self):
        emitter = AudioCueEmitter(AudioConfig(custom_sample_path=""), backend_factory=DummyBackend)
        emitter.select_beat_sound("custom")
        self.assertEqual(len(emitter.render(BEAT_CUE)), int(round(0.05 * 44100)))


if __name__ == "__main__":
    unittest.main()

#!/usr/bin/env python3
"""List audio output devices usable for audio.device_index"""
import sounddevice as sd

print("Available Output Devices:\n")
devs = sd.query_devices()
try:
    default_out = sd.default.device[1]
except (TypeError, IndexError):
    default_out = None
for i, d in enumerate(devs):
    out_ch = d['max_output_channels']
    if out_ch < 1:
        continue
    sr = d['default_samplerate']
    marker = " (default)" if i == default_out else ""
    print(f"[{i}] {d['name']}{marker}")
    print(f"    Output: {out_ch} channels")
    print(f"    Default SR: {sr} Hz")
    print()

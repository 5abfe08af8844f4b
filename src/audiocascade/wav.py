"""Canonical PCM WAV container: build, validate, and synthesize test tones."""

from __future__ import annotations

import io
import wave

import numpy as np

from audiocascade.constants import DEFAULT_SAMPLE_RATE, SAMPLE_WIDTH

HEADER_SIZE = 44

# (offset, marker) pairs that every canonical PCM file carries
_MARKERS = (
    (0, b"RIFF"),
    (8, b"WAVE"),
    (12, b"fmt "),
    (36, b"data"),
)


def encode_wav(samples: np.ndarray, sample_rate: int = DEFAULT_SAMPLE_RATE, channels: int = 1) -> bytes:
    """Wrap int16 samples in a 44-byte canonical PCM header."""
    return wrap_pcm(np.asarray(samples, dtype="<i2").tobytes(), sample_rate, channels)


def wrap_pcm(data: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE, channels: int = 1) -> bytes:
    """Wrap headerless s16le bytes in a canonical PCM header.

    A trailing partial frame, as left by a stream cut mid-read, is dropped.
    """
    frame_size = SAMPLE_WIDTH * channels
    data = bytes(data[:len(data) - len(data) % frame_size])
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(data)
    return buf.getvalue()


def is_valid_wav(data: bytes | None) -> bool:
    """Check the four fixed-offset markers of a canonical PCM file."""
    if not data or len(data) < HEADER_SIZE:
        return False
    return all(data[off:off + len(marker)] == marker for off, marker in _MARKERS)


def to_int16(audio: np.ndarray) -> np.ndarray:
    """Convert float audio in [-1.0, 1.0] to int16, clamping out-of-range values."""
    scaled = np.round(np.asarray(audio, dtype=np.float64) * 32767.0)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def synth_tone(
    duration: float,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    freq: float = 440.0,
    mod_freq: float = 0.5,
    amplitude: float = 0.3,
) -> np.ndarray:
    """Generate a sine tone under slow amplitude modulation as int16 samples."""
    t = np.arange(int(duration * sample_rate)) / sample_rate
    envelope = 0.5 * (1.0 + np.sin(2 * np.pi * mod_freq * t))
    return to_int16(amplitude * envelope * np.sin(2 * np.pi * freq * t))


def synth_wav(duration: float, sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
    """A mono 16-bit canonical PCM file containing a modulated tone."""
    return encode_wav(synth_tone(duration, sample_rate), sample_rate, channels=1)

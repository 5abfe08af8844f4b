"""Tests for the canonical PCM container helpers."""

import io
import struct
import wave

import numpy as np
import pytest

from audiocascade.wav import (
    HEADER_SIZE,
    encode_wav,
    is_valid_wav,
    synth_tone,
    synth_wav,
    to_int16,
    wrap_pcm,
)


class TestEncodeWav:
    def test_header_layout(self):
        samples = np.array([0, 1000, -1000, 32767], dtype=np.int16)
        data = encode_wav(samples, sample_rate=16000)

        assert len(data) == HEADER_SIZE + samples.nbytes
        assert data[0:4] == b"RIFF"
        assert struct.unpack("<I", data[4:8])[0] == len(data) - 8
        assert data[8:12] == b"WAVE"
        assert data[12:16] == b"fmt "
        fmt_size, tag, channels, rate, byte_rate, align, bits = struct.unpack("<IHHIIHH", data[16:36])
        assert fmt_size == 16
        assert tag == 1
        assert channels == 1
        assert rate == 16000
        assert byte_rate == 32000
        assert align == 2
        assert bits == 16
        assert data[36:40] == b"data"
        assert struct.unpack("<I", data[40:44])[0] == samples.nbytes

    def test_samples_little_endian(self):
        data = encode_wav(np.array([1, -2], dtype=np.int16))
        assert data[HEADER_SIZE:] == b"\x01\x00\xfe\xff"

    def test_wrap_pcm_describes_stream_format(self):
        data = wrap_pcm(b"\x01\x00\x02\x00", sample_rate=44100, channels=2)
        assert is_valid_wav(data)
        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getframerate() == 44100
            assert wf.getnchannels() == 2
            assert wf.readframes(1) == b"\x01\x00\x02\x00"

    def test_wrap_pcm_drops_partial_frame(self):
        data = wrap_pcm(b"\x01\x00\x02")
        assert data[HEADER_SIZE:] == b"\x01\x00"
        assert struct.unpack("<I", data[40:44])[0] == 2


class TestIsValidWav:
    def test_accepts_encoded(self):
        assert is_valid_wav(encode_wav(np.zeros(10, dtype=np.int16)))

    @pytest.mark.parametrize("offset", [0, 8, 12, 36])
    def test_rejects_corrupted_marker(self, offset):
        data = bytearray(encode_wav(np.zeros(10, dtype=np.int16)))
        data[offset] = ord("X")
        assert not is_valid_wav(bytes(data))

    def test_rejects_short_and_empty(self):
        assert not is_valid_wav(b"")
        assert not is_valid_wav(None)
        assert not is_valid_wav(b"RIFF")

    def test_rejects_raw_pcm(self):
        assert not is_valid_wav(np.ones(100, dtype=np.int16).tobytes())


class TestSynth:
    def test_to_int16_clamps(self):
        out = to_int16(np.array([2.0, -2.0, 0.0, 1.0, -1.0]))
        assert out.dtype == np.int16
        assert list(out) == [32767, -32768, 0, 32767, -32767]

    def test_tone_length_and_modulation(self):
        samples = synth_tone(2.0, sample_rate=16000)
        assert len(samples) == 32000
        first_half = np.abs(samples[:16000].astype(np.int32)).max()
        assert first_half > 0
        # Envelope dips toward zero once per modulation period
        envelope_low = np.abs(samples[23000:25000].astype(np.int32)).max()
        assert envelope_low < first_half

    def test_synth_wav_readable(self):
        data = synth_wav(4.0)
        assert is_valid_wav(data)
        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getframerate() == 16000
            assert wf.getsampwidth() == 2
            assert wf.getnframes() == 64000

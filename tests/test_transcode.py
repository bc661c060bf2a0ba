"""Unit tests for decoding compressed recordings and re-encoding as WAV."""

import subprocess
from unittest.mock import patch

import numpy as np
import pytest
import soundfile as sf

from stream_recorder.audio.transcode import audio_to_wav, check_ffmpeg, decode_audio
from stream_recorder.audio.wav import read_wav_header
from stream_recorder.errors import DecodeError


class TestCheckFfmpeg:
    """Tests for check_ffmpeg."""

    def test_found_on_path(self):
        """Test lookup through PATH."""
        with patch("stream_recorder.audio.transcode.shutil.which", return_value="/usr/bin/ffmpeg"):
            assert check_ffmpeg() == "/usr/bin/ffmpeg"

    def test_not_found(self):
        """Test that a missing ffmpeg returns None."""
        with (
            patch("stream_recorder.audio.transcode.shutil.which", return_value=None),
            patch("stream_recorder.audio.transcode.os.path.exists", return_value=False),
        ):
            assert check_ffmpeg() is None


class TestDecodeAudio:
    """Tests for decode_audio with a faked ffmpeg."""

    def test_decodes_via_soundfile(self):
        """Test that ffmpeg output is read back as float samples."""
        expected = np.linspace(-0.5, 0.5, 200, dtype=np.float32).reshape(100, 2)

        def fake_ffmpeg(cmd, **kwargs):
            sf.write(cmd[-1], expected, 24000, subtype="FLOAT")
            return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")

        with patch("stream_recorder.audio.transcode.subprocess.run", side_effect=fake_ffmpeg):
            samples, rate = decode_audio(b"webm-data", ffmpeg_path="ffmpeg")

        assert rate == 24000
        assert samples.shape == (100, 2)
        assert np.allclose(samples, expected)

    def test_ffmpeg_failure(self):
        """Test that an ffmpeg error becomes DecodeError."""
        error = subprocess.CalledProcessError(1, ["ffmpeg"], stderr=b"Invalid data found")

        with patch("stream_recorder.audio.transcode.subprocess.run", side_effect=error):
            with pytest.raises(DecodeError, match="Invalid data"):
                decode_audio(b"garbage", ffmpeg_path="ffmpeg")

    def test_missing_ffmpeg(self):
        """Test that decoding without ffmpeg raises DecodeError."""
        with patch("stream_recorder.audio.transcode.check_ffmpeg", return_value=None):
            with pytest.raises(DecodeError, match="ffmpeg not found"):
                decode_audio(b"data")

    def test_empty_input(self):
        """Test that empty input is rejected before running ffmpeg."""
        with pytest.raises(DecodeError):
            decode_audio(b"", ffmpeg_path="ffmpeg")


class TestAudioToWav:
    """Tests for audio_to_wav."""

    def test_stereo(self):
        """Test that (frames, 2) samples give a stereo WAV."""
        data = audio_to_wav(np.zeros((50, 2), dtype=np.float32), 48000)
        header = read_wav_header(data)

        assert header.channels == 2
        assert header.sample_rate == 48000
        assert header.data_size == 50 * 2 * 2

    def test_one_dimensional_is_mono(self):
        """Test that a flat array is treated as one channel."""
        data = audio_to_wav(np.array([0.5, -0.5], dtype=np.float32), 16000)
        header = read_wav_header(data)

        assert header.channels == 1
        assert data[44:] == np.array([16383, -16384], dtype="<i2").tobytes()

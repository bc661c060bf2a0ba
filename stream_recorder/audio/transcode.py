"""
Transcoding helpers for the compressed capture path.

Compressed recordings are decoded with ffmpeg into a float WAV, read back
with soundfile, and re-encoded as 16-bit PCM WAV.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from typing import Optional

import numpy as np
import soundfile as sf

from ..errors import DecodeError
from .utils import floats_to_int16
from .wav import encode_wav

logger = logging.getLogger(__name__)

DECODE_TIMEOUT = 120  # seconds


def check_ffmpeg() -> Optional[str]:
    """Check if ffmpeg is available and return path."""
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return ffmpeg_path

    # Common Windows install locations
    common_paths = [
        r"C:\ffmpeg\bin\ffmpeg.exe",
        r"C:\Program Files\ffmpeg\bin\ffmpeg.exe",
        os.path.expanduser(r"~\scoop\apps\ffmpeg\current\bin\ffmpeg.exe"),
    ]
    for path in common_paths:
        if os.path.exists(path):
            return path

    return None


def decode_audio(data: bytes, ffmpeg_path: Optional[str] = None) -> tuple[np.ndarray, int]:
    """
    Decode a compressed recording into float samples.

    Args:
        data: Complete compressed container (webm / ogg)
        ffmpeg_path: ffmpeg binary, looked up when omitted

    Returns:
        (samples shaped (frames, channels) float32, sample_rate)

    Raises:
        DecodeError: If ffmpeg is missing or the data cannot be decoded
    """
    if not data:
        raise DecodeError("nothing to decode")

    ffmpeg = ffmpeg_path or check_ffmpeg()
    if not ffmpeg:
        raise DecodeError("ffmpeg not found")

    with tempfile.TemporaryDirectory(prefix="stream_recorder_") as tmp_dir:
        source_path = os.path.join(tmp_dir, "source")
        decoded_path = os.path.join(tmp_dir, "decoded.wav")
        with open(source_path, "wb") as f:
            f.write(data)

        cmd = [
            ffmpeg, "-hide_banner", "-loglevel", "error", "-y",
            "-i", source_path,
            "-vn",
            "-c:a", "pcm_f32le",
            decoded_path,
        ]
        try:
            subprocess.run(cmd, capture_output=True, check=True, timeout=DECODE_TIMEOUT)
        except subprocess.CalledProcessError as e:
            error = e.stderr.decode("utf-8", errors="ignore").strip()
            raise DecodeError(f"ffmpeg failed: {error[:200]}") from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DecodeError(f"ffmpeg failed: {e}") from e

        try:
            samples, sample_rate = sf.read(decoded_path, dtype="float32", always_2d=True)
        except Exception as e:
            raise DecodeError(f"Could not read decoded audio: {e}") from e

    if samples.size == 0:
        raise DecodeError("decoded audio is empty")

    logger.info(f"Decoded {samples.shape[0] / sample_rate:.1f}s at {sample_rate}Hz, {samples.shape[1]}ch")
    return samples, int(sample_rate)


def audio_to_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Interleave (frames, channels) float samples and encode them as 16-bit WAV."""
    data = samples if samples.ndim > 1 else samples.reshape(-1, 1)
    pcm = floats_to_int16(data).reshape(-1)
    return encode_wav(sample_rate, int(data.shape[1]), pcm)

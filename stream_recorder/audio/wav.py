"""
WAV container encoding.

Produces the canonical 44-byte RIFF/WAVE header (PCM, 16-bit, little-endian)
followed by the interleaved sample bytes, so any media player can open the
result directly.
"""

import io
import struct
import wave
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .utils import SAMPLE_WIDTH

WAV_HEADER_SIZE = 44
WAVE_FORMAT_PCM = 1

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical 44-byte PCM WAV header."""

    riff_size: int
    fmt_size: int
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def encode_wav(sample_rate: int, channels: int, samples: Sequence[int] | np.ndarray) -> bytes:
    """
    Serialize interleaved 16-bit samples into a WAV file in memory.

    An empty sample sequence still yields a valid header with a zero-length
    data chunk.

    Args:
        sample_rate: Sample rate in Hz (positive)
        channels: Channel count (positive); samples are interleaved per channel
        samples: Interleaved signed 16-bit samples

    Returns:
        WAV file bytes
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if channels <= 0:
        raise ValueError(f"channels must be positive, got {channels}")

    # wave expects native byte order and swaps on big-endian hosts itself
    pcm = np.asarray(samples, dtype=np.int16).reshape(-1)

    wav_buffer = io.BytesIO()
    with wave.open(wav_buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm.tobytes())
    return wav_buffer.getvalue()


def read_wav_header(data: bytes) -> WavHeader:
    """
    Parse the 44-byte header written by ``encode_wav``.

    Raises:
        ValueError: If the data is too short or not a PCM WAV header
    """
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")

    (
        riff,
        riff_size,
        wave_tag,
        fmt_tag,
        fmt_size,
        audio_format,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_size,
    ) = _HEADER.unpack_from(data)

    if riff != b"RIFF" or wave_tag != b"WAVE" or fmt_tag != b"fmt " or data_tag != b"data":
        raise ValueError("Not a canonical PCM WAV header")

    return WavHeader(
        riff_size=riff_size,
        fmt_size=fmt_size,
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )

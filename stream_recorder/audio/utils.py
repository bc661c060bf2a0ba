"""Sample conversion and the buffer types passed between capture stages."""

from dataclasses import dataclass

import numpy as np

# 16-bit PCM scaling: the negative range is one step larger than the positive
INT16_NEGATIVE_SCALE = 32768
INT16_POSITIVE_SCALE = 32767
SAMPLE_WIDTH = 2  # bytes per 16-bit sample


def float_to_int16(sample: float) -> int:
    """
    Convert one float sample to a signed 16-bit integer.

    Out-of-range input is clamped to [-1.0, 1.0]. Negative values scale by
    32768 and non-negative values by 32767, truncating toward zero.

    Args:
        sample: Float sample, nominally in [-1.0, 1.0]

    Returns:
        Integer in [-32768, 32767]
    """
    clamped = max(-1.0, min(1.0, sample))
    if clamped < 0:
        return int(clamped * INT16_NEGATIVE_SCALE)
    return int(clamped * INT16_POSITIVE_SCALE)


def floats_to_int16(samples: np.ndarray) -> np.ndarray:
    """
    Vectorised ``float_to_int16`` over an array of any shape.

    NaN samples become 0.
    """
    values = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    clamped = np.clip(values, -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * INT16_NEGATIVE_SCALE, clamped * INT16_POSITIVE_SCALE)
    return scaled.astype(np.int16)


def int16_to_float(value: int) -> float:
    """Normalise a 16-bit sample back to [-1.0, 1.0] (inverse of ``float_to_int16``)."""
    if value < 0:
        return value / INT16_NEGATIVE_SCALE
    return value / INT16_POSITIVE_SCALE


@dataclass
class SampleBlock:
    """
    One fixed-size block of float samples delivered by a live audio tap.

    ``data`` is float32 shaped (frames, channels).
    """

    data: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.data.shape[1]) if self.data.ndim > 1 else 1

    @property
    def frames(self) -> int:
        return int(self.data.shape[0])

    @classmethod
    def from_interleaved(cls, raw: bytes, channels: int, sample_rate: int) -> "SampleBlock":
        """Build a block from interleaved float32 bytes (pyaudio paFloat32)."""
        samples = np.frombuffer(raw, dtype=np.float32)
        return cls(data=samples.reshape(-1, channels), sample_rate=sample_rate)

    @classmethod
    def from_planar(cls, channel_data: list[np.ndarray], sample_rate: int) -> "SampleBlock":
        """Build a block from one array per channel."""
        return cls(data=np.stack(channel_data, axis=1).astype(np.float32), sample_rate=sample_rate)


@dataclass
class PCMChunk:
    """Interleaved 16-bit samples converted from one SampleBlock."""

    samples: np.ndarray
    sample_rate: int
    channels: int

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)


def block_to_pcm(block: SampleBlock) -> PCMChunk:
    """
    Convert every sample of every channel of a block to 16-bit PCM.

    Mono blocks are duplicated into two channels so the output is always at
    least stereo.
    """
    data = block.data if block.data.ndim > 1 else block.data.reshape(-1, 1)
    if data.shape[1] == 1:
        data = np.repeat(data, 2, axis=1)
    # Row-major flatten of (frames, channels) is the interleaved order
    pcm = floats_to_int16(data).reshape(-1)
    return PCMChunk(samples=pcm, sample_rate=block.sample_rate, channels=int(data.shape[1]))

"""Audio capture and encoding."""

from .capture import (
    BlockTap,
    CaptureMode,
    CaptureStrategy,
    EncodedAudio,
    PCMCaptureStrategy,
    PyAudioBlockTap,
    direct_dispatch,
)
from .compressed import (
    COMPRESSED_FORMATS,
    CompressedCaptureStrategy,
    CompressedFormat,
    EncoderTap,
    FfmpegEncoderTap,
)
from .transcode import audio_to_wav, check_ffmpeg, decode_audio
from .utils import PCMChunk, SampleBlock, block_to_pcm, float_to_int16, floats_to_int16
from .wav import encode_wav, read_wav_header

__all__ = [
    "BlockTap",
    "COMPRESSED_FORMATS",
    "CaptureMode",
    "CaptureStrategy",
    "CompressedCaptureStrategy",
    "CompressedFormat",
    "EncodedAudio",
    "EncoderTap",
    "FfmpegEncoderTap",
    "PCMCaptureStrategy",
    "PCMChunk",
    "PyAudioBlockTap",
    "SampleBlock",
    "audio_to_wav",
    "block_to_pcm",
    "check_ffmpeg",
    "decode_audio",
    "direct_dispatch",
    "encode_wav",
    "float_to_int16",
    "floats_to_int16",
    "read_wav_header",
]

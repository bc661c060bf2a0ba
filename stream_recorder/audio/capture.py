"""Capture strategies and the PCM block tap."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from ..errors import FinalizeError
from .utils import PCMChunk, SampleBlock, block_to_pcm
from .wav import encode_wav

logger = logging.getLogger(__name__)

# dispatch(fn, *args) runs fn(*args) on the control thread
Dispatch = Callable[..., None]


def direct_dispatch(fn: Callable[..., Any], *args: Any) -> None:
    """Run the callback immediately on the calling thread."""
    fn(*args)


class CaptureMode(Enum):
    """Quality of the audio a strategy produces."""
    LOSSLESS = "lossless"
    LOSSY = "lossy"


@dataclass
class EncodedAudio:
    """Finished audio payload of one session."""
    data: bytes
    extension: str
    mime_type: str
    degraded: bool = False  # True when delivered in the capture container instead of WAV

    @property
    def size(self) -> int:
        return len(self.data)


class CaptureStrategy(ABC):
    """
    One way of acquiring session audio.

    The controller probes strategies in order and uses the first one whose
    probe passes and whose ``start`` does not raise.
    """

    mode: CaptureMode = CaptureMode.LOSSLESS

    def __init__(self):
        self.capturing = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short strategy name for logs and events."""
        pass

    @abstractmethod
    def probe(self) -> bool:
        """Return True if this strategy can run on the current host."""
        pass

    @abstractmethod
    def start(self, dispatch: Dispatch = direct_dispatch) -> None:
        """Begin buffering audio. Raises on failure."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop accepting new audio."""
        pass

    @abstractmethod
    def finalize(self) -> EncodedAudio:
        """Turn the buffered audio into a deliverable payload."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Release taps and drop buffers. Safe to call more than once."""
        pass


class BlockTap(ABC):
    """Source of fixed-size float sample blocks."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    @abstractmethod
    def available(self) -> bool:
        """Return True if the tap can be opened."""
        pass

    @abstractmethod
    def open(self, on_block: Callable[[SampleBlock], None]) -> None:
        """Start delivering blocks to ``on_block`` (from a driver thread)."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class PyAudioBlockTap(BlockTap):
    """
    Float32 block tap on a PyAudio stream.

    Uses WASAPI loopback through PyAudioWPatch when ``loopback`` is set,
    otherwise a regular input device (e.g. "Stereo Mix") through PyAudio.
    With ``monitor`` the stream is opened duplex and every input block is
    written back out unmodified so playback stays audible.
    """

    def __init__(
        self,
        block_size: int = 4096,
        device_index: Optional[int] = None,
        loopback: bool = False,
        monitor: bool = False,
    ):
        self.block_size = block_size
        self.device_index = device_index
        self.loopback = loopback
        self.monitor = monitor
        self.pyaudio_instance = None
        self.stream = None
        self.capture_rate = 48000
        self.capture_channels = 2
        self.running = False
        self._pa = None
        self._on_block: Optional[Callable[[SampleBlock], None]] = None
        self._device_name = "System Audio" if loopback else "Input"

    @property
    def source_name(self) -> str:
        icon = "🔊" if self.loopback else "🎤"
        return f"{icon} {self._device_name}"

    def _import_pyaudio(self):
        if self.loopback:
            import pyaudiowpatch as pyaudio
        else:
            import pyaudio
        return pyaudio

    def _find_device(self, pa, instance) -> dict:
        if self.device_index is not None:
            device = instance.get_device_info_by_index(self.device_index)
            if self.loopback and not device.get("isLoopbackDevice"):
                logger.warning(f"Device {self.device_index} is not a loopback device")
            return device

        if not self.loopback:
            device = instance.get_default_input_device_info()
            self.device_index = int(device["index"])
            return device

        # Loopback twin of the default WASAPI speaker
        wasapi_info = instance.get_host_api_info_by_type(pa.paWASAPI)
        default_output = instance.get_device_info_by_index(wasapi_info["defaultOutputDevice"])
        default_name = default_output["name"]
        for i in range(instance.get_device_count()):
            dev = instance.get_device_info_by_index(i)
            if dev.get("isLoopbackDevice") and default_name in dev["name"]:
                self.device_index = i
                return dev
        raise RuntimeError("No loopback device found. Install PyAudioWPatch: pip install pyaudiowpatch")

    def available(self) -> bool:
        instance = None
        try:
            pa = self._import_pyaudio()
            instance = pa.PyAudio()
            device = self._find_device(pa, instance)
            return int(device["maxInputChannels"]) > 0
        except ImportError:
            module = "pyaudiowpatch" if self.loopback else "pyaudio"
            logger.warning(f"{module} not installed, block capture unavailable")
            return False
        except Exception as e:
            logger.warning(f"Block capture probe failed: {e}")
            return False
        finally:
            if instance is not None:
                instance.terminate()

    def open(self, on_block: Callable[[SampleBlock], None]) -> None:
        pa = self._import_pyaudio()
        self._pa = pa
        self._on_block = on_block
        self.pyaudio_instance = pa.PyAudio()

        try:
            device = self._find_device(pa, self.pyaudio_instance)
            self._device_name = device["name"].replace(" [Loopback]", "")
            self.capture_rate = int(device["defaultSampleRate"])
            self.capture_channels = max(1, min(int(device["maxInputChannels"]), 2))

            logger.info(f"Block tap: {self._device_name}")
            logger.info(
                f"Rate: {self.capture_rate}Hz, Channels: {self.capture_channels}, "
                f"Block: {self.block_size} frames"
            )

            self.running = True
            self.stream = self.pyaudio_instance.open(
                format=pa.paFloat32,
                channels=self.capture_channels,
                rate=self.capture_rate,
                input=True,
                output=self.monitor,
                input_device_index=self.device_index,
                frames_per_buffer=self.block_size,
                stream_callback=self._audio_callback,
            )
            self.stream.start_stream()
        except Exception:
            self.close()
            raise

        logger.info(f"{self.source_name} capture started")

    def _audio_callback(self, in_data, frame_count, time_info, status):
        pa = self._pa

        if not self.running:
            return (None, pa.paComplete)

        try:
            block = SampleBlock.from_interleaved(in_data, self.capture_channels, self.capture_rate)
            self._on_block(block)
        except Exception as e:
            logger.error(f"Block tap callback error: {e}")

        out_data = in_data if self.monitor else None
        return (out_data, pa.paContinue)

    def close(self) -> None:
        self.running = False

        if self.stream:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except Exception as e:
                logger.debug(f"Stream close failed: {e}")
            self.stream = None

        if self.pyaudio_instance:
            try:
                self.pyaudio_instance.terminate()
            except Exception as e:
                logger.debug(f"PyAudio terminate failed: {e}")
            self.pyaudio_instance = None
            logger.info(f"{self.source_name} capture stopped")


class PCMCaptureStrategy(CaptureStrategy):
    """Lossless capture: float blocks converted to 16-bit PCM and kept in memory."""

    mode = CaptureMode.LOSSLESS

    def __init__(self, tap: BlockTap):
        super().__init__()
        self.tap = tap
        self.chunks: list[PCMChunk] = []

    @property
    def name(self) -> str:
        return "pcm"

    @property
    def frame_count(self) -> int:
        return sum(chunk.sample_count // chunk.channels for chunk in self.chunks)

    @property
    def duration(self) -> float:
        if not self.chunks:
            return 0.0
        return self.frame_count / self.chunks[0].sample_rate

    def probe(self) -> bool:
        return self.tap.available()

    def start(self, dispatch: Dispatch = direct_dispatch) -> None:
        self.chunks = []
        self.capturing = True
        try:
            self.tap.open(lambda block: dispatch(self.on_block, block))
        except Exception:
            self.capturing = False
            raise
        logger.info(f"PCM capture started from {self.tap.source_name}")

    def on_block(self, block: SampleBlock) -> SampleBlock:
        """
        Buffer one block while capturing.

        The block itself is returned untouched; playback is never altered by
        capture.
        """
        if not self.capturing:
            return block
        self.chunks.append(block_to_pcm(block))
        return block

    def stop(self) -> None:
        self.capturing = False
        logger.info(f"PCM capture stopped: {len(self.chunks)} blocks, {self.duration:.1f}s")

    def finalize(self) -> EncodedAudio:
        if not self.chunks:
            raise FinalizeError("no PCM data captured")

        first = self.chunks[0]
        samples = np.concatenate([chunk.samples for chunk in self.chunks])
        data = encode_wav(first.sample_rate, first.channels, samples)
        logger.info(
            f"WAV encoded: {len(data) / 1024 / 1024:.2f} MB, "
            f"{first.sample_rate}Hz, {first.channels}ch"
        )
        return EncodedAudio(data=data, extension="wav", mime_type="audio/wav")

    def cleanup(self) -> None:
        self.capturing = False
        self.tap.close()
        self.chunks = []

"""
Compressed capture fallback.

Used when no block tap is available: an ffmpeg encoder records the system
audio into a webm/ogg container, and at the end of the session the container
is decoded and re-encoded as WAV. If decoding fails the container itself is
delivered.
"""

import logging
import subprocess
from collections import deque
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import DecodeError, FinalizeError
from .capture import CaptureMode, CaptureStrategy, Dispatch, EncodedAudio, direct_dispatch
from .transcode import audio_to_wav, check_ffmpeg, decode_audio

logger = logging.getLogger(__name__)

READ_SIZE = 4096
STOP_TIMEOUT = 5.0  # seconds to wait for ffmpeg to finish the container
STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class CompressedFormat:
    """A container/codec pair the encoder may produce."""
    mime_type: str
    extension: str
    muxer: str
    codec: str


# Preference order
COMPRESSED_FORMATS: tuple[CompressedFormat, ...] = (
    CompressedFormat("audio/webm;codecs=opus", "webm", "webm", "libopus"),
    CompressedFormat("audio/webm", "webm", "webm", "libvorbis"),
    CompressedFormat("audio/ogg;codecs=opus", "ogg", "ogg", "libopus"),
)


def native_extension(mime_type: str) -> str:
    """File extension for undecoded capture data of the given mime type."""
    return "ogg" if "ogg" in mime_type else "webm"


class EncoderTap(ABC):
    """Source of compressed audio chunks."""

    @abstractmethod
    def supported_formats(self) -> list[CompressedFormat]:
        """Formats this tap can produce, in preference order."""
        pass

    @abstractmethod
    def open(self, fmt: CompressedFormat, bitrate: int, on_chunk: Callable[[bytes], None]) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        """
        Finish the recording.

        Every remaining chunk has been handed to ``on_chunk`` when this
        returns.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class FfmpegEncoderTap(EncoderTap):
    """Records a capture device with ffmpeg and reads the container from stdout."""

    def __init__(
        self,
        input_format: str,
        input_device: str,
        timeslice: float = 1.0,
        ffmpeg_path: Optional[str] = None,
    ):
        self.input_format = input_format
        self.input_device = input_device
        self.timeslice = timeslice
        self._ffmpeg_path = ffmpeg_path
        self._formats: Optional[list[CompressedFormat]] = None
        self.process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._stderr_reader: Optional[threading.Thread] = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._on_chunk: Optional[Callable[[bytes], None]] = None

    @property
    def ffmpeg_path(self) -> Optional[str]:
        if self._ffmpeg_path is None:
            self._ffmpeg_path = check_ffmpeg()
        return self._ffmpeg_path

    def _list_capabilities(self, flag: str) -> str:
        result = subprocess.run(
            [self.ffmpeg_path, "-hide_banner", flag],
            capture_output=True, text=True, check=True, timeout=10,
        )
        return result.stdout

    def supported_formats(self) -> list[CompressedFormat]:
        if self._formats is not None:
            return self._formats

        if not self.ffmpeg_path:
            logger.warning("ffmpeg not found, compressed capture unavailable")
            self._formats = []
            return self._formats

        try:
            encoders = self._list_capabilities("-encoders")
            muxers = self._list_capabilities("-muxers")
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not query ffmpeg capabilities: {e}")
            self._formats = []
            return self._formats

        encoder_names = {line.split()[1] for line in encoders.splitlines() if len(line.split()) > 1}
        muxer_names = {line.split()[1] for line in muxers.splitlines() if len(line.split()) > 1}
        self._formats = [
            fmt for fmt in COMPRESSED_FORMATS
            if fmt.codec in encoder_names and fmt.muxer in muxer_names
        ]
        return self._formats

    def open(self, fmt: CompressedFormat, bitrate: int, on_chunk: Callable[[bytes], None]) -> None:
        if not self.ffmpeg_path:
            raise RuntimeError("ffmpeg not found")

        cmd = [
            self.ffmpeg_path, "-hide_banner", "-loglevel", "error",
            "-f", self.input_format,
            "-i", self.input_device,
            "-vn",
            "-c:a", fmt.codec,
            "-b:a", f"{bitrate // 1000}k",
            "-f", fmt.muxer,
            "pipe:1",
        ]
        logger.debug(f"Starting encoder: {' '.join(cmd)}")

        self._on_chunk = on_chunk
        self._stderr_tail.clear()
        self.process = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )

        # A bad device or codec makes ffmpeg exit right away
        time.sleep(0.2)
        if self.process.poll() is not None:
            _, stderr = self.process.communicate()
            error = (stderr or b"").decode("utf-8", errors="ignore").strip()
            self.process = None
            raise RuntimeError(f"ffmpeg encoder exited: {error[:200]}")

        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()
        # ffmpeg stalls on stdout once an unread stderr pipe fills up
        self._stderr_reader = threading.Thread(target=self._drain_stderr, daemon=True)
        self._stderr_reader.start()
        logger.info(f"Encoder started: {fmt.mime_type} at {bitrate // 1000} kbps")

    def _read_loop(self):
        pending = bytearray()
        last_flush = time.monotonic()
        stdout = self.process.stdout

        while True:
            data = stdout.read1(READ_SIZE)
            if not data:
                break
            pending.extend(data)
            now = time.monotonic()
            if now - last_flush >= self.timeslice:
                self._emit(bytes(pending))
                pending.clear()
                last_flush = now

        # Final chunk carries the container trailer
        if pending:
            self._emit(bytes(pending))

    def _drain_stderr(self):
        for line in self.process.stderr:
            text = line.decode("utf-8", errors="ignore").rstrip()
            if text:
                logger.debug(f"ffmpeg: {text}")
                self._stderr_tail.append(text)

    def _emit(self, chunk: bytes):
        try:
            self._on_chunk(chunk)
        except Exception as e:
            logger.error(f"Encoder chunk callback error: {e}")

    def stop(self) -> None:
        process = self.process
        if process is None:
            return

        try:
            process.stdin.write(b"q")
            process.stdin.flush()
            process.stdin.close()
        except (BrokenPipeError, OSError):
            pass

        try:
            process.wait(timeout=STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning("Encoder did not stop, terminating")
            process.terminate()
            try:
                process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()

        if self._reader:
            self._reader.join(timeout=STOP_TIMEOUT)
            self._reader = None
        if self._stderr_reader:
            self._stderr_reader.join(timeout=STOP_TIMEOUT)
            self._stderr_reader = None

        if process.returncode not in (0, 255):
            error = "\n".join(self._stderr_tail)
            logger.warning(f"Encoder exited with {process.returncode}: {error[-200:]}")

        self.process = None
        logger.info("Encoder stopped")

    def close(self) -> None:
        if self.process is not None:
            self.stop()
        self._on_chunk = None


class CompressedCaptureStrategy(CaptureStrategy):
    """
    Lossy capture through an encoder tap.

    Chunks are accepted until finalization starts, since the encoder hands
    over its last chunk while stopping.
    """

    mode = CaptureMode.LOSSY

    def __init__(
        self,
        tap: EncoderTap,
        bitrate: int = 256_000,
        decoder: Callable[[bytes], tuple] = decode_audio,
    ):
        super().__init__()
        self.tap = tap
        self.bitrate = bitrate
        self.decoder = decoder
        self.format: Optional[CompressedFormat] = None
        self.chunks: list[bytes] = []
        self._accepting = False

    @property
    def name(self) -> str:
        return "compressed"

    @property
    def size(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def probe(self) -> bool:
        return bool(self.tap.supported_formats())

    def start(self, dispatch: Dispatch = direct_dispatch) -> None:
        formats = self.tap.supported_formats()
        if not formats:
            raise RuntimeError("No supported compressed format")

        self.format = formats[0]
        self.chunks = []
        self._accepting = True
        self.capturing = True
        try:
            self.tap.open(self.format, self.bitrate, lambda chunk: dispatch(self.on_chunk, chunk))
        except Exception:
            self._accepting = False
            self.capturing = False
            raise
        logger.info(f"Compressed capture started ({self.format.mime_type})")

    def on_chunk(self, chunk: bytes) -> None:
        if self._accepting and chunk:
            self.chunks.append(chunk)

    def stop(self) -> None:
        self.capturing = False
        self.tap.stop()
        logger.info(f"Compressed capture stopped: {len(self.chunks)} chunks, {self.size / 1024:.1f} KB")

    def finalize(self) -> EncodedAudio:
        self._accepting = False
        data = b"".join(self.chunks)
        if not data:
            raise FinalizeError("recorded audio is empty")

        mime_type = self.format.mime_type if self.format else "audio/webm"
        try:
            samples, sample_rate = self.decoder(data)
            wav = audio_to_wav(samples, sample_rate)
        except DecodeError as e:
            logger.warning(f"Decode failed, keeping {native_extension(mime_type)} container: {e}")
            return EncodedAudio(
                data=data,
                extension=native_extension(mime_type),
                mime_type=mime_type,
                degraded=True,
            )

        logger.info(f"Transcoded to WAV: {len(wav) / 1024 / 1024:.2f} MB")
        return EncodedAudio(data=wav, extension="wav", mime_type="audio/wav")

    def cleanup(self) -> None:
        self._accepting = False
        self.capturing = False
        self.tap.close()
        self.chunks = []

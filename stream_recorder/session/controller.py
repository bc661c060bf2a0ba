"""
Session controller.

Owns the single capture session: starts the audio strategy and the caption
sampler together, polls the page while capturing, and on stop turns the
buffered audio and captions into artifacts.

States: IDLE → CAPTURING → FINALIZING → IDLE
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..audio.capture import CaptureMode, CaptureStrategy, PCMCaptureStrategy, PyAudioBlockTap
from ..audio.compressed import CompressedCaptureStrategy, FfmpegEncoderTap
from ..captions.sampler import CaptionSampler
from ..captions.srt import render_srt, synthesize
from ..config import CaptureConfig
from ..errors import DeliveryError, FinalizeError, SetupError
from ..events import EventCallback, EventType, SessionEvent, log_event
from ..media import MediaSource
from .delivery import SRT_MIME_TYPE, Artifact, ArtifactWriter

logger = logging.getLogger(__name__)

StrategyFactory = Callable[[], CaptureStrategy]


class SessionState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    FINALIZING = "finalizing"


@dataclass
class CaptureSession:
    """Everything that belongs to one recording."""
    session_id: str
    mode: CaptureMode
    strategy: CaptureStrategy
    sampler: CaptionSampler
    started_at: datetime = field(default_factory=datetime.now)


@dataclass
class SessionResult:
    """Summary of a finished session."""
    media_id: str
    mode: CaptureMode
    audio_path: Optional[Path] = None
    caption_path: Optional[Path] = None
    audio_size: int = 0
    caption_count: int = 0
    degraded: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.audio_path is not None and not self.errors


def build_strategies(config: CaptureConfig) -> list[StrategyFactory]:
    """Capture strategies in the order they should be tried."""

    def pcm() -> CaptureStrategy:
        tap = PyAudioBlockTap(
            block_size=config.block_size,
            device_index=config.device_index,
            loopback=config.use_loopback,
            monitor=config.monitor_playback,
        )
        return PCMCaptureStrategy(tap)

    def compressed() -> CaptureStrategy:
        tap = FfmpegEncoderTap(
            input_format=config.ffmpeg_input_format,
            input_device=config.ffmpeg_input_device,
            timeslice=config.timeslice,
        )
        return CompressedCaptureStrategy(tap, bitrate=config.bitrate)

    if config.force_lossy:
        return [compressed]
    return [pcm, compressed]


class SessionController:
    """Drives one capture session at a time against a media source."""

    def __init__(
        self,
        source: MediaSource,
        writer: ArtifactWriter,
        strategies: Optional[Sequence[StrategyFactory]] = None,
        config: Optional[CaptureConfig] = None,
        on_event: Optional[EventCallback] = None,
    ):
        self.source = source
        self.writer = writer
        self.config = config or CaptureConfig()
        self.strategies = list(strategies) if strategies is not None else build_strategies(self.config)
        self.on_event = on_event or log_event

        self.state = SessionState.IDLE
        self.session: Optional[CaptureSession] = None
        self.last_result: Optional[SessionResult] = None
        self._starting = False
        self._poll_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_capturing(self) -> bool:
        return self.state is SessionState.CAPTURING

    def _emit(self, event_type: EventType, message: str, **data: Any):
        event = SessionEvent(type=event_type, message=message, data=data)
        try:
            self.on_event(event)
        except Exception as e:
            logger.error(f"Event callback error: {e}")

    # ── start ──

    async def start(self, media_id: Optional[str] = None) -> CaptureSession:
        """
        Start a capture session.

        Args:
            media_id: Name for the artifacts; read from the page when omitted

        Raises:
            SetupError: If a session is active or capture cannot begin
        """
        if self.state is not SessionState.IDLE or self._starting:
            raise SetupError(f"Cannot start: recorder is {self.state.value}")

        self._starting = True
        try:
            return await self._start(media_id)
        except SetupError as e:
            self._emit(EventType.ERROR, str(e))
            raise
        finally:
            self._starting = False

    async def _start(self, media_id: Optional[str]) -> CaptureSession:
        try:
            if media_id is None:
                media_id = await self.source.media_id()
            if not media_id:
                raise SetupError("No media ID found. Open a video page first.")
            if not await self.source.has_media():
                raise SetupError("No video element found on the page")
            await self._rewind_and_play()
        except SetupError:
            raise
        except Exception as e:
            raise SetupError(f"Page not responding: {e}") from e

        sampler = CaptionSampler(self.config.caption_selectors)
        sampler.start()

        loop = asyncio.get_running_loop()

        def dispatch(fn, *args):
            loop.call_soon_threadsafe(fn, *args)

        strategy = await self._select_strategy(dispatch)
        if strategy is None:
            sampler.stop()
            raise SetupError("No audio capture method available")

        self.session = CaptureSession(
            session_id=media_id,
            mode=strategy.mode,
            strategy=strategy,
            sampler=sampler,
        )
        self.state = SessionState.CAPTURING
        self._idle.clear()

        quality = "lossless PCM" if strategy.mode is CaptureMode.LOSSLESS else "lossy, transcoded to WAV"
        logger.info(f"🎙️ Recording {media_id} ({quality})")
        self._emit(
            EventType.RECORDING_STARTED,
            f"Recording started: {media_id}",
            media_id=media_id,
            mode=strategy.mode.value,
        )

        self._poll_task = asyncio.create_task(self._poll_loop(self.session))
        return self.session

    async def _rewind_and_play(self):
        await self.source.seek(0)
        await asyncio.sleep(self.config.startup_delay)
        if await self.source.is_paused():
            try:
                await self.source.play()
            except Exception as e:
                logger.warning(f"Could not start playback: {e}")
            await asyncio.sleep(self.config.startup_delay)

    async def _select_strategy(self, dispatch) -> Optional[CaptureStrategy]:
        # probe, start and cleanup block on audio drivers and ffmpeg
        for factory in self.strategies:
            strategy = factory()
            try:
                if not await asyncio.to_thread(strategy.probe):
                    self._emit(
                        EventType.CAPTURE_DEGRADED,
                        f"{strategy.name} capture unavailable, trying next method",
                        strategy=strategy.name,
                    )
                    continue
                await asyncio.to_thread(strategy.start, dispatch)
                return strategy
            except Exception as e:
                self._emit(
                    EventType.CAPTURE_DEGRADED,
                    f"{strategy.name} capture failed to start: {e}",
                    strategy=strategy.name,
                )
                try:
                    await asyncio.to_thread(strategy.cleanup)
                except Exception as cleanup_error:
                    logger.debug(f"Cleanup of {strategy.name} failed: {cleanup_error}")
        return None

    # ── polling ──

    async def _poll_loop(self, session: CaptureSession):
        stop_reason = None

        while self.state is SessionState.CAPTURING and self.session is session:
            try:
                snapshot = await self.source.snapshot(self.config.caption_selectors)
            except Exception as e:
                logger.warning(f"Page poll failed: {e}")
            else:
                session.sampler.sample(snapshot)
                if snapshot.error:
                    stop_reason = "media error"
                    break
                if not session.sampler.is_sampling:
                    stop_reason = "media ended"
                    break
            await asyncio.sleep(self.config.poll_interval)

        if stop_reason:
            logger.info(f"Stopping: {stop_reason}")
            await self.stop()

    async def _cancel_poll_task(self):
        task, self._poll_task = self._poll_task, None
        if task is None or task is asyncio.current_task() or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ── stop ──

    async def stop(self) -> Optional[SessionResult]:
        """
        Stop the session and produce its artifacts.

        Only acts while capturing; any other call returns None.
        """
        if self.state is not SessionState.CAPTURING:
            logger.debug(f"stop() ignored while {self.state.value}")
            return None

        self.state = SessionState.FINALIZING
        session = self.session
        self._emit(EventType.RECORDING_STOPPED, f"Recording stopped: {session.session_id}")

        try:
            session.sampler.stop()
            await self._cancel_poll_task()
            try:
                await asyncio.to_thread(session.strategy.stop)
            except Exception as e:
                logger.warning(f"Stopping {session.strategy.name} capture failed: {e}")
            # Let audio callbacks already queued on the loop land in the buffers
            await asyncio.sleep(0)
            result = self._finalize(session)
        finally:
            self._release(session)

        self.last_result = result
        return result

    def _finalize(self, session: CaptureSession) -> SessionResult:
        result = SessionResult(media_id=session.session_id, mode=session.mode)

        try:
            audio = session.strategy.finalize()
        except FinalizeError as e:
            return self._fail(result, f"Failed to process audio: {e}")
        except Exception as e:
            logger.exception("Unexpected finalize failure")
            return self._fail(result, f"Failed to process audio: {e}")

        if audio.degraded:
            result.degraded = True
            self._emit(
                EventType.CAPTURE_DEGRADED,
                f"Could not convert to WAV, saved as .{audio.extension}",
                extension=audio.extension,
            )

        entries = synthesize(
            session.sampler.observations,
            trailing_duration=self.config.trailing_duration,
            dedupe_window=self.config.dedupe_window,
        )
        result.caption_count = len(entries)

        audio_artifact = Artifact(f"{session.session_id}.{audio.extension}", audio.data, audio.mime_type)
        try:
            result.audio_path = self.writer.write(audio_artifact)
            result.audio_size = audio_artifact.size
        except DeliveryError as e:
            self._report(result, str(e))

        if entries:
            srt = render_srt(entries).encode("utf-8")
            try:
                result.caption_path = self.writer.write(
                    Artifact(f"{session.session_id}.srt", srt, SRT_MIME_TYPE)
                )
            except DeliveryError as e:
                self._report(result, str(e))

        if result.audio_path is not None:
            size_mb = result.audio_size / 1024 / 1024
            quality = "lossless PCM" if session.mode is CaptureMode.LOSSLESS else "transcoded"
            captions = f", {len(entries)} captions" if entries else ""
            self._emit(
                EventType.DOWNLOAD_COMPLETE,
                f"Saved {result.audio_path.name} ({size_mb:.2f} MB, {quality}{captions})",
                audio_path=str(result.audio_path),
                caption_path=str(result.caption_path) if result.caption_path else None,
                audio_size=result.audio_size,
                caption_count=result.caption_count,
            )

        return result

    def _report(self, result: SessionResult, message: str):
        result.errors.append(message)
        self._emit(EventType.ERROR, message)

    def _fail(self, result: SessionResult, message: str) -> SessionResult:
        self._report(result, message)
        return result

    def _release(self, session: CaptureSession):
        try:
            session.strategy.cleanup()
        except Exception as e:
            logger.warning(f"Cleanup of {session.strategy.name} failed: {e}")
        self.session = None
        self.state = SessionState.IDLE
        self._idle.set()

    # ── status ──

    async def get_status(self) -> dict:
        """Report whether a session is running and what media the page shows."""
        if self.session is not None:
            media_id = self.session.session_id
        else:
            try:
                media_id = await self.source.media_id()
            except Exception as e:
                logger.debug(f"Could not read media ID: {e}")
                media_id = None

        try:
            has_source = await self.source.has_media()
        except Exception as e:
            logger.debug(f"Could not query media element: {e}")
            has_source = False

        return {
            "is_capturing": self.is_capturing,
            "has_source": has_source,
            "has_media_id": bool(media_id),
            "media_id": media_id,
        }

    async def wait_until_idle(self):
        """Wait for the running session, if any, to finish."""
        await self._idle.wait()

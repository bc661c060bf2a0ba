"""Shared fakes for stream recorder tests: page, block tap, encoder tap."""

import asyncio
from typing import Callable, Optional

import numpy as np
import pytest

from stream_recorder.audio.capture import BlockTap
from stream_recorder.audio.compressed import COMPRESSED_FORMATS, CompressedFormat, EncoderTap
from stream_recorder.audio.utils import SampleBlock
from stream_recorder.captions.dom import DomNode
from stream_recorder.config import CaptureConfig
from stream_recorder.media import MediaSource, PageSnapshot


class FakeMediaSource(MediaSource):
    """Scripted page: hands out queued snapshots, then an idle one."""

    def __init__(self, media_id: Optional[str] = "BV1xx411c7mD", has_media: bool = True, snapshots=None):
        self._media_id = media_id
        self._has_media = has_media
        self.snapshots = list(snapshots or [])
        self.paused = True
        self.seeks: list[float] = []
        self.play_calls = 0
        self.closed = False

    async def media_id(self):
        return self._media_id

    async def has_media(self):
        return self._has_media

    async def seek(self, seconds):
        self.seeks.append(seconds)

    async def is_paused(self):
        return self.paused

    async def play(self):
        self.play_calls += 1
        self.paused = False

    async def snapshot(self, selectors):
        if self.snapshots:
            return self.snapshots.pop(0)
        return PageSnapshot(regions=[None] * len(selectors), current_time=0.0)

    async def close(self):
        self.closed = True


class FakeBlockTap(BlockTap):
    """Block tap driven by the test through ``emit``."""

    def __init__(self, available: bool = True, fail_open: bool = False):
        self._available = available
        self.fail_open = fail_open
        self.on_block: Optional[Callable[[SampleBlock], None]] = None
        self.close_calls = 0

    @property
    def source_name(self):
        return "fake tap"

    def available(self):
        return self._available

    def open(self, on_block):
        if self.fail_open:
            raise RuntimeError("device busy")
        self.on_block = on_block

    def emit(self, block: SampleBlock):
        self.on_block(block)

    def close(self):
        self.close_calls += 1
        self.on_block = None


class FakeEncoderTap(EncoderTap):
    """Encoder tap that hands over ``tail`` as its final chunk on stop."""

    def __init__(self, formats=COMPRESSED_FORMATS, tail: bytes = b""):
        self.formats = list(formats)
        self.tail = tail
        self.opened_with: Optional[tuple[CompressedFormat, int]] = None
        self.on_chunk: Optional[Callable[[bytes], None]] = None
        self.stop_calls = 0
        self.close_calls = 0

    def supported_formats(self):
        return self.formats

    def open(self, fmt, bitrate, on_chunk):
        self.opened_with = (fmt, bitrate)
        self.on_chunk = on_chunk

    def emit(self, chunk: bytes):
        self.on_chunk(chunk)

    def stop(self):
        self.stop_calls += 1
        if self.tail:
            self.on_chunk(self.tail)

    def close(self):
        self.close_calls += 1


def make_block(frames: int = 4096, channels: int = 2, sample_rate: int = 48000, value: float = 0.5) -> SampleBlock:
    """A block filled with a constant value."""
    data = np.full((frames, channels), value, dtype=np.float32)
    return SampleBlock(data=data, sample_rate=sample_rate)


def caption_snapshot(text: Optional[str], current_time: float, ended: bool = False, error: bool = False) -> PageSnapshot:
    """Snapshot whose first selector matched a region showing ``text``."""
    region = DomNode.element(DomNode.element(text)) if text is not None else None
    return PageSnapshot(regions=[region], current_time=current_time, ended=ended, error=error)


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0):
    """Poll ``predicate`` on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def fast_config(tmp_path):
    """Capture config with no startup delays, writing into tmp_path."""
    return CaptureConfig(output_dir=tmp_path / "out", startup_delay=0, poll_interval=0.005)


@pytest.fixture
def media_source():
    return FakeMediaSource()

"""
Configuration for the stream recorder.

Defaults come from environment variables so the recorder can be tuned
without touching the CLI. ``CaptureConfig`` carries the values for one run.
"""

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def default_ffmpeg_input() -> tuple[str, str]:
    """Platform default ffmpeg capture input as (format, device)."""
    system = platform.system()
    if system == "Windows":
        return "dshow", "audio=Stereo Mix"
    if system == "Darwin":
        return "avfoundation", ":0"
    return "pulse", "default"


_FFMPEG_FORMAT, _FFMPEG_DEVICE = default_ffmpeg_input()

# Chrome remote debugging endpoint
CDP_HOST = os.environ.get("RECORDER_CDP_HOST", "localhost")
CDP_PORT = _env_int("RECORDER_CDP_PORT", 9222)

# Where finished artifacts are written
OUTPUT_DIR = Path(os.environ.get("RECORDER_OUTPUT_DIR", "recordings"))

# Capture timing
POLL_INTERVAL = _env_float("RECORDER_POLL_INTERVAL", 0.2)  # caption polling (s)
STARTUP_DELAY = _env_float("RECORDER_STARTUP_DELAY", 0.5)  # after seek / play (s)

# PCM path
BLOCK_SIZE = _env_int("RECORDER_BLOCK_SIZE", 4096)  # frames per tap callback
USE_LOOPBACK = _env_bool("RECORDER_LOOPBACK", platform.system() == "Windows")
MONITOR_PLAYBACK = _env_bool("RECORDER_MONITOR", False)

# Compressed path
BITRATE = _env_int("RECORDER_BITRATE", 256_000)
TIMESLICE = _env_float("RECORDER_TIMESLICE", 1.0)  # chunk flush interval (s)
FFMPEG_INPUT_FORMAT = os.environ.get("RECORDER_FFMPEG_FORMAT", _FFMPEG_FORMAT)
FFMPEG_INPUT_DEVICE = os.environ.get("RECORDER_FFMPEG_DEVICE", _FFMPEG_DEVICE)

# Caption track shaping
TRAILING_DURATION = _env_float("RECORDER_TRAILING_DURATION", 3.0)  # last entry length (s)
DEDUPE_WINDOW = _env_float("RECORDER_DEDUPE_WINDOW", 1.0)  # same-text merge window (s)

# Caption region selectors, tried in order
CAPTION_SELECTORS: tuple[str, ...] = (
    ".bili-subtitle-x-subtitle-panel-text",
    ".bpx-player-subtitle-text",
    ".bpx-player-subtitle-panel-text",
    '[class*="subtitle"] [class*="text"]',
    '[class*="Subtitle"] [class*="Text"]',
)


@dataclass
class CaptureConfig:
    """Settings for one recorder run."""

    output_dir: Path = OUTPUT_DIR
    cdp_host: str = CDP_HOST
    cdp_port: int = CDP_PORT
    poll_interval: float = POLL_INTERVAL
    startup_delay: float = STARTUP_DELAY
    block_size: int = BLOCK_SIZE
    device_index: int | None = None
    use_loopback: bool = USE_LOOPBACK
    monitor_playback: bool = MONITOR_PLAYBACK
    bitrate: int = BITRATE
    timeslice: float = TIMESLICE
    ffmpeg_input_format: str = FFMPEG_INPUT_FORMAT
    ffmpeg_input_device: str = FFMPEG_INPUT_DEVICE
    force_lossy: bool = False
    caption_selectors: tuple[str, ...] = field(default_factory=lambda: CAPTION_SELECTORS)
    trailing_duration: float = TRAILING_DURATION
    dedupe_window: float = DEDUPE_WINDOW

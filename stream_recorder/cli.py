"""
Stream Recorder - record a playing video's audio and captions.

Connects to Chrome over the remote debugging port, rewinds the video on the
current tab, and records until Ctrl+C, --duration, or the end of the video.
Writes <media_id>.wav and <media_id>.srt to the output directory.

Usage:
  stream-recorder                       # Record the video in the open tab
  stream-recorder --duration 60         # Stop after one minute
  stream-recorder --lossy               # Use the ffmpeg encoder path
  stream-recorder --check               # Show what is available
  stream-recorder --list-devices        # Show capture devices
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audio.devices import list_devices
from .audio.transcode import check_ffmpeg
from .cdp.page import CDPMediaPage, get_chrome_launch_command
from .config import CaptureConfig
from .errors import SetupError
from .events import EventType, SessionEvent, log_event
from .session.controller import SessionController, SessionResult
from .session.delivery import ArtifactWriter
from .utils.logging import set_log_level, setup_logging

logger = logging.getLogger(__name__)


def _print_event(event: SessionEvent):
    log_event(event)
    if event.type is EventType.RECORDING_STARTED:
        print(f"🔴 {event.message} (Ctrl+C to stop)")
    elif event.type is EventType.ERROR:
        print(f"❌ {event.message}")


def _print_summary(result: Optional[SessionResult]):
    print()
    if result is None:
        print("Nothing was recorded.")
        return

    print("+======================================+")
    print("|          Recording summary           |")
    print("+======================================+")
    print(f"Media:    {result.media_id}")
    print(f"Mode:     {result.mode.value}{' (saved undecoded)' if result.degraded else ''}")
    if result.audio_path:
        print(f"Audio:    {result.audio_path} ({result.audio_size / 1024 / 1024:.2f} MB)")
    if result.caption_path:
        print(f"Captions: {result.caption_path} ({result.caption_count} entries)")
    elif result.audio_path:
        print("Captions: none captured")
    for error in result.errors:
        print(f"Error:    {error}")


async def check_environment(config: CaptureConfig) -> int:
    """Report Chrome, ffmpeg and PyAudio availability."""
    page = CDPMediaPage(config.cdp_host, config.cdp_port)
    ok, status = await page.check_chrome()
    print(f"Chrome:   {'✅' if ok else '❌'} {status}")
    if not ok:
        print(f"          Launch with: {get_chrome_launch_command(config.cdp_port)}")

    ffmpeg = check_ffmpeg()
    print(f"ffmpeg:   {'✅ ' + ffmpeg if ffmpeg else '❌ not found (compressed capture disabled)'}")

    module = "pyaudiowpatch" if config.use_loopback else "pyaudio"
    try:
        __import__(module)
        print(f"PyAudio:  ✅ {module}")
    except ImportError:
        print(f"PyAudio:  ❌ {module} not installed (lossless capture disabled)")

    return 0 if ok else 1


def _install_stop_handler(loop: asyncio.AbstractEventLoop, stop_requested: asyncio.Event):
    def request_stop(*_):
        logger.info("Stop requested")
        loop.call_soon_threadsafe(stop_requested.set)

    try:
        loop.add_signal_handler(signal.SIGINT, request_stop)
        loop.add_signal_handler(signal.SIGTERM, request_stop)
    except NotImplementedError:
        # Windows event loops have no add_signal_handler
        signal.signal(signal.SIGINT, request_stop)
        if sys.platform == "win32":
            signal.signal(signal.SIGBREAK, request_stop)


async def record(config: CaptureConfig, media_id: Optional[str] = None, duration: Optional[float] = None) -> int:
    """Run one recording session against the current Chrome tab."""
    page = CDPMediaPage(config.cdp_host, config.cdp_port)
    if not await page.connect():
        print("❌ Could not connect to Chrome.")
        print(f"   Launch with: {get_chrome_launch_command(config.cdp_port)}")
        return 1

    try:
        controller = SessionController(
            page,
            ArtifactWriter(config.output_dir),
            config=config,
            on_event=_print_event,
        )

        try:
            await controller.start(media_id)
        except SetupError:
            return 1

        stop_requested = asyncio.Event()
        _install_stop_handler(asyncio.get_running_loop(), stop_requested)

        waiters = [
            asyncio.create_task(stop_requested.wait()),
            asyncio.create_task(controller.wait_until_idle()),
        ]
        try:
            await asyncio.wait(waiters, timeout=duration, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                task.cancel()

        result = await controller.stop()
        if result is None:
            await controller.wait_until_idle()
            result = controller.last_result

        _print_summary(result)
        return 0 if result is not None and result.success else 1
    finally:
        await page.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description=f"Stream Recorder v{__version__}")
    parser.add_argument("--media-id", help="Name for the output files (default: from the page URL)")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--output-dir", type=Path, help="Directory for the .wav/.srt files")
    parser.add_argument("--host", help="Chrome remote debugging host")
    parser.add_argument("--port", type=int, help="Chrome remote debugging port")
    parser.add_argument("--lossy", action="store_true", help="Record through the ffmpeg encoder")
    parser.add_argument("--loopback", action="store_true", default=None, help="Use WASAPI loopback capture")
    parser.add_argument("--device", type=int, help="Capture device index")
    parser.add_argument("--monitor", action="store_true", help="Play captured audio back out")
    parser.add_argument("--list-devices", action="store_true", help="List available capture devices")
    parser.add_argument("--check", action="store_true", help="Check Chrome, ffmpeg and PyAudio")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.list_devices:
        list_devices()
        return 0

    setup_logging()
    if args.debug:
        set_log_level("DEBUG")

    config = CaptureConfig()
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.host:
        config.cdp_host = args.host
    if args.port:
        config.cdp_port = args.port
    if args.loopback is not None:
        config.use_loopback = args.loopback
    if args.device is not None:
        config.device_index = args.device
    if args.monitor:
        config.monitor_playback = True
    config.force_lossy = args.lossy

    if args.check:
        return asyncio.run(check_environment(config))

    print(f"Stream Recorder v{__version__}")
    print(f"Chrome:  {config.cdp_host}:{config.cdp_port}")
    print(f"Output:  {config.output_dir}")
    print(f"Audio:   {'ffmpeg encoder (lossy)' if config.force_lossy else 'PCM (lossless), ffmpeg fallback'}")
    print()

    return asyncio.run(record(config, media_id=args.media_id, duration=args.duration))


if __name__ == "__main__":
    sys.exit(main())

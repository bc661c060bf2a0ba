"""
Chrome DevTools Protocol (CDP) media page.

Connects to a Chrome tab running with remote debugging enabled
(--remote-debugging-port=9222) and drives its <video> element through
``Runtime.evaluate``: seeking, playing, and taking caption snapshots.

Usage:
    # Start Chrome with debugging enabled:
    # chrome.exe --remote-debugging-port=9222 --user-data-dir="C:/ChromeDebug"

    page = CDPMediaPage()
    if await page.connect():
        snapshot = await page.snapshot(CAPTION_SELECTORS)
"""

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from ..media import MediaSource, PageSnapshot

logger = logging.getLogger(__name__)

# Serializes every selector's first match as {text} / {children} trees
SNAPSHOT_SCRIPT = """
(() => {
  const selectors = __SELECTORS__;
  const serialize = (node) => {
    if (node.nodeType === Node.TEXT_NODE) return {text: node.textContent};
    if (node.nodeType !== Node.ELEMENT_NODE) return null;
    return {children: Array.from(node.childNodes).map(serialize).filter(Boolean)};
  };
  const regions = selectors.map((selector) => {
    try {
      const el = document.querySelector(selector);
      return el ? serialize(el) : null;
    } catch (e) {
      return null;
    }
  });
  const video = document.querySelector('video');
  return {
    regions: regions,
    hasMedia: !!video,
    currentTime: video ? video.currentTime : 0,
    ended: video ? video.ended : false,
    paused: video ? video.paused : true,
    error: !!(video && video.error),
  };
})()
"""

HAS_MEDIA_SCRIPT = "!!document.querySelector('video')"

IS_PAUSED_SCRIPT = """
(() => {
  const video = document.querySelector('video');
  return video ? video.paused : true;
})()
"""

PLAY_SCRIPT = """
(() => {
  const video = document.querySelector('video');
  return video ? video.play().then(() => true) : false;
})()
"""

SEEK_SCRIPT = """
(() => {
  const video = document.querySelector('video');
  if (video) video.currentTime = __SECONDS__;
  return !!video;
})()
"""


def extract_media_id(url: str) -> Optional[str]:
    """
    Extract the media ID from common video platform URLs.

    Supports: Bilibili (BV ids), YouTube, Vimeo.
    """
    if not url:
        return None

    parsed = urlparse(url)

    # Bilibili
    match = re.search(r"/video/(BV[^/?]+)", parsed.path)
    if match:
        return match.group(1)

    # YouTube
    if "youtube.com" in parsed.netloc or "youtu.be" in parsed.netloc:
        if parsed.path == "/watch":
            qs = parse_qs(parsed.query)
            return qs.get("v", [None])[0]
        elif parsed.netloc == "youtu.be":
            return parsed.path.lstrip("/") or None

    # Vimeo
    if "vimeo.com" in parsed.netloc:
        match = re.search(r"/(\d+)", parsed.path)
        if match:
            return match.group(1)

    return None


class CDPMediaPage(MediaSource):
    """MediaSource backed by one Chrome tab over CDP."""

    def __init__(self, host: str = "localhost", port: int = 9222):
        self.host = host
        self.port = port
        self._ws = None
        self._msg_id = 0
        self._lock = asyncio.Lock()
        self._current_page_url = ""
        self._current_page_title = ""

    @property
    def endpoint(self) -> str:
        """Chrome debugger HTTP endpoint."""
        return f"http://{self.host}:{self.port}/json"

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def page_title(self) -> str:
        return self._current_page_title

    async def check_chrome(self) -> tuple[bool, str]:
        """
        Check if Chrome is running with debugging enabled.

        Returns:
            Tuple of (is_available, status_message)
        """
        import aiohttp

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(self.endpoint, timeout=aiohttp.ClientTimeout(total=2)) as resp:
                    if resp.status == 200:
                        tabs = await resp.json()
                        page_tabs = [t for t in tabs if t.get("type") == "page"]
                        return True, f"Connected ({len(page_tabs)} tabs)"
                    return False, f"HTTP {resp.status}"
        except aiohttp.ClientConnectorError:
            return False, f"Chrome not running with --remote-debugging-port={self.port}"
        except asyncio.TimeoutError:
            return False, "Connection timeout"
        except Exception as e:
            return False, str(e)

    async def get_tabs(self) -> list[dict]:
        """Get list of open Chrome tabs."""
        import aiohttp

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(self.endpoint) as resp:
                    tabs = await resp.json()
                    return [t for t in tabs if t.get("type") == "page"]
        except Exception as e:
            logger.error(f"Failed to get tabs: {e}")
            return []

    async def connect(self, tab_index: int = 0) -> bool:
        """
        Attach to a tab, preferring one whose URL carries a media ID.

        Returns:
            True once the debugger socket is open
        """
        import websockets

        tabs = await self.get_tabs()
        if not tabs:
            logger.error("No Chrome tabs available")
            return False

        media_tab_index = None
        for i, t in enumerate(tabs):
            if extract_media_id(t.get("url", "")):
                media_tab_index = i
                break

        if media_tab_index is not None:
            tab_index = media_tab_index
            logger.info(f"Found video tab at index {tab_index}")
        elif tab_index >= len(tabs):
            tab_index = 0

        tab = tabs[tab_index]
        ws_url = tab.get("webSocketDebuggerUrl")
        if not ws_url:
            logger.error("Tab doesn't have WebSocket URL - is another debugger connected?")
            return False

        self._current_page_url = tab.get("url", "")
        self._current_page_title = tab.get("title", "")

        logger.info(f"Connecting to tab: {self._current_page_title}")
        logger.info(f"URL: {self._current_page_url}")

        try:
            self._ws = await websockets.connect(ws_url, max_size=None)
        except Exception as e:
            logger.error(f"CDP connect failed: {e}")
            return False
        return True

    async def close(self) -> None:
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()
            logger.info("CDP connection closed")

    async def _send_command(self, method: str, params: dict = None) -> int:
        """Send CDP command."""
        self._msg_id += 1
        msg = {
            "id": self._msg_id,
            "method": method,
            "params": params or {},
        }
        await self._ws.send(json.dumps(msg))
        return self._msg_id

    async def _call(self, method: str, params: dict = None) -> dict:
        """Send a command and wait for the reply with the same id."""
        if self._ws is None:
            raise ConnectionError("Not connected to a Chrome tab")

        async with self._lock:
            msg_id = await self._send_command(method, params)
            while True:
                message = await self._ws.recv()
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if data.get("id") != msg_id:
                    continue
                if "error" in data:
                    raise RuntimeError(f"CDP {method} failed: {data['error'].get('message', data['error'])}")
                return data.get("result", {})

    async def evaluate(self, expression: str, await_promise: bool = False) -> Any:
        """Evaluate JavaScript in the page and return the JSON value."""
        result = await self._call(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": await_promise},
        )
        if "exceptionDetails" in result:
            details = result["exceptionDetails"]
            description = details.get("exception", {}).get("description") or details.get("text", "")
            raise RuntimeError(f"Page script failed: {description}")
        return result.get("result", {}).get("value")

    async def media_id(self) -> Optional[str]:
        if self._ws is not None:
            try:
                self._current_page_url = await self.evaluate("location.href") or self._current_page_url
            except Exception as e:
                logger.debug(f"Could not read page URL: {e}")
        return extract_media_id(self._current_page_url)

    async def has_media(self) -> bool:
        return bool(await self.evaluate(HAS_MEDIA_SCRIPT))

    async def seek(self, seconds: float) -> None:
        await self.evaluate(SEEK_SCRIPT.replace("__SECONDS__", repr(float(seconds))))

    async def is_paused(self) -> bool:
        return bool(await self.evaluate(IS_PAUSED_SCRIPT))

    async def play(self) -> None:
        await self.evaluate(PLAY_SCRIPT, await_promise=True)

    async def snapshot(self, selectors: Sequence[str]) -> PageSnapshot:
        script = SNAPSHOT_SCRIPT.replace("__SELECTORS__", json.dumps(list(selectors)))
        data = await self.evaluate(script)
        return PageSnapshot.from_dict(data or {"hasMedia": False})


def get_chrome_launch_command(port: int = 9222) -> str:
    """Get command to launch Chrome with remote debugging enabled."""
    import platform

    if platform.system() == "Windows":
        return f'start chrome.exe --remote-debugging-port={port} --user-data-dir="%TEMP%\\ChromeDebug"'
    elif platform.system() == "Darwin":
        return f'/Applications/Google\\ Chrome.app/Contents/MacOS/Google\\ Chrome --remote-debugging-port={port} --user-data-dir="/tmp/ChromeDebug" &'
    else:
        return f'google-chrome --remote-debugging-port={port} --user-data-dir="/tmp/ChromeDebug" &'

"""Chrome DevTools Protocol access to the playing media page."""

from .page import (
    CDPMediaPage,
    extract_media_id,
    get_chrome_launch_command,
)

__all__ = [
    "CDPMediaPage",
    "extract_media_id",
    "get_chrome_launch_command",
]

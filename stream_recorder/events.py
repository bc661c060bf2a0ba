"""Structured events reported to whoever drives the recorder."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of session events."""

    RECORDING_STARTED = "recording_started"
    RECORDING_STOPPED = "recording_stopped"
    CAPTURE_DEGRADED = "capture_degraded"
    DOWNLOAD_COMPLETE = "download_complete"
    ERROR = "error"


@dataclass
class SessionEvent:
    """One event emitted by the session controller."""

    type: EventType
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self):
        return f"SessionEvent({self.type.value}: {self.message})"


EventCallback = Callable[[SessionEvent], None]


def log_event(event: SessionEvent) -> None:
    """Default event sink: write the event to the log."""
    if event.type is EventType.ERROR:
        logger.error(event.message)
    elif event.type is EventType.CAPTURE_DEGRADED:
        logger.warning(event.message)
    else:
        logger.info(event.message)

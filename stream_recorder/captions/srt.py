"""
SRT synthesis from caption observations.

Observations are point-in-time samples of the caption overlay. They are
deduplicated, sorted by media time, and given end times from the next
entry's start (or a fixed trailing duration for the last entry).
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TRAILING_DURATION = 3.0  # seconds shown for the last entry
DEDUPE_WINDOW = 1.0  # same text closer than this is one caption


@dataclass
class CaptionObservation:
    """Caption text seen on screen at a media time (seconds)."""
    text: str
    timestamp: float


@dataclass
class CaptionEntry:
    """One numbered SRT record."""
    index: int
    start: float
    end: float
    text: str


def deduplicate(
    observations: Iterable[CaptionObservation],
    window: float = DEDUPE_WINDOW,
) -> list[CaptionObservation]:
    """
    Drop repeats of the same text seen within ``window`` seconds of a kept one.

    The first occurrence wins; input order is preserved.
    """
    kept: list[CaptionObservation] = []
    seen: dict[str, list[float]] = {}

    for obs in observations:
        times = seen.setdefault(obs.text, [])
        if any(abs(obs.timestamp - t) < window for t in times):
            continue
        times.append(obs.timestamp)
        kept.append(obs)

    return kept


def synthesize(
    observations: Iterable[CaptionObservation],
    trailing_duration: float = TRAILING_DURATION,
    dedupe_window: float = DEDUPE_WINDOW,
) -> list[CaptionEntry]:
    """Build numbered, time-ordered caption entries."""
    unique = deduplicate(observations, dedupe_window)
    # sorted() is stable, so equal timestamps keep their arrival order
    ordered = sorted(unique, key=lambda obs: obs.timestamp)

    entries = []
    for i, obs in enumerate(ordered):
        if i + 1 < len(ordered):
            end = ordered[i + 1].timestamp
        else:
            end = obs.timestamp + trailing_duration
        entries.append(CaptionEntry(index=i + 1, start=obs.timestamp, end=end, text=obs.text))
    return entries


def format_time_for_srt(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``; hours are not capped at 99."""
    total_ms = max(0, round(seconds * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def render_srt(entries: Sequence[CaptionEntry]) -> str:
    """Serialize entries; no entries gives an empty string."""
    return "".join(
        f"{e.index}\n{format_time_for_srt(e.start)} --> {format_time_for_srt(e.end)}\n{e.text}\n\n"
        for e in entries
    )


def generate_srt(
    observations: Iterable[CaptionObservation],
    trailing_duration: float = TRAILING_DURATION,
    dedupe_window: float = DEDUPE_WINDOW,
) -> str:
    entries = synthesize(observations, trailing_duration, dedupe_window)
    logger.debug(f"Generated {len(entries)} caption entries")
    return render_srt(entries)

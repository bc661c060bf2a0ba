"""Caption sampling state machine."""

import logging
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..config import CAPTION_SELECTORS
from .dom import extract_candidate_text, locate_region
from .srt import CaptionObservation, format_time_for_srt
from .text import clean_caption_text, is_filtered_text

if TYPE_CHECKING:
    from ..media import PageSnapshot

logger = logging.getLogger(__name__)


class SamplerState(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"


class CaptionSampler:
    """
    Turns page snapshots into a log of caption observations.

    Each call to ``sample()`` inspects one snapshot; a caption is recorded
    only when its cleaned text differs from the last recorded one. An ended
    snapshot returns the sampler to IDLE.
    """

    def __init__(self, selectors: Sequence[str] = CAPTION_SELECTORS):
        self.selectors = tuple(selectors)
        self.state = SamplerState.IDLE
        self.observations: list[CaptionObservation] = []
        self.last_text = ""

    @property
    def is_sampling(self) -> bool:
        return self.state is SamplerState.SAMPLING

    def start(self):
        if self.is_sampling:
            logger.debug("Caption sampler already running")
            return
        self.observations = []
        self.last_text = ""
        self.state = SamplerState.SAMPLING
        logger.info("📝 Caption capture started")

    def stop(self):
        if not self.is_sampling:
            return
        self.state = SamplerState.IDLE
        logger.info(f"📝 Caption capture stopped: {len(self.observations)} captions")

    def sample(self, snapshot: "PageSnapshot") -> Optional[str]:
        """
        Inspect one snapshot.

        Returns:
            The newly accepted caption text, or None
        """
        if not self.is_sampling:
            return None

        accepted = None
        region = locate_region(snapshot.regions, self.selectors)
        if region is not None:
            candidate = extract_candidate_text(region)
            text = clean_caption_text(candidate) or candidate
            if text and not is_filtered_text(text) and text != self.last_text:
                accepted = self._record(text, snapshot.current_time)

        if snapshot.ended:
            logger.info("🎬 Media ended")
            self.stop()

        return accepted

    def _record(self, text: str, timestamp: float) -> str:
        if self.observations and timestamp < self.observations[-1].timestamp:
            logger.debug(
                f"Media clock went back to {format_time_for_srt(timestamp)}, "
                "captions will be reordered"
            )
        self.observations.append(CaptionObservation(text=text, timestamp=timestamp))
        self.last_text = text
        logger.info(f"📝 [{format_time_for_srt(timestamp)}] {text}")
        return text

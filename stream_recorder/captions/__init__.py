"""Caption capture and SRT synthesis."""

from .dom import DomNode, extract_candidate_text, locate_region
from .sampler import CaptionSampler, SamplerState
from .srt import (
    CaptionEntry,
    CaptionObservation,
    deduplicate,
    format_time_for_srt,
    generate_srt,
    render_srt,
    synthesize,
)
from .text import FILTER_KEYWORDS, clean_caption_text, is_filtered_text

__all__ = [
    "CaptionEntry",
    "CaptionObservation",
    "CaptionSampler",
    "DomNode",
    "FILTER_KEYWORDS",
    "SamplerState",
    "clean_caption_text",
    "deduplicate",
    "extract_candidate_text",
    "format_time_for_srt",
    "generate_srt",
    "is_filtered_text",
    "locate_region",
    "render_srt",
    "synthesize",
]

"""
Caption region trees and text extraction.

The page serializes each matched caption region into nested ``DomNode``s
(text nodes and element nodes only), so extraction runs as plain Python over
a snapshot instead of inside the page.
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Callable, Optional

from .text import is_filtered_text

logger = logging.getLogger(__name__)


@dataclass
class DomNode:
    """A text node (``text`` set) or an element node (``children``)."""

    text: Optional[str] = None
    children: list["DomNode"] = field(default_factory=list)

    @classmethod
    def text_node(cls, text: str) -> "DomNode":
        return cls(text=text)

    @classmethod
    def element(cls, *children: "DomNode | str") -> "DomNode":
        """Build an element; plain strings become text nodes."""
        nodes = [cls.text_node(c) if isinstance(c, str) else c for c in children]
        return cls(children=nodes)

    @classmethod
    def from_dict(cls, data: dict) -> "DomNode":
        """Build a tree from the page's JSON serialization."""
        if "text" in data and data["text"] is not None:
            return cls(text=str(data["text"]))
        return cls(children=[cls.from_dict(child) for child in data.get("children") or []])

    @property
    def is_text(self) -> bool:
        return self.text is not None

    @property
    def element_children(self) -> list["DomNode"]:
        return [child for child in self.children if not child.is_text]

    def text_content(self) -> str:
        """Concatenated text of all descendant text nodes, like DOM textContent."""
        if self.is_text:
            return self.text
        return "".join(child.text_content() for child in self.children)

    def iter_text_nodes(self) -> Iterator[str]:
        """Yield descendant text node values in document order."""
        if self.is_text:
            yield self.text
            return
        for child in self.children:
            yield from child.iter_text_nodes()


def locate_region(
    regions: Sequence[Optional[DomNode]],
    selectors: Sequence[str] = (),
) -> Optional[DomNode]:
    """Return the first matched region; ``regions`` follows selector order."""
    for i, region in enumerate(regions):
        if region is None:
            continue
        if i > 0 and i < len(selectors):
            logger.debug(f"Caption region matched fallback selector {selectors[i]!r}")
        return region
    return None


def extract_candidate_text(
    region: DomNode,
    is_noise: Callable[[str], bool] = is_filtered_text,
) -> str:
    """
    Pull the caption text out of a region.

    Tries, in order: the direct child elements' text, the descendant text
    nodes that are not UI noise, and finally the region's whole text.
    """
    child_texts = [child.text_content().strip() for child in region.element_children]
    child_texts = [text for text in child_texts if text]
    if child_texts:
        return " ".join(child_texts)

    node_texts = [text.strip() for text in region.iter_text_nodes()]
    node_texts = [text for text in node_texts if text and not is_noise(text)]
    if node_texts:
        return " ".join(node_texts)

    return region.text_content().strip()

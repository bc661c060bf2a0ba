"""The host media page as seen by the session controller."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from .captions.dom import DomNode


@dataclass
class PageSnapshot:
    """
    One poll of the page.

    ``regions`` holds the serialized caption region for each selector, in
    selector order, or None where the selector matched nothing.
    """

    regions: list[Optional[DomNode]] = field(default_factory=list)
    current_time: float = 0.0
    ended: bool = False
    error: bool = False
    has_media: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "PageSnapshot":
        regions = [DomNode.from_dict(r) if r else None for r in data.get("regions") or []]
        return cls(
            regions=regions,
            current_time=float(data.get("currentTime") or 0.0),
            ended=bool(data.get("ended")),
            error=bool(data.get("error")),
            has_media=bool(data.get("hasMedia", True)),
        )


class MediaSource(ABC):
    """A page hosting one playable media element."""

    @abstractmethod
    async def media_id(self) -> Optional[str]:
        """Identifier of the media, derived from the page URL."""
        pass

    @abstractmethod
    async def has_media(self) -> bool:
        pass

    @abstractmethod
    async def seek(self, seconds: float) -> None:
        pass

    @abstractmethod
    async def is_paused(self) -> bool:
        pass

    @abstractmethod
    async def play(self) -> None:
        pass

    @abstractmethod
    async def snapshot(self, selectors: Sequence[str]) -> PageSnapshot:
        pass

    async def close(self) -> None:
        pass

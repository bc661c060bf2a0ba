"""Writing finished artifacts to disk."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ..errors import DeliveryError

logger = logging.getLogger(__name__)

SRT_MIME_TYPE = "text/plain;charset=utf-8"

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(name: str) -> str:
    """Replace characters that are not allowed in file names."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return cleaned or "recording"


@dataclass
class Artifact:
    """A named file payload produced by a session."""
    filename: str
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class ArtifactWriter:
    """Saves artifacts into an output directory, created on first write."""

    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)

    def write(self, artifact: Artifact) -> Path:
        """
        Write one artifact, replacing any file of the same name.

        Raises:
            DeliveryError: If the file could not be written
        """
        path = self.output_dir / safe_filename(artifact.filename)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(artifact.data)
        except OSError as e:
            raise DeliveryError(f"Failed to save {path.name}: {e}") from e

        logger.info(f"💾 Saved {path} ({artifact.size / 1024 / 1024:.2f} MB)")
        return path

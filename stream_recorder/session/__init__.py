"""Session lifecycle and artifact delivery."""

from .controller import (
    CaptureSession,
    SessionController,
    SessionResult,
    SessionState,
    build_strategies,
)
from .delivery import Artifact, ArtifactWriter, safe_filename

__all__ = [
    "Artifact",
    "ArtifactWriter",
    "CaptureSession",
    "SessionController",
    "SessionResult",
    "SessionState",
    "build_strategies",
    "safe_filename",
]

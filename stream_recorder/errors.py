"""Exception types raised by the recorder."""


class RecorderError(Exception):
    """Base class for recorder errors."""


class SetupError(RecorderError):
    """A session could not be started (no media id, no media, no capture path)."""


class FinalizeError(RecorderError):
    """Captured data could not be turned into an audio artifact."""


class DecodeError(RecorderError):
    """A compressed recording could not be decoded to samples."""


class DeliveryError(RecorderError):
    """An artifact could not be written."""

"""Unit tests for logging setup, configuration defaults and events."""

import logging
from unittest.mock import MagicMock, patch

from stream_recorder import config
from stream_recorder.config import CaptureConfig, default_ffmpeg_input
from stream_recorder.events import EventType, SessionEvent, log_event
from stream_recorder.utils.logging import PACKAGE_LOGGER, set_log_level, setup_logging


class TestSetupLogging:
    """Tests for setup_logging and set_log_level."""

    def test_level_from_argument(self):
        """Test an explicit level on the package logger."""
        logger = setup_logging(level="DEBUG")
        assert logger.name == PACKAGE_LOGGER
        assert logger.level == logging.DEBUG

    def test_level_from_env(self, monkeypatch):
        """Test LOG_LEVEL fallback."""
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert setup_logging().level == logging.WARNING

    def test_unknown_level_is_info(self):
        """Test that a bad level falls back to INFO."""
        assert setup_logging(level="NOISY").level == logging.INFO

    def test_transport_loggers_are_quiet(self):
        """Test that websockets and aiohttp stay at WARNING."""
        setup_logging(level="DEBUG")
        assert logging.getLogger("websockets").level == logging.WARNING
        assert logging.getLogger("aiohttp").level == logging.WARNING

    def test_set_log_level(self):
        """Test changing the recorder level at runtime."""
        setup_logging(level="INFO")
        set_log_level("DEBUG")

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
        assert logging.getLogger("stream_recorder.session.controller").isEnabledFor(logging.DEBUG)
        assert logging.getLogger("websockets").level == logging.WARNING


class TestConfig:
    """Tests for configuration helpers and defaults."""

    def test_env_helpers(self, monkeypatch):
        """Test environment parsing with fallbacks."""
        monkeypatch.setenv("X_FLOAT", "0.75")
        monkeypatch.setenv("X_INT", "not-a-number")
        monkeypatch.setenv("X_BOOL", "yes")

        assert config._env_float("X_FLOAT", 1.0) == 0.75
        assert config._env_int("X_INT", 7) == 7
        assert config._env_bool("X_BOOL", False) is True
        assert config._env_bool("X_MISSING", True) is True

    def test_capture_config_defaults(self):
        """Test the per-run defaults."""
        cfg = CaptureConfig()

        assert cfg.poll_interval == config.POLL_INTERVAL
        assert cfg.block_size == config.BLOCK_SIZE
        assert cfg.caption_selectors[0] == ".bili-subtitle-x-subtitle-panel-text"
        assert len(cfg.caption_selectors) == 5
        assert cfg.force_lossy is False

    def test_default_ffmpeg_input(self):
        """Test platform capture inputs."""
        with patch("stream_recorder.config.platform.system", return_value="Windows"):
            assert default_ffmpeg_input() == ("dshow", "audio=Stereo Mix")
        with patch("stream_recorder.config.platform.system", return_value="Linux"):
            assert default_ffmpeg_input() == ("pulse", "default")


class TestEvents:
    """Tests for session events."""

    def test_str(self):
        """Test the event string form."""
        event = SessionEvent(EventType.ERROR, "boom")
        assert str(event) == "SessionEvent(error: boom)"

    def test_log_event_levels(self):
        """Test that event types map to log levels."""
        with patch("stream_recorder.events.logger", MagicMock()) as mock_logger:
            log_event(SessionEvent(EventType.ERROR, "bad"))
            log_event(SessionEvent(EventType.CAPTURE_DEGRADED, "worse"))
            log_event(SessionEvent(EventType.RECORDING_STARTED, "go"))

        mock_logger.error.assert_called_once_with("bad")
        mock_logger.warning.assert_called_once_with("worse")
        mock_logger.info.assert_called_once_with("go")

import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from pixelpipe.core.logging import (
    DEFAULT_LOG_LEVEL,
    NOISY_LIBRARIES,
    _get_loki_handler,
    create_error_response,
    log_dispatch,
    resolve_log_level,
    setup_logging,
)


# Ensure clean logging state between tests
@pytest.fixture(autouse=True)
def reset_logging():
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    root.handlers.clear()

    yield

    root.handlers.clear()
    root.handlers.extend(original_handlers)
    root.setLevel(original_level)


def make_settings(log_level=DEFAULT_LOG_LEVEL, loki_url=None, run_mode="prod"):
    settings = MagicMock()
    settings.get_log_level.return_value = log_level
    settings.get_loki_url.return_value = loki_url
    settings.get_run_mode.return_value = run_mode
    return settings


@patch("pixelpipe.core.logging.Settings")
def test_setup_logging_default_level(MockSettings):
    """Test setup_logging reads a fresh Settings and configures the default level."""
    MockSettings.return_value = make_settings()

    assert setup_logging() == "INFO"

    root_logger = logging.getLogger()
    assert root_logger.level == logging.INFO
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0], logging.StreamHandler)

    # Noisy libraries are suppressed
    for lib_name in NOISY_LIBRARIES:
        assert logging.getLogger(lib_name).level == logging.WARNING


def test_setup_logging_specific_level():
    assert setup_logging(make_settings("DEBUG")) == "DEBUG"

    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_invalid_level(capsys):
    """Test setup_logging defaults to INFO and warns on an invalid level."""
    assert setup_logging(make_settings("INVALID_LEVEL")) == "INFO"

    captured = capsys.readouterr()
    assert "WARNING: Invalid LOG_LEVEL 'INVALID_LEVEL'" in captured.err
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_replaces_existing_handlers():
    stale = logging.NullHandler()
    logging.getLogger().addHandler(stale)

    setup_logging(make_settings())

    assert stale not in logging.getLogger().handlers


@patch("pixelpipe.core.logging._get_loki_handler")
def test_setup_logging_adds_loki_handler(mock_get_loki_handler):
    loki_handler = logging.NullHandler()
    mock_get_loki_handler.return_value = loki_handler

    setup_logging(make_settings(loki_url="http://loki:3100", run_mode="dev"))

    mock_get_loki_handler.assert_called_once_with("http://loki:3100", "dev")
    assert loki_handler in logging.getLogger().handlers


@patch("pixelpipe.core.logging._get_loki_handler", return_value=None)
def test_setup_logging_without_usable_loki_handler(mock_get_loki_handler):
    setup_logging(make_settings(loki_url="http://loki:3100"))

    assert len(logging.getLogger().handlers) == 1


@pytest.mark.parametrize("value, expected", [("debug", "DEBUG"), (" WARNING ", "WARNING"), ("verbose", "INFO")])
def test_resolve_log_level(value, expected):
    assert resolve_log_level(value) == expected


class TestGetLokiHandler:
    def test_builds_handler(self):
        logging_loki = MagicMock()
        with patch.dict(sys.modules, {"logging_loki": logging_loki}):
            handler = _get_loki_handler("http://loki:3100/", "dev")

        assert handler is logging_loki.LokiHandler.return_value
        logging_loki.LokiHandler.assert_called_once_with(
            url="http://loki:3100/loki/api/v1/push",
            tags={"application": "pixelpipe", "run_mode": "dev"},
            version="1",
        )
        handler.setFormatter.assert_called_once()

    def test_library_missing(self):
        # A None entry in sys.modules makes the import raise ImportError
        with patch.dict(sys.modules, {"logging_loki": None}):
            assert _get_loki_handler("http://loki:3100", "prod") is None

    @pytest.mark.parametrize("loki_url", ["loki:3100", "", "/just/a/path"])
    def test_invalid_url(self, loki_url):
        logging_loki = MagicMock()
        with patch.dict(sys.modules, {"logging_loki": logging_loki}):
            assert _get_loki_handler(loki_url, "prod") is None

        logging_loki.LokiHandler.assert_not_called()


class TestLogDispatch:
    def test_completed_is_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pixelpipe.events.dispatch"):
            log_dispatch("image.get", "Listener.method", "completed", duration=0.5)

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.event_name == "image.get"
        assert record.listener_name == "Listener.method"
        assert record.duration_seconds == "0.5"

    def test_error_is_error(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pixelpipe.events.dispatch"):
            log_dispatch("image.put", "Listener.method", "error", error="boom", details={"error_type": "ValueError"})

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error == "boom"
        assert record.error_type == "ValueError"


class TestCreateErrorResponse:
    def test_basic(self):
        response = create_error_response(status_code=404, message="Image not found")

        assert response == {"error": {"code": 404, "message": "Image not found", "errorCode": None}}

    def test_error_code(self):
        response = create_error_response(status_code=400, message="Hash mismatch", error_code=202)

        assert response["error"]["errorCode"] == 202

    def test_debug_info(self):
        response = create_error_response(
            status_code=500, message="Internal error", details={"key": "value"}, include_debug_info=True
        )

        assert "timestamp" in response["debug"]
        assert "key" in response["debug"]

    @pytest.mark.parametrize("details, include_debug_info", [(None, True), ({}, True), ({"key": "value"}, False)])
    def test_no_debug_info(self, details, include_debug_info):
        response = create_error_response(
            status_code=400, message="Bad", details=details, include_debug_info=include_debug_info
        )

        assert "debug" not in response

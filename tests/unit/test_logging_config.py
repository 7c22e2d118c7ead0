"""
Unit tests for structured logging configuration.
"""

import json
import logging
from pathlib import Path

import pytest
import structlog
from mrcloud.logging_config import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_chunk_upload,
    log_request,
    log_token_refresh,
    mask_token,
    set_correlation_id,
    setup_logging,
)


class TestLoggingConfiguration:
    """Test structured logging configuration functionality."""

    def test_setup_logging_default(self):
        """Test setup_logging with default parameters."""
        setup_logging()

        logger = get_logger("test")
        assert hasattr(logger, 'info') and hasattr(logger, 'warning') and hasattr(logger, 'error')

    def test_setup_logging_with_level(self):
        """Test setup_logging with custom log level."""
        setup_logging(level="DEBUG")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG

    def test_setup_logging_quiets_httpx(self):
        """Test that httpx request lines stay below INFO output."""
        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_setup_logging_with_file(self, temp_dir: Path):
        """Test setup_logging with log file."""
        log_file = temp_dir / "logs" / "test.log"
        setup_logging(level="INFO", log_file=log_file, json_format=True)

        logger = get_logger("test_file")
        logger.info("test_message", key="value")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        line = log_file.read_text().strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "test_message"
        assert event["key"] == "value"


class TestCorrelationId:
    """Test correlation ID context handling."""

    def test_set_generates_id(self):
        correlation_id = set_correlation_id()
        try:
            assert correlation_id
            assert get_correlation_id() == correlation_id
        finally:
            clear_correlation_id()

    def test_set_explicit_id(self):
        set_correlation_id("upload-42")
        try:
            assert get_correlation_id() == "upload-42"
        finally:
            clear_correlation_id()

    def test_clear(self):
        set_correlation_id("x")
        clear_correlation_id()
        assert get_correlation_id() is None


class TestMaskToken:
    """Test that tokens are never rendered in full."""

    def test_empty_token(self):
        assert mask_token(None) == "<none>"
        assert mask_token("") == "<none>"

    def test_short_token_fully_masked(self):
        assert mask_token("abc") == "***"

    def test_long_token_keeps_suffix(self):
        masked = mask_token("0123456789abcdef")
        assert masked == "***cdef"
        assert "0123" not in masked


class TestLoggingHelpers:
    """Test convenience logging helpers."""

    @pytest.fixture(autouse=True)
    def _capture(self):
        with structlog.testing.capture_logs() as logs:
            self.logs = logs
            yield

    def test_log_request_success_is_debug(self):
        log_request(get_logger("t"), "GET", "https://cloud.mail.ru/api/v2/folder", 200, 12.5)
        assert self.logs[0]["log_level"] == "debug"
        assert self.logs[0]["status_code"] == 200

    def test_log_request_server_error_is_warning(self):
        log_request(get_logger("t"), "GET", "https://cloud.mail.ru/x", 503, 1.0)
        assert self.logs[0]["log_level"] == "warning"

    def test_log_token_refresh_failure(self):
        log_token_refresh(get_logger("t"), success=False, reason="invalid_grant")
        assert self.logs[0]["event"] == "token_refresh_failed"
        assert self.logs[0]["reason"] == "invalid_grant"
        assert self.logs[0]["log_level"] == "error"

    def test_log_token_refresh_success(self):
        log_token_refresh(get_logger("t"), success=True, expires_in=3600)
        assert self.logs[0]["event"] == "token_refresh"
        assert self.logs[0]["expires_in"] == 3600

    def test_log_chunk_upload(self):
        log_chunk_upload(get_logger("t"), "/a.bin", 4, 4, 2, False, error="reset")
        entry = self.logs[0]
        assert entry["event"] == "chunk_upload_failed"
        assert entry["offset"] == 4
        assert entry["attempt"] == 2
        assert entry["error"] == "reset"

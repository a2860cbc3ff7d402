"""Tests for logger setup and masking."""

import logging
from unittest.mock import patch

import pytest

from thinkedin.core.logger import SensitiveDataFilter, get_logger, setup_logger


def _record(msg):
    return logging.LogRecord("thinkedin", logging.INFO, __file__, 1, msg, None, None)


class TestSensitiveDataFilter:

    def test_masks_api_key_in_url(self):
        record = _record("GET https://x.example/v1/docs?key=AIzaSecret&alt=json")
        SensitiveDataFilter().filter(record)
        assert "AIzaSecret" not in record.msg
        assert "key=[KEY_MASKED]&alt=json" in record.msg

    def test_masks_bearer_token(self):
        record = _record("Authorization: Bearer eyJhbGciOi.abc-123")
        SensitiveDataFilter().filter(record)
        assert record.msg == "Authorization: Bearer [TOKEN_MASKED]"

    def test_masks_email(self):
        record = _record("Sign-in failed for jane.doe+x@mail.example.com")
        SensitiveDataFilter().filter(record)
        assert record.msg == "Sign-in failed for [EMAIL_MASKED]"

    def test_never_drops_records(self):
        assert SensitiveDataFilter().filter(_record("plain")) is True


class TestSetupLogger:

    @pytest.fixture(autouse=True)
    def clean_handlers(self):
        logger = logging.getLogger("thinkedin")
        saved = list(logger.handlers)
        logger.handlers = []
        yield
        for handler in logger.handlers:
            handler.close()
        logger.handlers = saved

    def test_creates_log_file_and_handlers(self, tmp_dir):
        with patch("thinkedin.core.logger.LOG_DIR", tmp_dir / "logs"):
            logger = setup_logger("DEBUG", mask_logs=True)

        assert logger is get_logger()
        assert len(logger.handlers) == 2
        assert (tmp_dir / "logs" / "thinkedin.log").exists()
        assert all(
            any(isinstance(f, SensitiveDataFilter) for f in h.filters) for h in logger.handlers
        )

    def test_second_call_is_noop(self, tmp_dir):
        with patch("thinkedin.core.logger.LOG_DIR", tmp_dir / "logs"):
            setup_logger()
            logger = setup_logger()
        assert len(logger.handlers) == 2

    def test_no_filter_when_masking_disabled(self, tmp_dir):
        with patch("thinkedin.core.logger.LOG_DIR", tmp_dir / "logs"):
            logger = setup_logger(mask_logs=False)
        assert all(not h.filters for h in logger.handlers)

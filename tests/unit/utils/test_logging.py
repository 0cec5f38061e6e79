"""Test module for logging setup and secret redaction."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator

import pytest

from gcm_queue.utils.logging import SecretRedactingFilter, configure_logging
from gcm_queue.utils.sanitization import REDACTED

SERVER_KEY = "AIza" + "Q9_-" * 8 + "abc"


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    """Restore root handlers and level after a test reconfigures logging."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def make_record(msg: str, *args: object, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("gcm_queue.test", logging.INFO, __file__, 1, msg, args, None)
    for name, value in extra.items():
        setattr(record, name, value)
    return record


class TestSecretRedactingFilter:
    """Test suite for SecretRedactingFilter."""

    def test_message_text_redacted(self) -> None:
        record = make_record(f"Authorization: key={SERVER_KEY}")

        assert SecretRedactingFilter().filter(record) is True
        assert record.getMessage() == f"Authorization: key={REDACTED}"

    def test_args_redacted(self) -> None:
        record = make_record("Authorization: key=%s (attempt %d)", SERVER_KEY, 2)

        _ = SecretRedactingFilter().filter(record)

        assert record.getMessage() == f"Authorization: key={REDACTED} (attempt 2)"

    def test_extra_fields_redacted(self) -> None:
        record = make_record("Rejected", api_key="secret-value", recipients=3)

        _ = SecretRedactingFilter().filter(record)

        assert getattr(record, "api_key") == REDACTED
        assert getattr(record, "recipients") == 3

    def test_standard_attributes_untouched(self) -> None:
        record = make_record("Sending message")

        _ = SecretRedactingFilter().filter(record)

        assert record.name == "gcm_queue.test"
        assert record.levelno == logging.INFO


class TestConfigureLogging:
    """Test suite for configure_logging."""

    def test_installs_single_console_handler(self, restore_root_logger: logging.Logger) -> None:
        configure_logging(log_level="DEBUG", stream=io.StringIO())
        configure_logging(log_level="DEBUG", stream=io.StringIO())

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.DEBUG

    def test_console_output_is_redacted(self, restore_root_logger: logging.Logger) -> None:
        stream = io.StringIO()
        configure_logging(log_level="INFO", stream=stream)

        logging.getLogger("gcm_queue.sender").info("Authorization: key=%s", SERVER_KEY)

        output = stream.getvalue()
        assert SERVER_KEY not in output
        assert f"Authorization: key={REDACTED}" in output
        assert "gcm_queue.sender - INFO" in output

    def test_level_filters_records(self, restore_root_logger: logging.Logger) -> None:
        stream = io.StringIO()
        configure_logging(log_level="warning", stream=stream)

        logging.getLogger("gcm_queue.message").info("Ignoring unknown message field")

        assert stream.getvalue() == ""

    def test_console_disabled(self, restore_root_logger: logging.Logger) -> None:
        configure_logging(enable_console=False)

        assert restore_root_logger.handlers == []

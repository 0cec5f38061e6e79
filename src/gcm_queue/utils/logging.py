"""Logging setup with secret redaction.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed by applications through :func:`configure_logging`.
"""

import logging
import sys
from typing import Final, TextIO, override

from gcm_queue.utils.sanitization import sanitize_args, sanitize_text, sanitize_value

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are never user-supplied extra context
_STANDARD_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class SecretRedactingFilter(logging.Filter):
    """Logging filter that redacts API keys from log records.

    Sanitizes the message text, the % formatting args and any extra fields
    passed to the logger.

    Examples:
        >>> logger.info("Authorization: %s", "key=AIza...")
        # Logged as: "Authorization: key=<REDACTED>"

        >>> logger.warning("Rejected", extra={"api_key": "AIza..."})
        # record.api_key becomes "<REDACTED>"
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = sanitize_text(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = sanitize_args(record.args)

        for attr_name in list(record.__dict__.keys()):
            if attr_name not in _STANDARD_RECORD_ATTRS and not attr_name.startswith("_"):
                attr_value: object = getattr(record, attr_name)  # pyright: ignore[reportAny]
                setattr(record, attr_name, sanitize_value(attr_value, field_name=attr_name))

        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    enable_console: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging with a redacting console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Install the console handler
        stream: Stream for the console handler (default: stderr)

    Example:
        >>> configure_logging(log_level="DEBUG")
        >>> logging.getLogger(__name__).debug("Building message")
    """
    root_logger = logging.getLogger()

    level = getattr(logging, log_level.upper(), logging.INFO)  # pyright: ignore[reportAny]
    root_logger.setLevel(level)  # pyright: ignore[reportAny]

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(SecretRedactingFilter())
        root_logger.addHandler(console_handler)

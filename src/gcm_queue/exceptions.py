"""Error taxonomy for message validation and delivery."""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum
from typing import override


class GcmErrorType(IntEnum):
    """Kinds of GCM client errors, valued by their numeric error code."""

    ILLEGAL_API_KEY = 1
    AUTHENTICATION_ERROR = 2
    MALFORMED_REQUEST = 3
    UNKNOWN_ERROR = 4
    MALFORMED_RESPONSE = 5
    INVALID_PARAMS = 6
    INVALID_TTL = 7
    OUTSIDE_TTL = 8
    INVALID_TARGET = 9
    INVALID_PRIORITY = 10


class GcmError(Exception):
    """Base exception for all GCM client errors."""

    def __init__(
        self,
        error_type: GcmErrorType,
        message: str,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Initialize GcmError.

        Args:
            error_type: Kind of error
            message: Human-readable error message
            context: Additional context information for debugging
        """
        super().__init__(message)
        self.error_type: GcmErrorType = error_type
        self.message: str = message
        self.context: dict[str, object] = dict(context or {})

    @property
    def code(self) -> int:
        """Numeric error code."""
        return int(self.error_type)

    @override
    def __str__(self) -> str:
        return f"[{self.code} {self.error_type.name}] {self.message}"


class MessageError(GcmError):
    """Exception raised when a message field fails validation."""


class SenderError(GcmError):
    """Exception raised when a message cannot be delivered or the reply is unusable."""

    def __init__(
        self,
        error_type: GcmErrorType,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
        original_error: Exception | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Initialize SenderError.

        Args:
            error_type: Kind of error
            message: Error message
            status_code: HTTP status code if applicable
            retry_after: Retry-After time in seconds if the endpoint sent one
            original_error: Original exception that caused this error
            context: Additional context information
        """
        full_context = dict(context or {})
        if status_code is not None:
            full_context["status_code"] = status_code

        super().__init__(error_type, message, full_context)
        self.status_code: int | None = status_code
        self.retry_after: float | None = retry_after
        self.original_error: Exception | None = original_error

"""Secret sanitization utilities for logging and error messages.

Server API keys travel in the ``Authorization: key=...`` header and must
never reach log output. These helpers redact them from free text and from
structured logging context.

Examples:
    >>> sanitize_text("Authorization: key=AIzaSyExampleExampleExampleExample123")
    'Authorization: key=<REDACTED>'

    >>> sanitize_value({"api_key": "secret", "count": 42})
    {'api_key': '<REDACTED>', 'count': 42}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TypeIs

# Redaction marker for sanitized values
REDACTED = "<REDACTED>"

# Google server keys: "AIza" followed by 35 url-safe characters
_GOOGLE_API_KEY_PATTERN = re.compile(r"AIza[0-9A-Za-z_\-]{35}")

# key=..., api_key=..., token=... in headers, query strings or messages.
# A %-placeholder is not a value; log args are sanitized separately.
_SECRET_ASSIGNMENT_PATTERN = re.compile(
    r"(\b(?:api[-_]?key|key|token|auth|secret|bearer)=)([^&\s,;\"'%]+)",
    re.IGNORECASE,
)

# "Bearer <token>" style credentials
_BEARER_PATTERN = re.compile(r"(\bbearer\s+)([^\s,;\"'%]+)", re.IGNORECASE)

# Sensitive field name patterns (case-insensitive)
_SENSITIVE_FIELD_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r"^key$",
        r".*api[-_]?key.*",
        r".*server[-_]?key.*",
        r".*token.*",
        r".*secret.*",
        r".*password.*",
        r".*credential.*",
        r".*authorization.*",
    ]
]


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Examples:
        >>> is_sensitive_field("api_key")
        True
        >>> is_sensitive_field("collapse_key")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def sanitize_text(text: str) -> str:
    """Redact API keys and other credentials from a string.

    The surrounding text is preserved so the result stays useful for
    debugging.

    Args:
        text: Text to sanitize

    Returns:
        Text with secrets replaced by the REDACTED marker
    """
    if not text:
        return text

    sanitized = _GOOGLE_API_KEY_PATTERN.sub(REDACTED, text)
    sanitized = _SECRET_ASSIGNMENT_PATTERN.sub(rf"\1{REDACTED}", sanitized)
    return _BEARER_PATTERN.sub(rf"\1{REDACTED}", sanitized)


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Values are redacted when their field name looks sensitive; strings are
    passed through :func:`sanitize_text`; mappings and sequences are walked.

    Args:
        value: The value to sanitize
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_text(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items: list[object] = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    # Unknown objects are logged through their string form
    return sanitize_text(str(value))


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize the args tuple of a LogRecord before formatting."""
    return tuple(sanitize_value(arg) for arg in args)

"""Adapt raw demo form values into the inbound message field set.

Form inputs arrive as text: registration ids one per line, JSON documents
for the payloads, "1"/"0" for flags and empty strings for fields the user
left blank. This module turns them into the mapping consumed by
:meth:`gcm_queue.message.Message.from_dict`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Final

from gcm_queue.exceptions import GcmErrorType, MessageError

# Text fields passed through when non-empty
_TEXT_FIELDS: Final[tuple[str, ...]] = ("to", "collapse_key", "priority", "restricted_package_name")

# Flag fields passed through whenever present; Message coerces them
_FLAG_FIELDS: Final[tuple[str, ...]] = ("content_available", "delay_while_idle", "dry_run")

_JSON_FIELDS: Final[tuple[str, ...]] = ("data", "notification")


def split_registration_ids(text: str) -> list[str]:
    """Split newline-delimited registration ids, dropping blank lines.

    Example:
        >>> split_registration_ids("a\\r\\nb\\n\\n c ")
        ['a', 'b', 'c']
    """
    return [line.strip() for line in text.splitlines() if line.strip()]


def _decode_json_object(text: str, *, field: str) -> dict[str, object]:
    try:
        decoded: object = json.loads(text)  # pyright: ignore[reportAny]  # JSON boundary
    except json.JSONDecodeError as exc:
        raise MessageError(
            GcmErrorType.INVALID_PARAMS,
            f"{field} is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            {"field": field},
        ) from exc
    if not isinstance(decoded, dict):
        raise MessageError(
            GcmErrorType.INVALID_PARAMS,
            f"{field} must be a JSON object, got: {type(decoded).__name__}",
            {"field": field},
        )
    return decoded  # pyright: ignore[reportUnknownVariableType]  # JSON boundary


def build_field_set(form: Mapping[str, str | None]) -> dict[str, object]:
    """Build the wire-keyed field set from raw form values.

    Args:
        form: Raw values keyed by wire name; None means the field was not
            submitted at all

    Returns:
        Field set with blank fields left out

    Raises:
        MessageError: INVALID_PARAMS if a JSON field does not hold a JSON object
    """
    fields: dict[str, object] = {}

    for name in _TEXT_FIELDS:
        value = form.get(name)
        if value:
            fields[name] = value.strip()

    registration_ids = form.get("registration_ids")
    if registration_ids:
        ids = split_registration_ids(registration_ids)
        if ids:
            fields["registration_ids"] = ids

    for name in _FLAG_FIELDS:
        value = form.get(name)
        if value is not None:
            fields[name] = value

    time_to_live = form.get("time_to_live")
    if time_to_live is not None and time_to_live.strip() != "":
        fields["time_to_live"] = time_to_live.strip()

    for name in _JSON_FIELDS:
        value = form.get(name)
        if value and value.strip():
            fields[name] = _decode_json_object(value, field=name)

    return fields

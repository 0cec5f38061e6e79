"""Push message model with per-field validation and sparse wire encoding.

A Message holds exactly one target (a single ``to`` recipient or a list of
``registration_ids``) plus the optional delivery options and payloads of the
GCM HTTP API. Every setter validates its input before touching state, so a
rejected value leaves the message as it was.

Example:
    >>> message = Message.from_dict({"to": "ABC123", "priority": "normal"})
    >>> message.set_time_to_live(86400).to_dict()
    {'to': 'ABC123', 'priority': 'normal', 'time_to_live': 86400, 'notification': {}}
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Final, Self, override

from gcm_queue.exceptions import GcmErrorType, MessageError

logger = logging.getLogger(__name__)

MAX_SIZE: Final[int] = 4096
MAX_TTL: Final[int] = 2419200
MIN_TTL: Final[int] = 0
MAX_REG_IDS: Final[int] = 1000
DEFAULT_PRIORITY: Final[str] = "high"
VALID_PRIORITIES: Final[frozenset[str]] = frozenset({"high", "normal"})

_TRUE_STRINGS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off", ""})

# Decimal or exponent notation, optionally signed
_NUMERIC_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def encode_json(value: object) -> str:
    """Encode a value as compact JSON, the form used on the wire.

    Raises:
        TypeError: If the value is not JSON serializable
        ValueError: If the value contains NaN or infinity
    """
    return json.dumps(value, separators=(",", ":"), allow_nan=False)


def coerce_bool(value: object, *, field: str) -> bool:
    """Convert an inbound flag value to a bool.

    Accepted inputs are bools, the ints 0 and 1, and the strings "1", "true",
    "yes", "on" (True) or "0", "false", "no", "off", "" (False), compared
    case-insensitively after trimming.

    Args:
        value: Raw flag value
        field: Wire name of the field, used in the error message

    Returns:
        The boolean value

    Raises:
        MessageError: If the value is not an accepted representation
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise MessageError(
        GcmErrorType.INVALID_PARAMS,
        f"{field} must be a boolean flag, got: {value!r}",
        {"field": field},
    )


def _parse_time_to_live(value: object) -> int | None:
    if value is None:
        return None

    number: int | float | None = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and not math.isnan(value):
        number = value
    elif isinstance(value, str) and _NUMERIC_PATTERN.match(value.strip()):
        number = float(value.strip())

    if number is None:
        raise MessageError(
            GcmErrorType.INVALID_TTL,
            f"Invalid time_to_live: {value!r}",
            {"field": "time_to_live"},
        )
    if not MIN_TTL <= number <= MAX_TTL:
        raise MessageError(
            GcmErrorType.OUTSIDE_TTL,
            f"time_to_live must be between {MIN_TTL} and {MAX_TTL}. Value: {value!r}",
            {"field": "time_to_live"},
        )
    if isinstance(number, float) and not number.is_integer():
        raise MessageError(
            GcmErrorType.INVALID_TTL,
            f"time_to_live must be a whole number of seconds: {value!r}",
            {"field": "time_to_live"},
        )
    return int(number)


def _checked_mapping(
    value: object,
    *,
    field: str,
    too_deep: GcmErrorType = GcmErrorType.INVALID_PARAMS,
) -> dict[str, object]:
    """Deep-copy a JSON-serializable mapping or reject it.

    Nesting too deep to encode is reported as ``too_deep``.
    """
    if not isinstance(value, Mapping):
        raise MessageError(
            GcmErrorType.INVALID_PARAMS,
            f"{field} must be a mapping, got: {type(value).__name__}",
            {"field": field},
        )
    try:
        _ = encode_json(value)
        copied = copy.deepcopy(dict(value))  # pyright: ignore[reportUnknownArgumentType]  # caller-supplied mapping
    except (TypeError, ValueError) as exc:
        raise MessageError(
            GcmErrorType.INVALID_PARAMS,
            f"{field} is not JSON serializable: {exc}",
            {"field": field},
        ) from exc
    except RecursionError as exc:
        raise MessageError(
            too_deep,
            f"{field} is nested too deeply to encode",
            {"field": field},
        ) from exc
    return copied


class Message:
    """A single GCM push request.

    Exactly one of ``to`` and ``registration_ids`` is populated at any time.
    Setters return the message so calls can be chained.
    """

    def __init__(self, target: str | Sequence[str]) -> None:
        """Create a message for one recipient or a list of recipients.

        Args:
            target: A registration token, notification key or topic, or a
                list of 1 to 1000 registration tokens

        Raises:
            MessageError: If the target is missing or of the wrong type
        """
        self._to: str = ""
        self._registration_ids: list[str] = []
        self._collapse_key: str | None = None
        self._priority: str = DEFAULT_PRIORITY
        self._content_available: bool = False
        self._delay_while_idle: bool = False
        self._time_to_live: int | None = None
        self._restricted_package_name: str = ""
        self._dry_run: bool = False
        self._data: dict[str, object] | None = None
        self._notification: dict[str, object] = {}

        if isinstance(target, str):
            _ = self.set_to(target)
        elif isinstance(target, (list, tuple)):
            _ = self.set_registration_ids(target)
        else:
            raise MessageError(
                GcmErrorType.INVALID_TARGET,
                f"Invalid or missing target: {type(target).__name__}",
            )

    @classmethod
    def from_dict(cls, fields: Mapping[str, object]) -> Message:
        """Build a message from a flat mapping of wire-format fields.

        The target is taken from ``to`` if it is set, otherwise from
        ``registration_ids``. Every other known key is passed to its setter;
        unknown keys are ignored.

        Args:
            fields: Mapping of wire keys (``to``, ``collapse_key``, ...) to values

        Returns:
            Populated message

        Raises:
            MessageError: If no target is given or any field fails validation
        """
        to = fields.get("to")
        registration_ids = fields.get("registration_ids")
        if to:
            message = cls(to)  # pyright: ignore[reportArgumentType]  # validated by the constructor
        elif registration_ids:
            # A bare string is not a list of ids; it must not become ``to``
            if not isinstance(registration_ids, (list, tuple)):
                raise MessageError(
                    GcmErrorType.INVALID_TARGET,
                    f"registration_ids must be a list, got: {type(registration_ids).__name__}",
                    {"field": "registration_ids"},
                )
            message = cls(registration_ids)  # pyright: ignore[reportUnknownArgumentType]  # validated by the constructor
        else:
            raise MessageError(
                GcmErrorType.INVALID_TARGET,
                "Invalid or missing target: expected 'to' or 'registration_ids'",
                {"fields": sorted(fields)},
            )

        for key, value in fields.items():
            if key in _TARGET_FIELDS:
                continue
            setter = FIELD_SETTERS.get(key)
            if setter is None:
                logger.debug("Ignoring unknown message field %r", key)
                continue
            _ = setter(message, value)
        return message

    def to_dict(self) -> dict[str, object]:
        """Project the message onto its sparse wire mapping.

        Fields still at their default are left out, except ``notification``,
        which is always present.
        """
        payload: dict[str, object] = {}
        if self._to != "":
            payload["to"] = self._to
        if self._registration_ids:
            payload["registration_ids"] = list(self._registration_ids)
        if self._collapse_key is not None:
            payload["collapse_key"] = self._collapse_key
        if self._priority != DEFAULT_PRIORITY:
            payload["priority"] = self._priority
        if self._content_available:
            payload["content_available"] = True
        if self._delay_while_idle:
            payload["delay_while_idle"] = True
        if self._time_to_live is not None:
            payload["time_to_live"] = self._time_to_live
        if self._restricted_package_name != "":
            payload["restricted_package_name"] = self._restricted_package_name
        if self._dry_run:
            payload["dry_run"] = True
        if self._data is not None:
            payload["data"] = copy.deepcopy(self._data)
        payload["notification"] = copy.deepcopy(self._notification)
        return payload

    def to_json(self) -> str:
        """Encode the wire mapping as compact JSON."""
        return encode_json(self.to_dict())

    @override
    def __str__(self) -> str:
        return self.to_json()

    @override
    def __repr__(self) -> str:
        return f"Message({self.to_dict()!r})"

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def to(self) -> str:
        return self._to

    def set_to(self, to: str) -> Self:
        """Address the message to a single recipient.

        Clears any registration ids.

        Raises:
            MessageError: If ``to`` is not a non-empty string
        """
        if not isinstance(to, str) or not to:  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise MessageError(
                GcmErrorType.INVALID_TARGET,
                f"to must be a non-empty string, got: {to!r}",
                {"field": "to"},
            )
        self._to = to
        self._registration_ids = []
        return self

    @property
    def registration_ids(self) -> list[str]:
        return list(self._registration_ids)

    def set_registration_ids(self, registration_ids: Sequence[str]) -> Self:
        """Address the message to a list of registration tokens.

        Clears any single ``to`` recipient.

        Raises:
            MessageError: If the list has fewer than 1 or more than 1000
                entries (MALFORMED_REQUEST) or is not a list of strings
                (INVALID_TARGET)
        """
        if not isinstance(registration_ids, (list, tuple)):
            raise MessageError(
                GcmErrorType.INVALID_TARGET,
                f"registration_ids must be a list, got: {type(registration_ids).__name__}",
                {"field": "registration_ids"},
            )
        count = len(registration_ids)
        if not 1 <= count <= MAX_REG_IDS:
            raise MessageError(
                GcmErrorType.MALFORMED_REQUEST,
                f"registration_ids must contain 1-{MAX_REG_IDS} (inclusive) ids. Count: {count}",
                {"field": "registration_ids", "count": count},
            )
        if not all(isinstance(registration_id, str) for registration_id in registration_ids):  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise MessageError(
                GcmErrorType.INVALID_TARGET,
                "registration_ids must only contain strings",
                {"field": "registration_ids"},
            )
        self._registration_ids = list(registration_ids)
        self._to = ""
        return self

    @property
    def collapse_key(self) -> str | None:
        return self._collapse_key

    def set_collapse_key(self, collapse_key: str | None) -> Self:
        if collapse_key is not None and not isinstance(collapse_key, str):  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise MessageError(
                GcmErrorType.INVALID_PARAMS,
                f"collapse_key must be a string, got: {type(collapse_key).__name__}",
                {"field": "collapse_key"},
            )
        self._collapse_key = collapse_key
        return self

    @property
    def priority(self) -> str:
        return self._priority

    def set_priority(self, priority: str) -> Self:
        """Set delivery priority.

        Raises:
            MessageError: If priority is not "high" or "normal"
        """
        if not isinstance(priority, str) or priority not in VALID_PRIORITIES:  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise MessageError(
                GcmErrorType.INVALID_PRIORITY,
                f"priority must be high or normal, got: {priority!r}",
                {"field": "priority"},
            )
        self._priority = priority
        return self

    @property
    def content_available(self) -> bool:
        return self._content_available

    def set_content_available(self, content_available: object) -> Self:
        self._content_available = coerce_bool(content_available, field="content_available")
        return self

    @property
    def delay_while_idle(self) -> bool:
        return self._delay_while_idle

    def set_delay_while_idle(self, delay_while_idle: object) -> Self:
        self._delay_while_idle = coerce_bool(delay_while_idle, field="delay_while_idle")
        return self

    @property
    def time_to_live(self) -> int | None:
        return self._time_to_live

    def set_time_to_live(self, time_to_live: int | str | None) -> Self:
        """Set how long, in seconds, the endpoint keeps an undelivered message.

        None restores the server default.

        Raises:
            MessageError: INVALID_TTL if the value is not numeric,
                OUTSIDE_TTL if it is outside [0, 2419200]
        """
        self._time_to_live = _parse_time_to_live(time_to_live)
        return self

    @property
    def restricted_package_name(self) -> str:
        return self._restricted_package_name

    def set_restricted_package_name(self, restricted_package_name: str) -> Self:
        if not isinstance(restricted_package_name, str):  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise MessageError(
                GcmErrorType.INVALID_PARAMS,
                f"restricted_package_name must be a string, got: {type(restricted_package_name).__name__}",
                {"field": "restricted_package_name"},
            )
        self._restricted_package_name = restricted_package_name
        return self

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def set_dry_run(self, dry_run: object) -> Self:
        self._dry_run = coerce_bool(dry_run, field="dry_run")
        return self

    @property
    def data(self) -> dict[str, object] | None:
        return copy.deepcopy(self._data)

    def set_data(self, data: Mapping[str, object]) -> Self:
        """Set the custom key-value payload.

        Raises:
            MessageError: MALFORMED_REQUEST if the encoded payload exceeds
                4096 bytes, INVALID_PARAMS if it is not a JSON mapping
        """
        checked = _checked_mapping(data, field="data", too_deep=GcmErrorType.MALFORMED_REQUEST)
        size = len(encode_json(checked).encode("utf-8"))
        if size > MAX_SIZE:
            raise MessageError(
                GcmErrorType.MALFORMED_REQUEST,
                f"data payload exceeds limit (max {MAX_SIZE} bytes). Size: {size}",
                {"field": "data", "size": size},
            )
        self._data = checked
        return self

    @property
    def notification(self) -> dict[str, object]:
        return copy.deepcopy(self._notification)

    def set_notification(self, notification: Mapping[str, object]) -> Self:
        self._notification = _checked_mapping(notification, field="notification")
        return self


_TARGET_FIELDS: Final[frozenset[str]] = frozenset({"to", "registration_ids"})

# Wire key -> setter, used by Message.from_dict
FIELD_SETTERS: Final[Mapping[str, Callable[[Message, object], Message]]] = MappingProxyType(
    {
        "to": Message.set_to,
        "registration_ids": Message.set_registration_ids,
        "collapse_key": Message.set_collapse_key,
        "priority": Message.set_priority,
        "content_available": Message.set_content_available,
        "delay_while_idle": Message.set_delay_while_idle,
        "time_to_live": Message.set_time_to_live,
        "restricted_package_name": Message.set_restricted_package_name,
        "dry_run": Message.set_dry_run,
        "data": Message.set_data,
        "notification": Message.set_notification,
    }  # pyright: ignore[reportArgumentType]  # setters validate their own input types
)

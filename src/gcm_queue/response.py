"""Models for the GCM HTTP endpoint reply."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from pydantic import BaseModel, Field, ValidationError

from gcm_queue.exceptions import GcmErrorType, SenderError
from gcm_queue.message import Message

INVALID_REGISTRATION_ERRORS: Final[frozenset[str]] = frozenset({"InvalidRegistration", "NotRegistered"})
UNAVAILABLE_ERROR: Final[str] = "Unavailable"


class GcmResult(BaseModel):
    """Delivery outcome for one recipient."""

    message_id: str | int | None = None
    registration_id: str | None = Field(
        None,
        description="Canonical registration id replacing the one the message was sent to",
    )
    error: str | None = None


class GcmResponse(BaseModel):
    """Parsed reply of a successful (HTTP 200) send.

    Multicast replies carry counters and one result per registration id, in
    the order the ids were sent. Topic replies carry a single ``message_id``
    or ``error`` instead.
    """

    multicast_id: int | None = None
    success: int = Field(default=0, ge=0)
    failure: int = Field(default=0, ge=0)
    canonical_ids: int = Field(default=0, ge=0)
    results: list[GcmResult] = Field(default_factory=list)
    message_id: str | int | None = None
    error: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> GcmResponse:
        """Validate a decoded JSON reply.

        Raises:
            SenderError: MALFORMED_RESPONSE if the reply does not match the schema
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise SenderError(
                GcmErrorType.MALFORMED_RESPONSE,
                f"Unexpected response format: {exc.error_count()} validation error(s)",
                original_error=exc,
            ) from exc

    @property
    def is_successful(self) -> bool:
        return self.failure == 0 and self.error is None

    def to_dict(self) -> dict[str, object]:
        """Project the reply for display, leaving out unset fields."""
        return self.model_dump(exclude_none=True)

    def new_registration_ids(self, message: Message) -> dict[str, str]:
        """Map each sent id that the endpoint replaced to its canonical id."""
        return {
            sent: result.registration_id
            for sent, result in zip(_recipients(message), self.results)
            if result.registration_id is not None
        }

    def invalid_registration_ids(self, message: Message) -> list[str]:
        """Ids the endpoint rejected as invalid or no longer registered."""
        return [
            sent
            for sent, result in zip(_recipients(message), self.results)
            if result.error in INVALID_REGISTRATION_ERRORS
        ]

    def unavailable_registration_ids(self, message: Message) -> list[str]:
        """Ids that could not be reached this time and may be retried later."""
        return [
            sent
            for sent, result in zip(_recipients(message), self.results)
            if result.error == UNAVAILABLE_ERROR
        ]


def _recipients(message: Message) -> list[str]:
    return message.registration_ids or [message.to]

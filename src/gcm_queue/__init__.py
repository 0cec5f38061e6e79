"""gcm-queue - compose, validate and send Google Cloud Messaging push messages.

This package builds push messages with per-field validation, encodes them
into the sparse JSON payload the GCM HTTP endpoint expects and submits them
one at a time.
"""

from gcm_queue.exceptions import GcmError, GcmErrorType, MessageError, SenderError
from gcm_queue.message import Message
from gcm_queue.response import GcmResponse, GcmResult
from gcm_queue.sender import DEFAULT_GCM_URL, Sender, send

__all__ = [
    "DEFAULT_GCM_URL",
    "GcmError",
    "GcmErrorType",
    "GcmResponse",
    "GcmResult",
    "Message",
    "MessageError",
    "Sender",
    "SenderError",
    "send",
]

"""HTTP sender for GCM push messages.

Each call to :meth:`Sender.send` performs a single POST to the endpoint and
either returns the parsed reply or raises :class:`SenderError`. There is no
retry or backoff; callers that need them wrap the sender.
"""

from __future__ import annotations

import logging
import math
from typing import Final, Self
from urllib.parse import urlparse

import httpx

from gcm_queue.exceptions import GcmErrorType, SenderError
from gcm_queue.message import Message
from gcm_queue.response import GcmResponse
from gcm_queue.utils.sanitization import sanitize_text

logger = logging.getLogger(__name__)

DEFAULT_GCM_URL: Final[str] = "https://gcm-http.googleapis.com/gcm/send"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0

# Longest slice of an error body quoted in exception messages
_BODY_EXCERPT_LENGTH: Final[int] = 200


class Sender:
    """Synchronous GCM HTTP client.

    Example:
        >>> with Sender(api_key="AIza...") as sender:
        ...     response = sender.send(Message("registration-token"))
        ...     print(response.to_dict())
    """

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_GCM_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the sender.

        Args:
            api_key: Server API key sent as ``Authorization: key=...``
            url: GCM HTTP endpoint
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx client; the sender does not
                close clients it did not create

        Raises:
            SenderError: ILLEGAL_API_KEY if the key is blank, INVALID_PARAMS
                if the URL is not an http(s) URL
        """
        self.api_key: str = api_key
        self.url: str = url
        self.timeout: float = timeout

        self._validate_settings()

        self._client: httpx.Client | None = client
        self._owns_client: bool = client is None

    def _validate_settings(self) -> None:
        if not isinstance(self.api_key, str) or not self.api_key.strip():  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise SenderError(GcmErrorType.ILLEGAL_API_KEY, "Server API key is missing or blank")

        if not self.url:
            raise SenderError(GcmErrorType.INVALID_PARAMS, "Endpoint URL is missing")

        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise SenderError(
                GcmErrorType.INVALID_PARAMS,
                f"Endpoint URL must be an http or https URL: {sanitize_text(self.url)}",
            )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if the sender created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
            self._owns_client = True
        return self._client

    def send(self, message: Message) -> GcmResponse:
        """Send one message.

        Args:
            message: Validated message to deliver

        Returns:
            Parsed endpoint reply

        Raises:
            SenderError: If the request fails or the endpoint rejects it
        """
        if not isinstance(message, Message):  # pyright: ignore[reportUnnecessaryIsInstance]  # runtime input
            raise SenderError(
                GcmErrorType.INVALID_PARAMS,
                f"Expected a Message, got: {type(message).__name__}",
            )

        recipients = len(message.registration_ids) or 1
        logger.info("Sending message to %s (recipients=%d)", self.url, recipients)

        try:
            response = self._get_client().post(
                self.url,
                content=message.to_json(),
                headers={
                    "Authorization": f"key={self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException as exc:
            logger.warning("Request to %s timed out after %.1fs", self.url, self.timeout)
            raise SenderError(
                GcmErrorType.UNKNOWN_ERROR,
                f"Request timed out after {self.timeout:.1f}s",
                original_error=exc,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("HTTP error sending to %s: %s", self.url, exc)
            raise SenderError(
                GcmErrorType.UNKNOWN_ERROR,
                f"HTTP error: {sanitize_text(str(exc))}",
                original_error=exc,
            ) from exc

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> GcmResponse:
        status = response.status_code

        if status == 200:
            try:
                body: object = response.json()  # pyright: ignore[reportAny]  # JSON boundary
            except ValueError as exc:
                raise SenderError(
                    GcmErrorType.MALFORMED_RESPONSE,
                    "Response body is not valid JSON",
                    status_code=status,
                    original_error=exc,
                ) from exc
            if not isinstance(body, dict):
                raise SenderError(
                    GcmErrorType.MALFORMED_RESPONSE,
                    f"Expected a JSON object in response, got: {type(body).__name__}",
                    status_code=status,
                )
            parsed = GcmResponse.from_payload(body)  # pyright: ignore[reportUnknownArgumentType]  # JSON boundary
            logger.info(
                "Message accepted (success=%d, failure=%d, canonical_ids=%d)",
                parsed.success,
                parsed.failure,
                parsed.canonical_ids,
            )
            return parsed

        excerpt = sanitize_text(response.text[:_BODY_EXCERPT_LENGTH])

        if status == 400:
            logger.warning("Endpoint rejected the request as malformed (status=400)")
            raise SenderError(
                GcmErrorType.MALFORMED_REQUEST,
                f"Request could not be parsed as JSON: {excerpt}",
                status_code=status,
            )

        if status == 401:
            logger.warning("Authentication with the endpoint failed (status=401)")
            raise SenderError(
                GcmErrorType.AUTHENTICATION_ERROR,
                "Error authenticating the sender account",
                status_code=status,
            )

        retry_after = _parse_retry_after(response.headers)
        logger.warning("Unexpected response from endpoint (status=%d)", status)
        raise SenderError(
            GcmErrorType.UNKNOWN_ERROR,
            f"Unexpected status {status}: {excerpt}",
            status_code=status,
            retry_after=retry_after,
        )


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Read a Retry-After header given in seconds."""
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None

    try:
        seconds = float(retry_after)
    except ValueError:
        logger.warning("Retry-After header has unsupported format: %s", retry_after)
        return None

    if not math.isfinite(seconds) or seconds < 0:
        logger.warning("Retry-After header is out of range: %s", retry_after)
        return None
    return seconds


def send(
    message: Message,
    api_key: str,
    url: str = DEFAULT_GCM_URL,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> GcmResponse:
    """Send one message with a short-lived :class:`Sender`."""
    with Sender(api_key, url, timeout=timeout) as sender:
        return sender.send(message)

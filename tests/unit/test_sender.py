"""Unit tests for the HTTP sender.

Tests cover:
- Pre-flight validation of API key, URL and message
- Request shape (headers and JSON body)
- Status code to error kind mapping
- Transport failures
- Client ownership and cleanup
"""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import MagicMock, patch

import httpx
import pytest

from gcm_queue.exceptions import GcmErrorType, SenderError
from gcm_queue.message import Message
from gcm_queue.sender import DEFAULT_GCM_URL, Sender, send

ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]


@pytest.mark.unit
class TestSenderSettings:
    """Test validation of sender settings."""

    @pytest.mark.parametrize("api_key", ["", "   "])
    def test_blank_api_key(self, api_key: str) -> None:
        with pytest.raises(SenderError) as exc_info:
            _ = Sender(api_key)

        assert exc_info.value.error_type is GcmErrorType.ILLEGAL_API_KEY
        assert exc_info.value.code == 1

    @pytest.mark.parametrize("url", ["", "gcm-http.googleapis.com/gcm/send", "ftp://example.com/send"])
    def test_invalid_url(self, api_key: str, url: str) -> None:
        with pytest.raises(SenderError) as exc_info:
            _ = Sender(api_key, url)

        assert exc_info.value.error_type is GcmErrorType.INVALID_PARAMS

    def test_default_url(self, api_key: str) -> None:
        assert Sender(api_key).url == DEFAULT_GCM_URL

    def test_rejects_non_message(self, api_key: str) -> None:
        with pytest.raises(SenderError) as exc_info:
            _ = Sender(api_key).send({"to": "ABC123"})  # pyright: ignore[reportArgumentType]

        assert exc_info.value.error_type is GcmErrorType.INVALID_PARAMS


@pytest.mark.unit
class TestSend:
    """Test request building and response handling."""

    def test_request_shape(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"multicast_id": 1, "success": 1, "results": [{"message_id": "0:1"}]})

        message = Message("ABC123").set_priority("normal").set_time_to_live(3600)
        sender = Sender(api_key, endpoint_url, client=mock_client(handler))

        response = sender.send(message)

        assert response.success == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == endpoint_url
        assert request.headers["Authorization"] == f"key={api_key}"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {
            "to": "ABC123",
            "priority": "normal",
            "time_to_live": 3600,
            "notification": {},
        }

    def test_status_400(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        sender = Sender(api_key, endpoint_url, client=mock_client(lambda _: httpx.Response(400, text="bad json")))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.MALFORMED_REQUEST
        assert exc_info.value.status_code == 400
        assert "bad json" in exc_info.value.message

    def test_status_401(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        sender = Sender(api_key, endpoint_url, client=mock_client(lambda _: httpx.Response(401)))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.AUTHENTICATION_ERROR
        assert exc_info.value.code == 2

    def test_server_error_with_retry_after(
        self, api_key: str, endpoint_url: str, mock_client: ClientFactory
    ) -> None:
        sender = Sender(
            api_key,
            endpoint_url,
            client=mock_client(lambda _: httpx.Response(503, headers={"Retry-After": "120"})),
        )

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.UNKNOWN_ERROR
        assert exc_info.value.status_code == 503
        assert exc_info.value.retry_after == 120.0

    def test_retry_after_date_is_not_parsed(
        self, api_key: str, endpoint_url: str, mock_client: ClientFactory
    ) -> None:
        sender = Sender(
            api_key,
            endpoint_url,
            client=mock_client(
                lambda _: httpx.Response(500, headers={"Retry-After": "Fri, 31 Dec 1999 23:59:59 GMT"})
            ),
        )

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.retry_after is None

    @pytest.mark.parametrize("retry_after", ["nan", "inf", "-inf", "-5"])
    def test_retry_after_out_of_range_is_dropped(
        self, api_key: str, endpoint_url: str, mock_client: ClientFactory, retry_after: str
    ) -> None:
        sender = Sender(
            api_key,
            endpoint_url,
            client=mock_client(lambda _: httpx.Response(503, headers={"Retry-After": retry_after})),
        )

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.retry_after is None

    def test_non_json_reply(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        sender = Sender(api_key, endpoint_url, client=mock_client(lambda _: httpx.Response(200, text="<html>")))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.MALFORMED_RESPONSE
        assert exc_info.value.code == 5

    def test_non_object_reply(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        sender = Sender(api_key, endpoint_url, client=mock_client(lambda _: httpx.Response(200, json=[1, 2])))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.MALFORMED_RESPONSE

    def test_timeout(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        sender = Sender(api_key, endpoint_url, client=mock_client(handler))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.UNKNOWN_ERROR
        assert isinstance(exc_info.value.original_error, httpx.ReadTimeout)

    def test_connection_error(self, api_key: str, endpoint_url: str, mock_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        sender = Sender(api_key, endpoint_url, client=mock_client(handler))

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert exc_info.value.error_type is GcmErrorType.UNKNOWN_ERROR
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_api_key_not_in_error_messages(
        self, api_key: str, endpoint_url: str, mock_client: ClientFactory
    ) -> None:
        sender = Sender(
            api_key,
            endpoint_url,
            client=mock_client(lambda _: httpx.Response(400, text=f"rejected key={api_key}")),
        )

        with pytest.raises(SenderError) as exc_info:
            _ = sender.send(Message("ABC123"))

        assert api_key not in str(exc_info.value)


@pytest.mark.unit
class TestClientLifecycle:
    """Test HTTP client ownership."""

    def test_context_manager_closes_own_client(self, api_key: str) -> None:
        with Sender(api_key) as sender:
            client = sender._get_client()  # pyright: ignore[reportPrivateUsage]  # testing internal state
            assert not client.is_closed

        assert client.is_closed
        assert sender._client is None  # pyright: ignore[reportPrivateUsage]  # testing internal state

    def test_injected_client_is_left_open(self, api_key: str) -> None:
        client = httpx.Client()

        with Sender(api_key, client=client):
            pass

        assert not client.is_closed
        client.close()

    def test_module_send_uses_short_lived_sender(self, api_key: str) -> None:
        reply = MagicMock()
        with patch.object(Sender, "send", return_value=reply) as mock_send, patch.object(Sender, "close") as mock_close:
            result = send(Message("ABC123"), api_key)

        assert result is reply
        mock_send.assert_called_once()
        mock_close.assert_called_once()

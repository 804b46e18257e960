"""
Tests for the provider HTTP client and its error mapping.
"""

import pytest
import requests

from socgate.services.providers import (
    AuthError,
    PlatformError,
    ProviderHTTPClient,
    TransportError,
)


class TestProviderHTTPClient:
    def test_returns_decoded_json(self, http_client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"id": "1"})

        data = http_client.request_json(
            "GET",
            "https://example.test/items",
            provider="tiktok",
            params={"a": "b"},
        )

        assert data == {"id": "1"}
        mock_session.request.assert_called_once_with(
            "GET",
            "https://example.test/items",
            headers=None,
            params={"a": "b"},
            json=None,
            timeout=5,
        )

    @pytest.mark.parametrize(
        "exception",
        [
            requests.exceptions.ConnectionError("connection refused"),
            requests.exceptions.Timeout("timed out"),
        ],
    )
    def test_network_failures_become_transport_errors(
        self, http_client, mock_session, exception
    ):
        mock_session.request.side_effect = exception

        with pytest.raises(TransportError) as exc_info:
            http_client.request_json("POST", "https://example.test", provider="tiktok")

        assert exc_info.value.provider_type == "tiktok"
        assert isinstance(exc_info.value.__cause__, requests.exceptions.RequestException)

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_rejected_token_becomes_auth_error(
        self, http_client, mock_session, make_response, status_code
    ):
        mock_session.request.return_value = make_response(
            status_code, {"error": {"message": "token expired"}}
        )

        with pytest.raises(AuthError, match="token expired"):
            http_client.request_json("GET", "https://example.test", provider="facebook")

    @pytest.mark.parametrize("status_code", [400, 404, 429, 500, 503])
    def test_error_status_becomes_platform_error(
        self, http_client, mock_session, make_response, status_code
    ):
        mock_session.request.return_value = make_response(status_code, {"error": "nope"})

        with pytest.raises(PlatformError) as exc_info:
            http_client.request_json("GET", "https://example.test", provider="instagram")

        assert exc_info.value.status_code == status_code
        assert "nope" in str(exc_info.value)

    def test_invalid_json_body(self, http_client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, invalid_json=True)

        with pytest.raises(PlatformError, match="not a JSON object"):
            http_client.request_json("GET", "https://example.test", provider="tiktok")

    def test_non_object_json_body(self, http_client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, ["a", "b"])

        with pytest.raises(PlatformError):
            http_client.request_json("GET", "https://example.test", provider="tiktok")

    def test_default_session_retries_only_idempotent_methods(self):
        client = ProviderHTTPClient()

        adapter = client.session.get_adapter("https://graph.facebook.com")
        retry = adapter.max_retries
        assert retry.total == 3
        assert "GET" in retry.allowed_methods
        assert "POST" not in retry.allowed_methods
        assert client.session.headers["Accept"] == "application/json"

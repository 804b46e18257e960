"""
TikTok Provider.

Publishes text shares through the TikTok Open API and refreshes tokens with
the client key and secret of the configured TikTok application.
"""

from typing import Any, Dict

from socgate.utils.time_utils import utc_now

from .base_provider import BaseProvider, PostStatus, ProviderCredential, ProviderType
from .errors import AuthError, PlatformError

# TikTok error codes that mean the token itself is unusable
_AUTH_ERROR_CODES = {
    "access_token_invalid",
    "access_token_expired",
    "scope_not_authorized",
    "invalid_grant",
}


class TikTokProvider(BaseProvider):
    """Provider implementation for TikTok."""

    provider_type = ProviderType.TIKTOK

    BASE_URL = "https://open-api.tiktok.com"
    PUBLISH_PATH = "/share/video/upload/"
    STATUS_PATH = "/video/query/"
    REFRESH_PATH = "/oauth/refresh_token/"

    def publish(self, content: str) -> str:
        data = self.http_client.request_json(
            "POST",
            self.BASE_URL + self.PUBLISH_PATH,
            provider=self.provider_type.value,
            headers=self._auth_headers(),
            json_body={
                "text": content,
                "timestamp": int(utc_now().timestamp()),
            },
        )
        self._raise_for_error(data)

        share_id = (data.get("data") or {}).get("share_id")
        if not share_id:
            raise PlatformError(
                "TikTok response did not include a share id", self.provider_type.value
            )

        self.logger.info(f"Published to TikTok as '{self.credential.name}': {share_id}")
        return str(share_id)

    def get_status(self, post_id: str) -> PostStatus:
        try:
            data = self.http_client.request_json(
                "GET",
                self.BASE_URL + self.STATUS_PATH,
                provider=self.provider_type.value,
                headers=self._auth_headers(),
                params={"video_id": post_id},
            )
        except PlatformError as e:
            if e.status_code == 404:
                return PostStatus.DELETED
            raise
        self._raise_for_error(data)

        status = (data.get("data") or {}).get("status")
        if not status:
            return PostStatus.PUBLISHED

        try:
            return PostStatus(str(status).lower())
        except ValueError:
            raise PlatformError(
                f"TikTok returned unknown post status '{status}'",
                self.provider_type.value,
            )

    def refresh_token(self) -> ProviderCredential:
        self._require_refresh_token()
        client = self._require_client_config()

        data = self.http_client.request_json(
            "POST",
            self.BASE_URL + self.REFRESH_PATH,
            provider=self.provider_type.value,
            json_body={
                "client_key": client.client_id,
                "client_secret": client.client_secret,
                "refresh_token": self.credential.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        self._raise_for_error(data)

        token_data = data.get("data") or {}
        return self._refreshed_credential(token_data, token_data.get("access_token"))

    def _raise_for_error(self, data: Dict[str, Any]) -> None:
        error = data.get("error") or {}
        if not isinstance(error, dict):
            return

        code = error.get("code")
        if not code or code == "ok":
            return

        message = f"TikTok API error: {code} - {error.get('message', '')}"
        if code in _AUTH_ERROR_CODES:
            raise AuthError(message, self.provider_type.value)
        raise PlatformError(message, self.provider_type.value, error_code=str(code))
